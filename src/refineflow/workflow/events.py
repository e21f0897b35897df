"""
Event classes for the workflow system.

This module provides the base event class, the conventional start/stop
events and a factory for defining new event kinds at runtime.
"""

from datetime import datetime, timezone
from uuid import uuid4
from typing import Dict, Any, Type

from pydantic import BaseModel, Field, ConfigDict, create_model

_MISSING = object()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseEvent(BaseModel):
    """
    Base class for all events in the workflow system.

    Events are immutable data objects that trigger steps in a workflow.
    The class of an event is its kind: steps subscribe to classes, and a
    step subscribed to a class also receives events of its subclasses.
    """
    id: str = Field(default_factory=lambda: str(uuid4())[:8], description="Unique ID for this event")
    timestamp: datetime = Field(default_factory=_utcnow, description="When this event was created")

    model_config = ConfigDict(frozen=True)  # Events are immutable

    @property
    def kind(self) -> str:
        """Name of this event's kind"""
        return self.__class__.__name__

    @property
    def payload(self) -> Dict[str, Any]:
        """Event data without the bookkeeping fields"""
        return self.model_dump(exclude={"id", "timestamp"})

    def __str__(self) -> str:
        return f"{self.kind}(id={self.id})"


class StartEvent(BaseEvent):
    """
    Seeds a workflow run with input data.

    The input may be given positionally (``StartEvent("pirates")``), as
    ``input=...``, or as loose keyword arguments that are collected into
    an input dict.
    """
    input: Any = None

    def __init__(self, input: Any = _MISSING, **data):
        if input is not _MISSING:
            super().__init__(input=input, **data)
            return
        if "input" in data:
            super().__init__(**data)
            return
        reserved = {k: v for k, v in data.items() if k in ("id", "timestamp")}
        input_data = {k: v for k, v in data.items() if k not in ("id", "timestamp")}
        super().__init__(input=input_data or None, **reserved)


class StopEvent(BaseEvent):
    """
    Completes a workflow with result data.

    The engine gives StopEvent no special treatment while dispatching; it is
    the default kind that ``WorkflowRun.run_until`` waits for.
    """
    result: Any = None

    def __init__(self, result: Any = None, **data):
        super().__init__(result=result, **data)


class Event(BaseEvent):
    """
    Generic event for custom data.

    Convenient for quick experiments. Workflows should prefer proper
    subclasses or ``define_event`` so that steps can subscribe by kind.
    """
    data: Dict[str, Any] = Field(default_factory=dict, description="Custom event data")


def define_event(name: str, /, __base__: Type[BaseEvent] = BaseEvent, **fields: Any) -> Type[BaseEvent]:
    """
    Define a new event kind.

    Fields use pydantic's ``(type, default)`` convention, with ``...`` for
    required fields::

        JokeEvent = define_event("JokeEvent", joke=(str, ...))
        JokeEvent(joke="Why did the pirate...")

    Args:
        name: Name of the new kind
        __base__: Event class to extend (defaults to BaseEvent)
        **fields: Field definitions for the payload

    Returns:
        The new event class
    """
    if not issubclass(__base__, BaseEvent):
        raise TypeError(f"Event kinds must extend BaseEvent, got {__base__!r}")
    return create_model(name, __base__=__base__, **fields)
