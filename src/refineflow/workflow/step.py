"""
Step definition for workflow steps.

This module provides the Step class and step decorator. A step binds a
handler function to the event kinds that trigger it.
"""

import logging
import inspect
import time
import types
from typing import (
    Callable, Awaitable, Union, List, Type, TypeVar, get_type_hints, get_origin, get_args,
    Any, Optional, Iterable, Dict,
)

from traceloop.sdk import Traceloop
from traceloop.sdk.decorators import task

from .events import BaseEvent
from .errors import StepExecutionError, WorkflowDefinitionError

logger = logging.getLogger(__name__)

StepResult = Union[BaseEvent, List[BaseEvent], None]

# Type for step functions
StepFunc = TypeVar('StepFunc', bound=Callable[..., Union[StepResult, Awaitable[StepResult]]])

CONTEXT_PARAM_NAMES = ("ctx", "context")


def _event_types_in(annotation: Any) -> List[Type[BaseEvent]]:
    """Collect the BaseEvent subclasses named by a type annotation"""
    if isinstance(annotation, type) and issubclass(annotation, BaseEvent):
        return [annotation]

    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType or origin in (list, tuple):
        found: List[Type[BaseEvent]] = []
        for arg in get_args(annotation):
            for event_type in _event_types_in(arg):
                if event_type not in found:
                    found.append(event_type)
        return found

    return []


def _named_params(func: Callable[..., Any]) -> List[inspect.Parameter]:
    """Parameters of func that can be passed by name (no *args or **kwargs)"""
    return [
        param for param in inspect.signature(func).parameters.values()
        if param.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]


class Step:
    """
    Defines a workflow step.

    A Step wraps a function that processes events and produces new events.
    Its input event types decide which events trigger it; its output event
    types are informational and only used for drawing the workflow graph.
    """

    def __init__(
        self,
        func: StepFunc,
        name: Optional[str] = None,
        trigger_types: Optional[Iterable[Type[BaseEvent]]] = None,
        output_types: Optional[Iterable[Type[BaseEvent]]] = None,
    ):
        """
        Initialize a step.

        Args:
            func: Function (sync or async) to execute when the step is triggered
            name: Optional custom name for the step (defaults to function name)
            trigger_types: Event kinds that trigger the step. Taken from the
                event parameter's annotation when omitted.
            output_types: Event kinds the step may produce. Taken from the
                return annotation when omitted.
        """
        self.func = func
        self.name = name or getattr(func, "__name__", repr(func))
        self._type_hints = self._resolve_type_hints()

        if trigger_types is not None:
            self.input_event_types = self._validate_types(trigger_types)
        else:
            self.input_event_types = self._extract_input_event_types()
        if not self.input_event_types:
            raise WorkflowDefinitionError(
                f"Step '{self.name}' has no trigger event kinds; annotate its event "
                f"parameter or register it with explicit kinds"
            )

        if output_types is not None:
            self.output_event_types = self._validate_types(output_types)
        else:
            self.output_event_types = self._extract_output_event_types()

        logger.debug(f"Created step '{self.name}' accepting {[t.__name__ for t in self.input_event_types]} -> "
                     f"{[t.__name__ for t in self.output_event_types]}")

    def _resolve_type_hints(self) -> Dict[str, Any]:
        try:
            return get_type_hints(self.func)
        except (NameError, TypeError) as e:
            # Forward references to classes local to a test or function
            logger.debug(f"Could not resolve annotations of step '{self.name}': {e}")
            return {}

    def _validate_types(self, event_types: Iterable[Type[BaseEvent]]) -> List[Type[BaseEvent]]:
        validated = []
        for event_type in event_types:
            if not (isinstance(event_type, type) and issubclass(event_type, BaseEvent)):
                raise WorkflowDefinitionError(
                    f"Step '{self.name}' was given {event_type!r}, which is not an event kind"
                )
            if event_type not in validated:
                validated.append(event_type)
        return validated

    def _event_param_names(self) -> List[str]:
        return [
            param.name for param in _named_params(self.func)
            if param.name not in CONTEXT_PARAM_NAMES and param.name != 'self'
        ]

    def _extract_input_event_types(self) -> List[Type[BaseEvent]]:
        """
        Extract input event types from the function signature.

        Looks at the annotation of every parameter other than the context;
        Union annotations contribute each of their event members.
        """
        event_types: List[Type[BaseEvent]] = []
        for param_name in self._event_param_names():
            for event_type in _event_types_in(self._type_hints.get(param_name)):
                if event_type not in event_types:
                    event_types.append(event_type)
        return event_types

    def _extract_output_event_types(self) -> List[Type[BaseEvent]]:
        """Extract output event types from the return annotation"""
        if 'return' not in self._type_hints:
            return []
        return _event_types_in(self._type_hints['return'])

    def can_handle(self, event: BaseEvent) -> bool:
        """
        Check if this step can handle the given event.

        A step can handle an event if the event's class is a subclass of any
        of the step's input event types.
        """
        event_cls = event.__class__
        return any(issubclass(event_cls, input_type) for input_type in self.input_event_types)

    def bind(self, instance: Any) -> 'Step':
        """Return a copy of this step whose function is bound to ``instance``"""
        return Step(
            self.func.__get__(instance, type(instance)),
            name=self.name,
            trigger_types=self.input_event_types,
            output_types=self.output_event_types,
        )

    def __get__(self, instance, owner=None):
        # Accessed on a workflow instance, a @step method behaves like a bound step
        if instance is None:
            return self
        return self.bind(instance)

    def __call__(self, *args, **kwargs):
        return self.func(*args, **kwargs)

    def __repr__(self) -> str:
        return f"Step(name={self.name!r}, triggers={[t.__name__ for t in self.input_event_types]})"

    def _build_kwargs(self, ctx: Any, event: BaseEvent) -> Dict[str, Any]:
        kwargs = {}
        for param in _named_params(self.func):
            if param.name in CONTEXT_PARAM_NAMES:
                kwargs[param.name] = ctx
            elif param.name != 'self':
                kwargs[param.name] = event
        return kwargs

    def _collect_events(self, result: Any, event: BaseEvent) -> List[BaseEvent]:
        if result is None:
            return []
        produced = list(result) if isinstance(result, (list, tuple)) else [result]
        for item in produced:
            if not isinstance(item, BaseEvent):
                raise StepExecutionError(
                    self.name, event,
                    f"Step '{self.name}' returned {type(item).__name__}; steps must return events, "
                    f"a list of events, or None",
                )
        return produced

    @task(name="execute_step")
    async def execute(self, ctx: Any, event: BaseEvent) -> List[BaseEvent]:
        """
        Execute the step with the given event.

        Args:
            ctx: The workflow context of the run
            event: The event to process

        Returns:
            List of events produced by the step

        Raises:
            StepExecutionError: If the step function raises or returns
                something other than events
        """
        Traceloop.set_association_properties({
            "step_name": self.name,
            "event_id": event.id,
            "event_type": event.kind,
        })

        start_time = time.time()
        try:
            result = self.func(**self._build_kwargs(ctx, event))
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.exception(f"Error executing step '{self.name}': {e}")
            Traceloop.set_association_properties({
                "step_status": "error",
                "error_type": type(e).__name__,
                "error_message": str(e),
            })
            raise StepExecutionError(self.name, event) from e

        events = self._collect_events(result, event)
        execution_time = time.time() - start_time

        Traceloop.set_association_properties({
            "step_status": "success",
            "execution_time": execution_time,
            "output_event_count": len(events),
        })

        return events


def step(func: Optional[StepFunc] = None, *,
         name: Optional[str] = None,
         triggers: Optional[Iterable[Type[BaseEvent]]] = None) -> Any:
    """
    Decorator for workflow steps.

    This decorator can be used in two ways:
    1. As a simple decorator: @step
    2. With parameters: @step(name="critique", triggers=[JokeEvent])

    Used on a method of a Workflow subclass, the step is registered with
    every instance of that class.

    Args:
        func: The function to decorate
        name: Custom name for the step
        triggers: Explicit trigger event kinds (defaults to the annotation
            of the event parameter)

    Returns:
        A Step object or a decorator producing one
    """
    def decorator(fn: StepFunc) -> Step:
        return Step(fn, name=name, trigger_types=triggers)

    # Handle both @step and @step() syntax
    if func is None:
        return decorator
    return decorator(func)
