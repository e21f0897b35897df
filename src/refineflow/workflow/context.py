"""
Workflow context for one run of a workflow.

This module provides the WorkflowContext class which owns the pending event
queue and the shared state of a single run.
"""

import logging
import time
from collections import deque
from typing import Any, Deque, Optional, TYPE_CHECKING
from uuid import uuid4

from traceloop.sdk import Traceloop

from .events import BaseEvent
from .errors import WorkflowRuntimeError

if TYPE_CHECKING:
    from .workflow import Workflow

logger = logging.getLogger(__name__)


class WorkflowContext:
    """
    Per-run state and event queue.

    The context object provides:
    - The pending event queue, consumed in FIFO order by the dispatch loop
    - The shared state created by the workflow's state factory
    - A reference to the workflow whose steps handle the events

    Exactly one dispatch loop owns a context; contexts are never shared
    between runs.
    """

    def __init__(self, workflow: 'Workflow', state: Any):
        """
        Initialize the workflow context.

        Args:
            workflow: The workflow definition (step registry) for this run
            state: Freshly created shared state for this run
        """
        self.workflow = workflow
        self.state = state
        self.queue: Deque[BaseEvent] = deque()
        self.dispatched_count = 0
        self.closed = False
        self._start_time = time.time()

        self.run_id = f"run_{uuid4().hex[:12]}"
        Traceloop.set_association_properties({
            "workflow_id": workflow.workflow_id,
            "run_id": self.run_id,
        })

        logger.debug(f"Created workflow context {self.run_id} for {workflow.workflow_id}")

    def send_event(self, event: BaseEvent) -> None:
        """
        Add an event to the end of the pending queue.

        Steps may call this to emit events in addition to their return
        value; callers use it to seed a run.

        Args:
            event: The event to enqueue

        Raises:
            WorkflowRuntimeError: If the run has already been closed
            TypeError: If ``event`` is not an event
        """
        if self.closed:
            raise WorkflowRuntimeError(f"Run {self.run_id} is closed; cannot send {event}")
        if not isinstance(event, BaseEvent):
            raise TypeError(f"Expected an event, got {type(event).__name__}")
        self.queue.append(event)

    def next_event(self) -> Optional[BaseEvent]:
        """Pop the oldest pending event, or None when the queue is empty"""
        if self.closed or not self.queue:
            return None
        self.dispatched_count += 1
        return self.queue.popleft()

    @property
    def pending_count(self) -> int:
        return len(self.queue)

    @property
    def elapsed(self) -> float:
        return time.time() - self._start_time

    def close(self) -> None:
        """
        Release the run.

        Pending events are dropped and no further events can be sent.
        Closing twice is harmless.
        """
        if self.closed:
            return
        self.closed = True
        dropped = len(self.queue)
        self.queue.clear()
        logger.debug(f"Closed workflow context {self.run_id} after {self.dispatched_count} events "
                     f"({dropped} pending dropped)")
