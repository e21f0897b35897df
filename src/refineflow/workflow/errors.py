"""
Exceptions raised by the workflow engine.
"""

from typing import Any, Optional


class WorkflowError(Exception):
    """Base class for all workflow engine errors"""


class WorkflowDefinitionError(WorkflowError):
    """A workflow was defined incorrectly (bad step, frozen registry)"""


class WorkflowRuntimeError(WorkflowError):
    """A run was used incorrectly (streamed twice, emitted on after close)"""


class StepExecutionError(WorkflowError):
    """
    A step failed while handling an event.

    The original exception is chained as ``__cause__``. The run that raised
    it is closed and will not dispatch any further events.
    """

    def __init__(self, step_name: str, event: Any, message: Optional[str] = None):
        self.step_name = step_name
        self.event = event
        super().__init__(message or f"Step '{step_name}' failed while handling {event}")
