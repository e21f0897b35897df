"""
refineflow: an event-driven workflow engine with per-run shared state.
"""
from refineflow.workflow import (
    BaseEvent,
    Event,
    StartEvent,
    StepExecutionError,
    StopEvent,
    Workflow,
    WorkflowContext,
    WorkflowDefinitionError,
    WorkflowError,
    WorkflowRun,
    WorkflowRuntimeError,
    define_event,
    step,
)

__version__ = "0.1.0"

__all__ = [
    'BaseEvent',
    'Event',
    'StartEvent',
    'StepExecutionError',
    'StopEvent',
    'Workflow',
    'WorkflowContext',
    'WorkflowDefinitionError',
    'WorkflowError',
    'WorkflowRun',
    'WorkflowRuntimeError',
    'define_event',
    'step',
]
