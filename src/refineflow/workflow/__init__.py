"""
Event-driven workflow engine.

This package provides a framework for building event-driven workflows whose
steps communicate only through events and share one mutable state per run.

Key components:
- Events: Immutable messages that trigger steps
- Steps: Handlers bound to the event kinds that trigger them
- Workflows: Step registries that create runs
- Context: The queue and shared state of one run
- Visualizer: Tools for drawing the workflow's event graph
"""

from .errors import WorkflowError, WorkflowDefinitionError, WorkflowRuntimeError, StepExecutionError
from .events import BaseEvent, StartEvent, StopEvent, Event, define_event
from .context import WorkflowContext
from .step import Step, step
from .workflow import Workflow, WorkflowRun
from .visualizer import generate_graph_data, draw_workflow

__all__ = [
    # Errors
    'WorkflowError',
    'WorkflowDefinitionError',
    'WorkflowRuntimeError',
    'StepExecutionError',

    # Event types
    'BaseEvent',
    'StartEvent',
    'StopEvent',
    'Event',
    'define_event',

    # Workflow components
    'WorkflowContext',
    'Step',
    'step',
    'Workflow',
    'WorkflowRun',

    # Visualization tools
    'generate_graph_data',
    'draw_workflow',
]
