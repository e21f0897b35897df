"""
Workflow base class for defining event-driven workflows.

This module provides the Workflow class, which holds the step registry of a
workflow definition, and WorkflowRun, one execution of that definition.
"""

import logging
import weakref
from typing import Any, AsyncIterator, Callable, Dict, Iterable, List, Optional, Type
from uuid import uuid4

from traceloop.sdk import Traceloop
from traceloop.sdk.decorators import workflow as trace_workflow

from .events import BaseEvent, StopEvent
from .context import WorkflowContext
from .errors import WorkflowDefinitionError, WorkflowRuntimeError
from .step import Step

logger = logging.getLogger(__name__)

StateFactory = Callable[[], Any]


class WorkflowRun:
    """
    One execution of a workflow.

    A run owns a fresh WorkflowContext. Its events are exposed as a
    pull-based async iterator: each time the consumer asks for the next
    event, the oldest pending event is dispatched to all matching steps,
    their output is queued, and the dispatched event is yielded. Stopping
    iteration stops the run; nothing is dispatched in the background.
    """

    def __init__(self, workflow: 'Workflow', context: WorkflowContext):
        self.workflow = workflow
        self.ctx = context
        self.run_id = context.run_id
        self._streaming = False
        # Weak, so an abandoned stream is finalized by the event loop and closes the run
        self._stream: Optional[weakref.ref] = None

    @property
    def state(self) -> Any:
        """Shared state of this run"""
        return self.ctx.state

    @property
    def closed(self) -> bool:
        return self.ctx.closed

    def send_event(self, event: BaseEvent) -> None:
        """
        Emit an event into this run.

        Args:
            event: The event to enqueue (usually the StartEvent seeding the run)
        """
        self.ctx.send_event(event)

    def stream_events(self) -> AsyncIterator[BaseEvent]:
        """
        Stream events from the run as they are dispatched.

        Each run can be streamed once. The stream ends when no events are
        pending. A step failure is raised from the stream as
        StepExecutionError and closes the run.

        Breaking out of the loop stops dispatching at once. The context is
        released when the event loop finalizes the abandoned stream; use
        ``async with run:`` (or ``await run.aclose()``) to release it
        immediately.

        Returns:
            Async iterator over dispatched events, in dispatch order

        Raises:
            WorkflowRuntimeError: If the run is already streaming or closed
        """
        if self._streaming:
            raise WorkflowRuntimeError(f"Run {self.run_id} is already being streamed")
        if self.ctx.closed:
            raise WorkflowRuntimeError(f"Run {self.run_id} is closed")
        self._streaming = True
        stream = self._dispatch_events()
        self._stream = weakref.ref(stream)
        return stream

    async def _dispatch_events(self) -> AsyncIterator[BaseEvent]:
        try:
            while True:
                event = self.ctx.next_event()
                if event is None:
                    break

                if self.workflow.verbose:
                    logger.info(f"[{self.run_id}] Dispatching {event} ({self.ctx.pending_count} pending)")

                await self.workflow.handle_event(self.ctx, event)
                yield event
        finally:
            if self.workflow.verbose:
                logger.info(f"[{self.run_id}] Run finished after {self.ctx.dispatched_count} events "
                            f"in {self.ctx.elapsed:.2f}s")
            self.ctx.close()

    @trace_workflow(name="run_workflow")
    async def run_until(self, kind: Type[BaseEvent] = StopEvent) -> BaseEvent:
        """
        Consume the run until an event of the given kind is dispatched.

        The run is closed afterwards, so events still pending are dropped.

        Args:
            kind: Terminal event kind to wait for

        Returns:
            The first dispatched event of that kind

        Raises:
            WorkflowRuntimeError: If the run drains without producing it
            StepExecutionError: If a step fails
        """
        stream = self.stream_events()
        try:
            async for event in stream:
                if isinstance(event, kind):
                    return event
        finally:
            await self.aclose()

        raise WorkflowRuntimeError(
            f"Run {self.run_id} finished without producing a {kind.__name__}"
        )

    def __await__(self):
        return self.run_until(StopEvent).__await__()

    async def aclose(self) -> None:
        """Stop the run and release its context"""
        stream = self._stream() if self._stream is not None else None
        if stream is not None:
            await stream.aclose()
        self.ctx.close()

    async def __aenter__(self) -> 'WorkflowRun':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class Workflow:
    """
    Base class for defining event-driven workflows.

    A Workflow consists of steps that are triggered by events. Each step
    can process an event and produce new events, which in turn trigger
    other steps. Steps are declared with @step on subclass methods or
    registered on an instance with handle()/add_step(). The registry is
    frozen once the first run is created.
    """

    def __init__(self, state_factory: Optional[StateFactory] = None, verbose: bool = False):
        """
        Initialize the workflow.

        Args:
            state_factory: Zero-argument callable creating the shared state
                of each run (defaults to dict)
            verbose: Whether to log every dispatch
        """
        self.state_factory = state_factory or dict
        self.verbose = verbose
        self.workflow_id = f"{self.__class__.__name__}_{uuid4().hex[:8]}"
        self._frozen = False

        self._steps: List[Step] = self._discover_steps()

        if self.verbose:
            for registered in self._steps:
                logger.info(f"Workflow {self.__class__.__name__} handles "
                            f"{[t.__name__ for t in registered.input_event_types]} with step {registered.name}")

    def _discover_steps(self) -> List[Step]:
        """
        Discover @step methods of this workflow class.

        Steps are returned in definition order, base classes first; a
        subclass attribute overrides the base class step of the same name.

        Returns:
            Steps bound to this instance
        """
        found: Dict[str, Step] = {}
        for klass in reversed(type(self).__mro__):
            for attr_name, attr in vars(klass).items():
                if isinstance(attr, Step):
                    found[attr_name] = attr
                elif attr_name in found:
                    del found[attr_name]

        return [found_step.bind(self) for found_step in found.values()]

    @property
    def steps(self) -> List[Step]:
        """All registered steps, in registration order"""
        return list(self._steps)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add_step(
        self,
        triggers: Optional[Iterable[Type[BaseEvent]]],
        func: Callable[..., Any],
        name: Optional[str] = None,
    ) -> Step:
        """
        Register a handler for one or more event kinds.

        Args:
            triggers: Event kinds that trigger the handler, or None to read
                them from the annotation of its event parameter
            func: Handler taking the event and, optionally, ``ctx``
            name: Custom step name

        Returns:
            The registered Step

        Raises:
            WorkflowDefinitionError: If a run was already created
        """
        if self._frozen:
            raise WorkflowDefinitionError(
                f"Workflow {self.workflow_id} already has runs; steps can no longer be added"
            )
        if isinstance(func, Step):
            triggers = triggers or func.input_event_types
            name = name or func.name
            func = func.func
        new_step = Step(func, name=name, trigger_types=triggers)
        self._steps.append(new_step)
        logger.debug(f"Registered step '{new_step.name}' on {self.workflow_id}")
        return new_step

    def handle(self, *kinds: Type[BaseEvent], name: Optional[str] = None):
        """
        Decorator form of add_step.

        Example::

            @flow.handle(JokeEvent)
            async def critique(event, ctx):
                ...
        """
        def decorator(func):
            self.add_step(kinds or None, func, name=name)
            return func
        return decorator

    def _find_steps_for_event(self, event: BaseEvent) -> List[Step]:
        """Find steps that can handle the given event, in registration order"""
        return [candidate for candidate in self._steps if candidate.can_handle(event)]

    async def handle_event(self, ctx: WorkflowContext, event: BaseEvent) -> List[BaseEvent]:
        """
        Dispatch an event to every matching step.

        Steps run one after another; each step's output is queued on the
        context as soon as it completes. A failing step stops the fan-out,
        so later steps for the same event do not run.

        Args:
            ctx: Context of the run being dispatched
            event: The event to handle

        Returns:
            List of events produced by the steps
        """
        steps = self._find_steps_for_event(event)
        Traceloop.set_association_properties({
            "event_type": event.kind,
            "event_id": event.id,
            "matching_steps": len(steps),
        })

        if not steps:
            if self.verbose:
                logger.info(f"No steps found to handle event: {event}")
            return []

        all_events = []
        for matching in steps:
            if self.verbose:
                logger.info(f"Running step {matching.name}")

            events = await matching.execute(ctx, event)
            for produced in events:
                ctx.send_event(produced)

            if self.verbose:
                if events:
                    logger.info(f"Step {matching.name} produced events: {[e.kind for e in events]}")
                else:
                    logger.info(f"Step {matching.name} produced no events")

            all_events.extend(events)

        return all_events

    def create_run(self, state_factory: Optional[StateFactory] = None) -> WorkflowRun:
        """
        Create a new run with fresh shared state.

        Args:
            state_factory: Overrides the workflow's state factory for this run

        Returns:
            An unseeded WorkflowRun; call send_event to seed it
        """
        self._frozen = True
        factory = state_factory or self.state_factory
        ctx = WorkflowContext(self, factory())
        return WorkflowRun(self, ctx)

    def run(self, start_event: BaseEvent, state_factory: Optional[StateFactory] = None) -> WorkflowRun:
        """
        Create a run seeded with ``start_event``.

        The returned run can be streamed with ``stream_events()`` or awaited
        directly, which waits for the first StopEvent.
        """
        workflow_run = self.create_run(state_factory)
        workflow_run.send_event(start_event)
        return workflow_run
