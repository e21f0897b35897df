"""
Joke Critique Workflow.

Writes a joke about a topic, has it critiqued, and rewrites it until the
critique approves it or the iteration limit is reached:

    StartEvent -> JokeEvent -> (CritiqueEvent -> JokeEvent)* -> ResultEvent
"""

import logging
import re
from typing import Union

from pydantic import BaseModel, Field

from refineflow.client import TextCompletionService
from refineflow.workflow import (
    BaseEvent,
    StartEvent,
    StopEvent,
    Workflow,
    WorkflowContext,
    step,
)

logger = logging.getLogger(__name__)

IMPROVE_MARKER = "IMPROVE"
JOKE_PATTERN = re.compile(r"<joke>([\s\S]*?)</joke>")


class JokeEvent(BaseEvent):
    """A candidate joke waiting for critique"""
    joke: str


class CritiqueEvent(BaseEvent):
    """A joke whose critique asked for improvement"""
    joke: str
    critique: str


class ResultEvent(StopEvent):
    """The final joke and the last critique it received"""
    joke: str
    critique: str


class JokeState(BaseModel):
    """Shared state of one refinement run"""
    num_iterations: int = Field(0, ge=0)
    max_iterations: int = Field(3, ge=1)


def extract_joke(text: str) -> str:
    """Return the text between <joke> tags, or the whole text when there are none"""
    match = JOKE_PATTERN.search(text)
    if match is None:
        return text
    return match.group(1).strip()


class JokeCritiqueWorkflow(Workflow):
    """
    A workflow that iteratively improves a joke.

    This workflow:
    1. Writes a first joke about the topic in the StartEvent
    2. Critiques each joke; a critique containing "IMPROVE" asks for a rewrite
    3. Rewrites the joke from the critique, counting iterations in the shared
       state, until the critique approves or max_iterations rewrites are done
    """

    def __init__(self, llm: TextCompletionService, max_iterations: int = 3, verbose: bool = False):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.llm = llm
        self.max_iterations = max_iterations
        super().__init__(state_factory=self.create_state, verbose=verbose)

    def create_state(self) -> JokeState:
        return JokeState(max_iterations=self.max_iterations)

    @step
    async def start(self, ctx: WorkflowContext, event: StartEvent) -> JokeEvent:
        """Write the first joke about the topic"""
        topic = event.input
        if isinstance(topic, dict):
            topic = topic.get("topic")
        if not topic:
            raise ValueError("No topic provided in the StartEvent")

        logger.info(f"Starting joke generation about: {topic}")

        prompt = f"Write your best joke about {topic}. Write the joke between <joke> and </joke> tags."
        response = await self.llm.complete(prompt)
        joke = extract_joke(response.text)

        logger.info(f"Initial joke generated: {joke!r}")
        return JokeEvent(joke=joke)

    @step
    async def critique(self, ctx: WorkflowContext, event: JokeEvent) -> Union[CritiqueEvent, ResultEvent]:
        """Critique a joke and decide whether it needs another pass"""
        state: JokeState = ctx.state
        logger.info(f"Critiquing joke (iteration {state.num_iterations + 1}): {event.joke!r}")

        prompt = (
            "Give a thorough critique of the following joke. If the joke needs improvement, "
            f"put \"{IMPROVE_MARKER}\" somewhere in the critique: {event.joke}"
        )
        response = await self.llm.complete(prompt)
        logger.debug(f"Critique received ({len(response.text)} chars)")

        if IMPROVE_MARKER in response.text:
            logger.info("Critique suggests improvement needed")
            return CritiqueEvent(joke=event.joke, critique=response.text)

        logger.info("Critique approves the joke")
        return ResultEvent(result=event.joke, joke=event.joke, critique=response.text)

    @step
    async def refine(self, ctx: WorkflowContext, event: CritiqueEvent) -> Union[JokeEvent, ResultEvent]:
        """Rewrite the joke from its critique, stopping at the iteration limit"""
        state: JokeState = ctx.state
        state.num_iterations += 1
        logger.info(f"Refining joke (attempt {state.num_iterations}/{state.max_iterations})")

        prompt = (
            "Write a new joke based on the following critique and the original joke. "
            "Write the joke between <joke> and </joke> tags.\n\n"
            f"Joke: {event.joke}\n\nCritique: {event.critique}"
        )
        response = await self.llm.complete(prompt)
        joke = extract_joke(response.text)
        logger.info(f"Refined joke: {joke!r}")

        if state.num_iterations < state.max_iterations:
            return JokeEvent(joke=joke)

        logger.info("Max iterations reached, returning final result")
        return ResultEvent(result=joke, joke=joke, critique=event.critique)
