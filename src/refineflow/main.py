"""
Command line runner for the joke critique workflow.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv
from traceloop.sdk import Traceloop

from refineflow.client import LLMService, LLMServiceError
from refineflow.config import Settings
from refineflow.utils.logger_setup import setup_logging
from refineflow.workflow import StartEvent, StepExecutionError, draw_workflow
from refineflow.workflows import JokeCritiqueWorkflow, ResultEvent

logger = logging.getLogger(__name__)


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Write a joke, critique it and refine it until it is good")
    parser.add_argument("topic", nargs="?", default="pirates", help="What the joke should be about")
    parser.add_argument("--max-iterations", type=int, default=settings.max_iterations,
                        help="Maximum number of rewrites")
    parser.add_argument("--model", default=settings.llm_model, help="LLM model to use")
    parser.add_argument("--verbose", action="store_true", help="Log every dispatched event")
    parser.add_argument("--draw", metavar="FILE", help="Write an HTML drawing of the workflow graph to FILE")
    return parser


async def run_workflow(workflow: JokeCritiqueWorkflow, topic: str) -> Optional[ResultEvent]:
    """Stream a run, printing each event, and return the first ResultEvent"""
    async with workflow.run(StartEvent(topic)) as run:
        async for event in run.stream_events():
            print(f"[{event.kind}] {event.payload}")
            if isinstance(event, ResultEvent):
                return event
    return None


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the joke critique runner"""
    load_dotenv()
    settings = Settings.from_env()
    args = build_parser(settings).parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else settings.log_level)

    if settings.traceloop_api_key:
        Traceloop.init(app_name="refineflow", disable_batch=True, api_key=settings.traceloop_api_key)
    else:
        # Tracing is off without a key; silence traceloop's "not initialized" warnings
        os.environ["TRACELOOP_SUPPRESS_WARNINGS"] = "true"
        logger.debug("TRACELOOP_API_KEY not set, tracing disabled")

    try:
        llm = LLMService(settings.model_copy(update={"llm_model": args.model}))
        workflow = JokeCritiqueWorkflow(llm, max_iterations=args.max_iterations, verbose=args.verbose)
    except (LLMServiceError, ValueError) as e:
        logger.error(f"Could not set up the workflow: {e}")
        return 2

    if args.draw:
        draw_workflow(workflow, args.draw)

    print("Starting Joke Improvement Workflow")
    print("=" * 50)

    try:
        result = await run_workflow(workflow, args.topic)
    except StepExecutionError as e:
        logger.error(f"Workflow failed in step '{e.step_name}': {e.__cause__}")
        return 1

    if result is None:
        logger.error("Workflow finished without a result")
        return 1

    print("\n" + "=" * 50)
    print("FINAL RESULT:")
    print("=" * 50)
    print(f"Final Joke: {result.joke}")
    print(f"\nFinal Critique:\n{result.critique}")
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
