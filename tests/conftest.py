"""Test configuration and fixtures."""

from typing import List, Optional, Sequence

import pytest

from refineflow.client import CompletionResponse
from refineflow.config import Settings

APPROVAL = "Clever wordplay and good timing. No changes needed."
IMPROVEMENT = "The punchline is predictable. IMPROVE the setup."


class StubLLM:
    """
    Deterministic stand-in for the text completion service.

    Answers by prompt prefix: first jokes mention the topic, rewrites are
    numbered, and critiques are served from a script (then a default).
    """

    def __init__(self, critiques: Optional[Sequence[str]] = None, default_critique: str = APPROVAL):
        self.prompts: List[str] = []
        self._critiques = list(critiques or [])
        self._default_critique = default_critique
        self.rewrites = 0

    async def complete(self, prompt: str) -> CompletionResponse:
        self.prompts.append(prompt)

        if prompt.startswith("Write your best joke about "):
            topic = prompt[len("Write your best joke about "):].split(".")[0]
            return CompletionResponse(text=f"Here you go:\n<joke> Why do {topic} hate Mondays? </joke>")

        if prompt.startswith("Give a thorough critique"):
            text = self._critiques.pop(0) if self._critiques else self._default_critique
            return CompletionResponse(text=text)

        if prompt.startswith("Write a new joke"):
            self.rewrites += 1
            return CompletionResponse(text=f"<joke>Rewrite #{self.rewrites}</joke>")

        raise AssertionError(f"Unexpected prompt: {prompt!r}")

    def count(self, prefix: str) -> int:
        return sum(1 for p in self.prompts if p.startswith(prefix))

    @property
    def critique_calls(self) -> int:
        return self.count("Give a thorough critique")


@pytest.fixture
def approving_llm() -> StubLLM:
    """An LLM whose critiques always approve"""
    return StubLLM()


@pytest.fixture
def demanding_llm() -> StubLLM:
    """An LLM whose critiques always ask for improvement"""
    return StubLLM(default_critique=IMPROVEMENT)


@pytest.fixture
def settings() -> Settings:
    """Provide LLM settings that never wait between retries."""
    return Settings(
        llm_api_key="test-key",
        llm_model="test-model",
        llm_timeout=5.0,
        llm_max_retries=2,
        llm_retry_delay=0.0,
    )
