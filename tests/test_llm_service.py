"""
Tests for the OpenAI-compatible LLM service.
"""

from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import openai
import pytest
from pydantic import BaseModel

from refineflow.client import ChatMessage, ChatService, LLMService, LLMServiceError, TextCompletionService
from refineflow.config import Settings
from conftest import StubLLM


class CallSummary(BaseModel):
    summary: str
    products: List[str]
    rep_name: str


class FakeCompletions:
    """Records create() calls and replays scripted replies or errors."""

    def __init__(self, replies: List[Any]):
        self.replies = list(replies)
        self.calls: List[Dict[str, Any]] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


def reply(content: Optional[str]) -> SimpleNamespace:
    message = SimpleNamespace(role="assistant", content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_service(settings: Settings, *replies: Any):
    completions = FakeCompletions(list(replies))
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return LLMService(settings, client=client), completions


class TestComplete:
    """Tests for plain text completion."""

    async def test_complete_sends_prompt_as_user_message(self, settings: Settings) -> None:
        service, completions = make_service(settings, reply("<joke>ha</joke>"))

        response = await service.complete("Tell me a joke")

        assert response.text == "<joke>ha</joke>"
        assert response.model == "test-model"
        assert completions.calls == [{
            "model": "test-model",
            "messages": [{"role": "user", "content": "Tell me a joke"}],
        }]

    async def test_missing_choices_is_an_error(self, settings: Settings) -> None:
        service, _ = make_service(settings, SimpleNamespace(choices=[]))

        with pytest.raises(LLMServiceError, match="no choices"):
            await service.complete("hi")

    async def test_missing_content_is_an_error(self, settings: Settings) -> None:
        service, _ = make_service(settings, reply(None))

        with pytest.raises(LLMServiceError, match="no content"):
            await service.complete("hi")


class TestRetries:
    """Tests for retrying transient failures."""

    async def test_transient_error_is_retried(self, settings: Settings) -> None:
        service, completions = make_service(settings, TimeoutError("slow"), reply("done"))

        response = await service.complete("hi")

        assert response.text == "done"
        assert len(completions.calls) == 2

    async def test_gives_up_after_max_retries(self, settings: Settings) -> None:
        service, completions = make_service(
            settings, TimeoutError("1"), TimeoutError("2"), TimeoutError("3"),
        )

        with pytest.raises(LLMServiceError) as exc_info:
            await service.complete("hi")

        assert len(completions.calls) == settings.llm_max_retries + 1
        assert isinstance(exc_info.value.__cause__, TimeoutError)

    async def test_non_transient_error_is_not_retried(self, settings: Settings) -> None:
        service, completions = make_service(settings, openai.OpenAIError("bad request"), reply("unused"))

        with pytest.raises(LLMServiceError):
            await service.complete("hi")

        assert len(completions.calls) == 1


class TestChat:
    """Tests for chat and structured extraction."""

    async def test_free_text_chat(self, settings: Settings) -> None:
        service, completions = make_service(settings, reply("Hello!"))

        response = await service.chat([
            ChatMessage(role="system", content="Be brief."),
            {"role": "user", "content": "Hi"},
        ])

        assert response.message == ChatMessage(role="assistant", content="Hello!")
        assert response.parsed is None
        assert completions.calls[0]["messages"] == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Hi"},
        ]
        assert "response_format" not in completions.calls[0]

    async def test_extracts_into_pydantic_model(self, settings: Settings) -> None:
        content = '{"summary": "Intro call.", "products": ["XYZ Widget"], "rep_name": "Sarah"}'
        service, completions = make_service(settings, reply(content))

        response = await service.chat([{"role": "user", "content": "transcript"}], response_format=CallSummary)

        assert response.parsed == CallSummary(summary="Intro call.", products=["XYZ Widget"], rep_name="Sarah")
        requested = completions.calls[0]["response_format"]
        assert requested["type"] == "json_schema"
        assert requested["json_schema"]["name"] == "CallSummary"
        assert "products" in requested["json_schema"]["schema"]["properties"]

    async def test_json_object_format_is_passed_through(self, settings: Settings) -> None:
        service, completions = make_service(settings, reply('{"rep_name": "Sarah"}'))

        response = await service.chat(
            [{"role": "user", "content": "transcript"}],
            response_format={"type": "json_object"},
        )

        assert response.parsed == {"rep_name": "Sarah"}
        assert completions.calls[0]["response_format"] == {"type": "json_object"}

    async def test_reply_not_matching_model_is_an_error(self, settings: Settings) -> None:
        service, _ = make_service(settings, reply('{"summary": "missing fields"}'))

        with pytest.raises(LLMServiceError, match="requested format"):
            await service.chat([{"role": "user", "content": "x"}], response_format=CallSummary)

    async def test_invalid_json_is_an_error(self, settings: Settings) -> None:
        service, _ = make_service(settings, reply("not json"))

        with pytest.raises(LLMServiceError):
            await service.chat([{"role": "user", "content": "x"}], response_format={"type": "json_object"})


class TestConstruction:
    """Tests for building the service."""

    def test_requires_api_key_without_client(self, settings: Settings) -> None:
        with pytest.raises(LLMServiceError, match="No API key"):
            LLMService(settings.model_copy(update={"llm_api_key": None}))

    def test_builds_openai_client(self, settings: Settings) -> None:
        service = LLMService(settings.model_copy(update={"llm_base_url": "https://llm.example.test/v1"}))

        assert isinstance(service.client, openai.OpenAI)
        assert str(service.client.base_url).startswith("https://llm.example.test/v1")

    def test_serves_completion_and_chat(self, settings: Settings) -> None:
        service, _ = make_service(settings)

        assert isinstance(service, TextCompletionService)
        assert isinstance(service, ChatService)
        assert not isinstance(StubLLM(), ChatService)
