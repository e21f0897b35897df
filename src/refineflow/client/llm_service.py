"""
LLM Service module for OpenAI-compatible chat completion APIs.

This module provides the text-completion and structured-extraction
collaborators that workflow steps call. The default endpoint is Groq's
OpenAI-compatible API; any other compatible base URL works.
"""
import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import openai
from openai import OpenAI
from pydantic import BaseModel, ValidationError
from traceloop.sdk.decorators import task

from refineflow.config import Settings
from refineflow.utils.decorators import async_retry, async_timeout, trace_context
from .schemas import (
    ChatMessage,
    ChatResponse,
    CompletionResponse,
    LLMServiceError,
    MessageLike,
    ResponseFormat,
)

logger = logging.getLogger(__name__)

# Errors worth another attempt; everything else fails the call immediately
RETRYABLE_ERRORS = (
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
    TimeoutError,
)


def _is_model_class(response_format: Any) -> bool:
    return isinstance(response_format, type) and issubclass(response_format, BaseModel)


def _request_context(self: 'LLMService', messages: List[Dict[str, Any]], response_format: Any = None) -> Dict[str, Any]:
    return {"model": self.model, "messages_count": len(messages)}


class LLMService:
    """
    Handles communication with an OpenAI-compatible chat completion API.

    Every call runs the blocking client in the default executor, bounded by
    the configured timeout and retried with exponential backoff on transient
    errors. Failures surface as LLMServiceError.
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[Any] = None):
        """
        Initialize the LLM service.

        Args:
            settings: Connection, model and retry settings (read from the
                environment when omitted)
            client: Pre-built OpenAI-compatible client, mainly for tests
        """
        self.settings = settings or Settings.from_env()
        self.model = self.settings.llm_model

        if client is None:
            if not self.settings.llm_api_key:
                raise LLMServiceError("No API key configured; set LLM_API_KEY or GROQ_API_KEY")
            client = OpenAI(api_key=self.settings.llm_api_key, base_url=self.settings.llm_base_url)
        self.client = client

        # Timeout applies per attempt; retries wrap the timed call
        timed = async_timeout(self.settings.llm_timeout)(self._create_completion)
        self._request = async_retry(
            max_retries=self.settings.llm_max_retries,
            retry_delay=self.settings.llm_retry_delay,
            retry_on=RETRYABLE_ERRORS,
        )(timed)

        logger.info(f"LLMService initialized with model: {self.model}")

    @trace_context(operation_type="llm_request", context_generator=_request_context)
    async def _create_completion(self, messages: List[Dict[str, Any]], response_format: Any = None) -> Any:
        kwargs: Dict[str, Any] = {"model": self.model, "messages": messages}
        if response_format is not None:
            kwargs["response_format"] = response_format

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self.client.chat.completions.create(**kwargs))

    async def _send(self, messages: List[Dict[str, Any]], response_format: Any = None) -> ChatMessage:
        logger.debug(f"Sending messages: {json.dumps(messages, indent=2)}")
        try:
            response = await self._request(messages, response_format)
        except (openai.OpenAIError, TimeoutError) as e:
            logger.error(f"Error in LLM API call: {e}")
            raise LLMServiceError(f"LLM request failed: {e}") from e

        choices = getattr(response, "choices", None)
        if not choices:
            raise LLMServiceError("LLM response contained no choices")
        message = choices[0].message
        content = getattr(message, "content", None)
        if content is None:
            raise LLMServiceError("LLM response message has no content")

        logger.debug("LLM API response received")
        return ChatMessage(role="assistant", content=content)

    @task(name="llm_complete")
    async def complete(self, prompt: str) -> CompletionResponse:
        """
        Complete a single prompt.

        Args:
            prompt: Prompt text, sent as one user message

        Returns:
            CompletionResponse with the generated text

        Raises:
            LLMServiceError: If the request fails after retries
        """
        message = await self._send([{"role": "user", "content": prompt}])
        return CompletionResponse(text=message.content, model=self.model)

    @task(name="llm_chat")
    async def chat(
        self,
        messages: Sequence[MessageLike],
        response_format: ResponseFormat = None,
    ) -> ChatResponse:
        """
        Send a chat conversation, optionally asking for structured output.

        Args:
            messages: Conversation as ChatMessage objects or OpenAI-style dicts
            response_format: A pydantic model class to extract into, an
                OpenAI ``response_format`` dict, or None for free text

        Returns:
            ChatResponse; ``parsed`` holds the extracted data for structured
            requests

        Raises:
            LLMServiceError: If the request fails or the reply does not match
                the requested format
        """
        payload = [ChatMessage.model_validate(m).model_dump() for m in messages]

        if _is_model_class(response_format):
            request_format: Any = {
                "type": "json_schema",
                "json_schema": {
                    "name": response_format.__name__,
                    "schema": response_format.model_json_schema(),
                },
            }
        else:
            request_format = response_format

        message = await self._send(payload, request_format)
        return ChatResponse(message=message, parsed=self._parse(message.content, response_format), model=self.model)

    @staticmethod
    def _parse(content: str, response_format: ResponseFormat) -> Any:
        if response_format is None:
            return None
        try:
            if _is_model_class(response_format):
                return response_format.model_validate_json(content)
            if response_format.get("type") in ("json_object", "json_schema"):
                return json.loads(content)
        except (ValidationError, json.JSONDecodeError) as e:
            raise LLMServiceError(f"LLM reply does not match the requested format: {e}") from e
        return None
