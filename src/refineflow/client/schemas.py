"""
Data models exchanged with language model services.
"""

from typing import Any, Literal, Optional, Protocol, Sequence, Type, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict

MessageRole = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    """A single chat message in OpenAI format"""
    role: MessageRole
    content: str

    model_config = ConfigDict(frozen=True)


class CompletionResponse(BaseModel):
    """Result of a plain text completion"""
    text: str
    model: Optional[str] = None


class ChatResponse(BaseModel):
    """
    Result of a chat call.

    ``parsed`` holds the validated model instance when a pydantic model was
    requested as the response format, the decoded JSON object for
    ``{"type": "json_object"}``, and None otherwise.
    """
    message: ChatMessage
    parsed: Any = None
    model: Optional[str] = None


class LLMServiceError(Exception):
    """A language model call failed or returned something unusable"""


ResponseFormat = Union[Type[BaseModel], dict, None]
MessageLike = Union[ChatMessage, dict]


@runtime_checkable
class TextCompletionService(Protocol):
    """Anything that can complete a prompt"""

    async def complete(self, prompt: str) -> CompletionResponse:
        ...


@runtime_checkable
class ChatService(Protocol):
    """Anything that can answer a chat, optionally in a structured format"""

    async def chat(
        self,
        messages: Sequence[MessageLike],
        response_format: ResponseFormat = None,
    ) -> ChatResponse:
        ...
