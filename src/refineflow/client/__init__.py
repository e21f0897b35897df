"""
Clients for the external services that workflow steps call.
"""
from .schemas import (
    ChatMessage,
    ChatResponse,
    ChatService,
    CompletionResponse,
    LLMServiceError,
    TextCompletionService,
)
from .llm_service import LLMService

__all__ = [
    'ChatMessage',
    'ChatResponse',
    'ChatService',
    'CompletionResponse',
    'LLMServiceError',
    'TextCompletionService',
    'LLMService',
]
