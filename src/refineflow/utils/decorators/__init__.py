"""
Decorators for calls to external services.

Retry, timeout and tracing wrappers used by the LLM clients. The workflow
engine itself neither retries nor times out steps.
"""

# Resilience
from .resilience import async_retry

# Performance
from .performance import async_timeout

# Tracing
from .tracing import trace_context

__all__ = [
    'async_retry',
    'async_timeout',
    'trace_context',
]
