"""
Utility modules shared by the engine, the clients and the CLI
"""
from .logger_setup import setup_logging
from .decorators import async_retry, async_timeout, trace_context

__all__ = [
    'setup_logging',
    'async_retry',
    'async_timeout',
    'trace_context',
]
