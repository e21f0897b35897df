"""
Decorators for retrying calls to external services.
"""

import asyncio
import functools
import logging
from typing import Callable, Optional, Tuple, Type, Union

logger = logging.getLogger("decorators")

ExceptionTypes = Union[Type[BaseException], Tuple[Type[BaseException], ...]]


def async_retry(
    max_retries: int = 3,
    retry_delay: float = 1.0,
    backoff_factor: float = 2.0,
    retry_on: Optional[ExceptionTypes] = None,
    retry_if: Optional[Callable[[BaseException], bool]] = None,
):
    """
    Retry an async function with exponential backoff.

    Exceptions outside ``retry_on`` are raised immediately. After the last
    attempt the final exception is raised unchanged.

    Args:
        max_retries: Retries after the first attempt (0 disables retrying)
        retry_delay: Delay before the first retry, in seconds
        backoff_factor: Multiplier applied to the delay after each retry
        retry_on: Exception type(s) worth retrying (defaults to Exception)
        retry_if: Optional predicate to veto a retry for a given exception
    """
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")
    retryable = retry_on or Exception

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            delay = retry_delay
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except retryable as e:
                    if attempt >= max_retries:
                        logger.error(f"Max retries ({max_retries}) reached for {func.__qualname__}")
                        raise
                    if retry_if is not None and not retry_if(e):
                        logger.error(f"Not retrying {func.__qualname__}: {e}")
                        raise

                    attempt += 1
                    logger.warning(f"Retry {attempt}/{max_retries} for {func.__qualname__} "
                                   f"in {delay:.1f}s after error: {e}")
                    await asyncio.sleep(delay)
                    delay *= backoff_factor

        return wrapper
    return decorator
