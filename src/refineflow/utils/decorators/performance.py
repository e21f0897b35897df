"""
Decorators for bounding how long a call may take.
"""

import asyncio
import functools
import logging
from typing import Optional

logger = logging.getLogger("decorators")


def async_timeout(seconds: Optional[float] = 30):
    """
    Bound the run time of an async function.

    Args:
        seconds: Maximum seconds to wait before raising TimeoutError;
            None disables the limit
    """
    def decorator(func):
        if seconds is None:
            return func

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await asyncio.wait_for(func(*args, **kwargs), timeout=seconds)
            except asyncio.TimeoutError as e:
                logger.error(f"Operation {func.__qualname__} timed out after {seconds} seconds")
                raise TimeoutError(f"Operation {func.__qualname__} timed out after {seconds} seconds") from e
        return wrapper
    return decorator
