"""
Decorators for attaching Traceloop association properties to calls.
"""

import functools
import time
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

from traceloop.sdk import Traceloop


def trace_context(
    operation_type: Optional[str] = None,
    context_generator: Optional[Callable[..., Dict[str, Any]]] = None,
):
    """
    Record the start, end and outcome of an async call with Traceloop.

    Args:
        operation_type: Name recorded for the operation (defaults to the
            function name)
        context_generator: Optional function receiving the call's arguments
            and returning extra properties to record
    """
    def decorator(func):
        op_type = operation_type or func.__name__

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            op_id = uuid4().hex[:12]
            start_time = time.time()

            context = {"operation_id": op_id, "operation_type": op_type, "status": "started"}
            if context_generator is not None:
                context.update(context_generator(*args, **kwargs) or {})
            Traceloop.set_association_properties(context)

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                Traceloop.set_association_properties({
                    "operation_id": op_id,
                    "status": "error",
                    "error_type": type(e).__name__,
                    "duration": time.time() - start_time,
                })
                raise

            Traceloop.set_association_properties({
                "operation_id": op_id,
                "status": "completed",
                "duration": time.time() - start_time,
            })
            return result

        return wrapper
    return decorator
