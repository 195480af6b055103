"""Langfuse tracing for the ask pipeline.

Without LANGFUSE_PUBLIC_KEY the `observe` decorator is a pass-through,
so pipeline stages can be decorated unconditionally.
"""

import asyncio
import logging
from collections.abc import Callable
from functools import wraps

from src.core.config import settings

logging.getLogger("langfuse").setLevel(logging.ERROR)


if settings.langfuse_public_key:
    from langfuse import observe
else:

    def observe(name: str = "", **kwargs) -> Callable:  # type: ignore[misc]
        """Pass-through decorator used when Langfuse is not configured."""

        def decorator(fn: Callable) -> Callable:
            if not asyncio.iscoroutinefunction(fn):
                return fn

            @wraps(fn)
            async def async_wrapper(*args, **kw):
                return await fn(*args, **kw)

            return async_wrapper

        return decorator


__all__ = ["observe"]
