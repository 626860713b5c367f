from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger

T = TypeVar("T")


def best_effort(step: str, default: Any = None) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Run the wrapped function, discarding any exception it raises.

    Used for optional bookkeeping (history, transcript inference/promotion,
    repo binding) that must never fail a tool call. The failure is logged at
    DEBUG and ``default`` is returned instead.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as ex:
                logger.debug(f"{step} skipped: {type(ex).__name__}: {ex}")
                return default

        return wrapper

    return decorator
