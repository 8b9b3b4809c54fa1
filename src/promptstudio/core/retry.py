"""Retry with exponential backoff for generation calls."""

import functools
import random
import time
from typing import Any, Callable, Optional, TypeVar

from promptstudio.core.errors import TransportError
from promptstudio.core.logging import get_logger

T = TypeVar("T")

logger = get_logger("promptstudio.retry")


def retry_with_exponential_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: tuple[type[Exception], ...] = (TransportError,),
    logger_instance: Optional[Any] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for retrying function calls with exponential backoff.

    Only exceptions listed in ``retryable_exceptions`` trigger a retry; anything
    else propagates immediately, as does an exception whose ``retryable``
    attribute is False.

    Args:
        max_retries: Maximum number of retry attempts (0 disables retrying)
        initial_delay: Initial delay in seconds before first retry
        max_delay: Maximum delay in seconds between retries
        exponential_base: Base for exponential backoff calculation
        jitter: If True, add random jitter to delay to prevent thundering herd
        retryable_exceptions: Tuple of exception types that should trigger retry
        logger_instance: Optional logger instance for logging retries
        sleep: Sleep function, replaceable in tests

    Returns:
        Decorator function
    """
    if logger_instance is None:
        logger_instance = logger

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            delay = initial_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    if not getattr(e, "retryable", True):
                        raise
                    if attempt >= max_retries:
                        logger_instance.error(
                            f"All {max_retries + 1} attempts failed for {func.__name__}",
                            context={
                                "function": func.__name__,
                                "max_retries": max_retries,
                                "error": str(e),
                            },
                        )
                        raise

                    actual_delay = delay + delay * 0.1 * random.random() if jitter else delay
                    logger_instance.warning(
                        f"Attempt {attempt + 1}/{max_retries + 1} failed: {e}. "
                        f"Retrying in {actual_delay:.2f}s...",
                        context={
                            "function": func.__name__,
                            "attempt": attempt + 1,
                            "max_retries": max_retries,
                            "delay": actual_delay,
                        },
                    )
                    sleep(actual_delay)
                    delay = min(delay * exponential_base, max_delay)

            raise AssertionError("unreachable")

        return wrapper

    return decorator
