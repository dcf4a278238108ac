"""Retry with exponential backoff for transient source failures."""

import asyncio
import random
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

import httpx
import structlog

logger = structlog.get_logger()

T = TypeVar("T")

# Rate limiting; every 5xx is retried as well
RETRYABLE_STATUS = {429}


def is_transient(error: BaseException) -> bool:
    """Network errors, server errors and rate limiting are worth retrying."""
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        code = error.response.status_code
        return code in RETRYABLE_STATUS or code >= 500
    return False


def backoff_delay(
    attempt: int,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
    jitter: bool = True,
) -> float:
    """Delay before the retry following ``attempt`` (0-based)."""
    delay = min(base_delay * (2**attempt), max_delay)
    if jitter:
        delay *= 0.5 + random.random()
    return delay


async def call_with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_attempts: int = 2,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
    jitter: bool = True,
    **kwargs: Any,
) -> T:
    """Await func, retrying transient httpx failures with backoff.

    Args:
        func: Async callable performing one request
        *args: Positional arguments for func
        max_attempts: Total attempts including the first
        base_delay: Initial delay between attempts in seconds
        max_delay: Upper bound on a single delay
        jitter: Randomize delays
        **kwargs: Keyword arguments for func

    Returns:
        Result of the first successful call

    Raises:
        The last error once attempts are exhausted, or any non-transient error
    """
    for attempt in range(max_attempts):
        try:
            return await func(*args, **kwargs)
        except (httpx.TransportError, httpx.HTTPStatusError) as e:
            if not is_transient(e) or attempt == max_attempts - 1:
                if attempt > 0:
                    logger.error(
                        "retry_exhausted",
                        function=getattr(func, "__name__", repr(func)),
                        max_attempts=max_attempts,
                        error=str(e),
                    )
                raise

            delay = backoff_delay(attempt, base_delay, max_delay, jitter)
            logger.warning(
                "retry_attempt",
                function=getattr(func, "__name__", repr(func)),
                attempt=attempt + 1,
                max_attempts=max_attempts,
                delay=round(delay, 2),
                error=str(e),
            )
            await asyncio.sleep(delay)

    raise RuntimeError("max_attempts must be at least 1")


def retry_transient(
    max_attempts: int = 2,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
    jitter: bool = True,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator form of call_with_retry."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await call_with_retry(
                func,
                *args,
                max_attempts=max_attempts,
                base_delay=base_delay,
                max_delay=max_delay,
                jitter=jitter,
                **kwargs,
            )

        return wrapper

    return decorator
