"""Exponential backoff retry for transient document-store and Gemini failures."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .config import get_config
from .errors import ServiceError, SparkError, classify_code

logger = logging.getLogger(__name__)

T = TypeVar("T")


def classify_retryable(error: BaseException) -> bool:
    """Decide whether *error* is worth another attempt.

    Tagged ``ServiceError``s carry their own classification. Other project
    errors (validation, not-found, malformed AI output) never retry. Foreign
    exceptions are classified by their ``code`` attribute first, then by
    message; unknown errors are not retryable.
    """
    if isinstance(error, ServiceError):
        return error.retryable
    if isinstance(error, SparkError):
        return False
    code = getattr(error, "code", None)
    return classify_code(code if isinstance(code, str) else None, str(error))


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
    should_retry: Callable[[BaseException], bool] | None = None,
) -> T:
    """Execute an async callable with exponential backoff on transient errors.

    Makes up to ``max_retries + 1`` attempts. After a failed attempt ``n``
    (0-indexed) it sleeps ``min(base_delay * 2**n, max_delay)`` seconds,
    unless that was the last attempt or ``should_retry`` rejects the error.

    Args:
        operation: Zero-arg callable that returns a fresh awaitable each attempt.
        max_retries: Retries after the first attempt (config default: 3).
        base_delay: Seconds before the first retry (config default: 1.0).
        max_delay: Upper bound for any single delay (config default: 10.0).
        should_retry: Error classifier (default: :func:`classify_retryable`).

    Returns:
        The result of the first successful call.

    Raises:
        The last exception if all attempts are exhausted or non-retryable.
    """
    cfg = get_config()
    retries = cfg.retry_max_retries if max_retries is None else max_retries
    base = cfg.retry_base_delay if base_delay is None else base_delay
    cap = cfg.retry_max_delay if max_delay is None else max_delay
    classify = should_retry or classify_retryable

    if retries < 0:
        raise ValueError("max_retries must be >= 0")

    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= retries or not classify(exc):
                if attempt:
                    logger.error("All %d attempt(s) failed: %s", attempt + 1, exc)
                raise
            delay = min(base * (2 ** attempt), cap)
            logger.warning(
                "Retry %d/%d after %.1fs: %s", attempt + 1, retries, delay, exc,
            )
            await asyncio.sleep(delay)
            attempt += 1
