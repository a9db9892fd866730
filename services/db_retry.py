"""Exponential backoff for transient database failures."""

from __future__ import annotations

import time
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

from core.env import env_float, env_int
from core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DB_RETRY_ATTEMPTS = env_int("DB_RETRY_ATTEMPTS", 3, minimum=1)
DB_RETRY_BASE_DELAY = env_float("DB_RETRY_BASE_DELAY", 0.2, minimum=0.0)


def is_transient_error(exc: BaseException) -> bool:
    """Connection drops and timeouts are retryable; constraint violations are not."""
    if isinstance(exc, OperationalError):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, TimeoutError)


def run_with_retry(
    operation: Callable[[], T],
    *,
    attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    description: str = "database operation",
    on_retry: Optional[Callable[[], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``operation`` and retry transient failures, doubling the delay each time.

    ``on_retry`` runs after every failed attempt that will be retried; callers use it
    to roll back their session so the next attempt starts clean.
    """

    max_attempts = max(1, attempts if attempts is not None else DB_RETRY_ATTEMPTS)
    delay = base_delay if base_delay is not None else DB_RETRY_BASE_DELAY
    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except Exception as exc:
            if not is_transient_error(exc) or attempt >= max_attempts:
                raise
            logger.warning(
                "%s failed (attempt %s/%s); retrying in %.2fs: %s",
                description,
                attempt,
                max_attempts,
                delay,
                exc,
            )
            if on_retry is not None:
                on_retry()
            sleep(delay)
            delay *= 2
    raise RuntimeError("unreachable")  # pragma: no cover


__all__ = ["DB_RETRY_ATTEMPTS", "DB_RETRY_BASE_DELAY", "is_transient_error", "run_with_retry"]
