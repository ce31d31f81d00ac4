"""
Retry helpers for hutwatch.

Two layers of retrying exist:

* The orchestrator retries a whole target (initialize, scrape, cleanup)
  with a linear backoff: ``base * attempt`` (30s, 60s, 90s with the default
  base). ``linear_backoff_ms`` is that formula.
* Providers and persistence retry single I/O calls on transient errors with
  the tenacity decorators below, before the error ever reaches the
  orchestrator.
"""

import logging
from typing import Tuple, Type

import httpx
from sqlalchemy.exc import DBAPIError, OperationalError
from tenacity import (
    after_log,
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

# Default exceptions that trigger retries
RETRIABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    ConnectionError,
    TimeoutError,
    OSError,
)


def linear_backoff_ms(attempt: int, base_ms: int = 30000) -> int:
    """
    Backoff before the attempt following ``attempt``.

    Args:
        attempt: The 1-based attempt number that just failed
        base_ms: Backoff unit in milliseconds

    Returns:
        Milliseconds to sleep, ``base_ms * attempt``

    Examples:
        >>> [linear_backoff_ms(a) for a in (1, 2, 3)]
        [30000, 60000, 90000]
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return base_ms * attempt


def api_retry(
    max_attempts: int = 3,
    min_wait_seconds: float = 1,
    max_wait_seconds: float = 8,
):
    """
    Retry decorator for async calls to the booking systems' JSON APIs.

    Retries on connection problems and timeouts only; HTTP status errors are
    turned into provider errors by the caller and are not retried here.

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        min_wait_seconds: Minimum wait time between retries
        max_wait_seconds: Maximum wait time between retries

    Examples:
        >>> @api_retry(max_attempts=2)
        ... async def fetch(client):
        ...     return await client.get("https://www.hut-reservation.org/api/v1/...")
    """
    api_exceptions = (
        ConnectionError,
        TimeoutError,
        httpx.TimeoutException,
        httpx.NetworkError,
    )

    return retry(
        retry=retry_if_exception_type(api_exceptions),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait_seconds, max=max_wait_seconds),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.DEBUG),
        reraise=True,
    )


def database_retry(
    max_attempts: int = 3,
    min_wait_seconds: float = 1,
    max_wait_seconds: float = 5,
):
    """
    Retry decorator for database operations.

    Retries on connection errors, timeouts and operational errors
    (deadlocks, pool exhaustion).
    """
    db_exceptions = (
        ConnectionError,
        TimeoutError,
        OperationalError,
        DBAPIError,
        OSError,
    )

    return retry(
        retry=retry_if_exception_type(db_exceptions),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait_seconds, max=max_wait_seconds),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.DEBUG),
        reraise=True,
    )


def file_io_retry(
    max_attempts: int = 3,
    min_wait_seconds: float = 1,
    max_wait_seconds: float = 3,
):
    """
    Retry decorator for file I/O operations (works for sync and async).

    Examples:
        >>> @file_io_retry(max_attempts=3)
        ... def write_report(path, text):
        ...     path.write_text(text)
    """
    return retry(
        retry=retry_if_exception_type(RETRIABLE_EXCEPTIONS),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait_seconds, max=max_wait_seconds),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.DEBUG),
        reraise=True,
    )
