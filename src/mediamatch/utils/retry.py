"""Retry logic using the tenacity library.

Provides exponential backoff with jitter for catalog requests. tenacity
wraps coroutine functions transparently, so the same decorator serves the
async catalog client.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

import httpx
from tenacity import (
    before_sleep_log,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity import (
    retry as _retry,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Transport-level failures worth another attempt
NETWORK_EXCEPTIONS: tuple[type[Exception], ...] = (
    ConnectionError,
    TimeoutError,
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.ReadError,
    httpx.RemoteProtocolError,
)

# Rate limiting and transient upstream errors
RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})


def is_retryable_status(exc: BaseException) -> bool:
    """True for HTTP status errors that usually clear up on their own."""
    return (
        isinstance(exc, httpx.HTTPStatusError)
        and exc.response.status_code in RETRYABLE_STATUS_CODES
    )


def retry_with_backoff(
    *,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    jitter: float = 1.0,
    retry_exceptions: tuple[type[BaseException], ...] = NETWORK_EXCEPTIONS,
    retry_statuses: bool = True,
    logger_instance: logging.Logger | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Retry decorator with exponential backoff and jitter.

    Args:
        max_retries: Retries after the first attempt (total = max_retries + 1)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        jitter: Maximum random jitter added to each delay
        retry_exceptions: Exception types to retry on
        retry_statuses: Also retry on 429/502/503/504 responses
        logger_instance: Logger for retry warnings (uses module logger if None)

    Returns:
        Decorator usable on sync and async functions

    Example:
        @retry_with_backoff(max_retries=2, base_delay=0.5)
        async def fetch(client, url):
            response = await client.get(url)
            response.raise_for_status()
            return response.json()
    """
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")

    condition = retry_if_exception_type(retry_exceptions)
    if retry_statuses:
        condition = condition | retry_if_exception(is_retryable_status)

    return _retry(
        reraise=True,
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential_jitter(initial=base_delay, max=max_delay, jitter=jitter),
        retry=condition,
        before_sleep=before_sleep_log(logger_instance or logger, logging.WARNING),
    )
