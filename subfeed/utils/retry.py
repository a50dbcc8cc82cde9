"""Retry utilities for external HTTP calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)


def _is_server_error(response: httpx.Response) -> bool:
    return response.status_code in (429, 500, 502, 503, 504)


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    ``exponential_base=1.0`` gives a fixed delay between attempts.
    """

    max_retries: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # seconds
    exponential_base: float = 2.0
    retry_on: Callable[[httpx.Response], bool] = field(default=_is_server_error)
    retryable_exceptions: tuple[type[Exception], ...] = (
        httpx.TimeoutException,
        httpx.ConnectError,
        httpx.ReadError,
        httpx.RemoteProtocolError,
        ConnectionError,
        TimeoutError,
    )

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (self.exponential_base**attempt), self.max_delay)


DEFAULT_RETRY_CONFIG = RetryConfig()


async def retry_request(
    func: Callable[..., Awaitable[httpx.Response]],
    *args: Any,
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
    operation_name: str = "request",
    **kwargs: Any,
) -> httpx.Response:
    """Send a request, retrying while ``config.retry_on`` accepts the response
    or the transport raises one of ``config.retryable_exceptions``.

    Returns the last response, which may still be a failing one once the
    retries are used up. A retryable exception on the last attempt is
    re-raised; other exceptions propagate immediately.
    """
    for attempt in range(config.max_retries):
        try:
            response = await func(*args, **kwargs)
        except config.retryable_exceptions as e:
            reason = type(e).__name__
        else:
            if not config.retry_on(response):
                return response
            reason = f"Got status {response.status_code}"

        delay = config.delay_for(attempt)
        logger.warning(
            f"{operation_name}: {reason}, "
            f"retrying in {delay:.1f}s (attempt {attempt + 2}/{config.max_retries + 1})"
        )
        await asyncio.sleep(delay)

    try:
        response = await func(*args, **kwargs)
    except config.retryable_exceptions as e:
        logger.error(f"{operation_name}: Failed after {config.max_retries + 1} attempts: {e!r}")
        raise
    if config.retry_on(response):
        logger.error(
            f"{operation_name}: Failed after {config.max_retries + 1} attempts "
            f"with status {response.status_code}"
        )
    return response
