"""Utility modules."""

from subfeed.utils.logging import LogContext, setup_logging
from subfeed.utils.retry import RetryConfig, retry_request

__all__ = [
    # Logging
    "LogContext",
    "setup_logging",
    # Retry
    "retry_request",
    "RetryConfig",
]
