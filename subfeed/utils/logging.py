"""Centralized logging configuration."""

import logging
import sys
from typing import Literal

from subfeed.config import get_settings


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | None = None
) -> None:
    """Configure logging for the application.

    Args:
        level: Override log level (default: INFO for production, DEBUG otherwise)
    """
    settings = get_settings()

    if level is None:
        level = "INFO" if settings.is_production else "DEBUG"

    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


class LogContext:
    """Prefix log messages with run progress and identifiers.

    Positional parts are rendered first (e.g. ``(3/40)`` and ``[2/5]``),
    followed by ``[key=value]`` pairs.

    Usage:
        log = LogContext(logger, "(3/40)", channel="yt://UC...")
        log.info("Fetching listing...")
        item_log = log.child("[1/4]")
    """

    def __init__(self, logger: logging.Logger, *parts: str, **context: str) -> None:
        self.logger = logger
        self.parts = parts
        self.context = context
        self.prefix = " ".join(
            [*parts, *(f"[{k}={v}]" for k, v in context.items())]
        )

    def child(self, *parts: str, **context: str) -> "LogContext":
        """Create a context that extends this one."""
        return LogContext(
            self.logger, *self.parts, *parts, **{**self.context, **context}
        )

    def debug(self, msg: str, *args, **kwargs) -> None:
        self.logger.debug(f"{self.prefix} {msg}", *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self.logger.info(f"{self.prefix} {msg}", *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self.logger.warning(f"{self.prefix} {msg}", *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        self.logger.error(f"{self.prefix} {msg}", *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs) -> None:
        self.logger.exception(f"{self.prefix} {msg}", *args, **kwargs)
