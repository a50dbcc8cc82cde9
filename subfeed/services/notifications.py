"""Operator notifications through Discord webhooks.

Two webhooks are used: the info webhook receives progress notes and
warnings (channel ID drift, implausible timestamps, videos still
processing), the error webhook receives run failures with a user ping.
Delivery is best effort: failures are logged and never raised.
"""

import logging

import httpx

from subfeed.config import Settings, get_settings
from subfeed.constants import DISCORD_MESSAGE_LIMIT
from subfeed.utils.http_client import get_webhook_client

logger = logging.getLogger(__name__)


def split_message(
    text: str,
    limit: int = DISCORD_MESSAGE_LIMIT,
    prepend: str = "",
    append: str = "",
) -> list[str]:
    """Split text into chunks no longer than ``limit``.

    Splits on newlines where possible and hard-splits lines that are too
    long on their own. Every chunk but the first is prefixed with
    ``prepend`` and every chunk but the last is suffixed with ``append``,
    so a fenced code block stays fenced across chunks.
    """
    if len(text) <= limit:
        return [text]

    budget = limit - len(prepend) - len(append)
    if budget <= 0:
        raise ValueError("limit is too small for the given prepend/append")

    lines: list[str] = []
    for line in text.split("\n"):
        while len(line) > budget:
            lines.append(line[:budget])
            line = line[budget:]
        lines.append(line)

    chunks: list[str] = []
    current = ""
    for line in lines:
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > budget and current:
            chunks.append(current)
            current = line
        else:
            current = candidate
    chunks.append(current)

    return [
        (prepend if i > 0 else "") + chunk + (append if i < len(chunks) - 1 else "")
        for i, chunk in enumerate(chunks)
    ]


class Notifier:
    """Send plain-text messages to the operator's Discord channels."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_webhook_client()

    @property
    def enabled(self) -> bool:
        return self.settings.is_production

    async def info(self, message: str) -> None:
        """Send an informational note."""
        await self._send(self.settings.info_webhook, message)

    async def warning(self, message: str) -> None:
        """Send a warning to the info channel."""
        await self._send(self.settings.info_webhook, f"WARNING: {message}")

    async def error(self, report: str) -> None:
        """Send a failure report to the error channel, pinging the operator."""
        ping = f"<@{self.settings.error_ping_user}> " if self.settings.error_ping_user else ""
        text = f"{ping}{report}"
        chunks = split_message(text, prepend="```\n", append="\n```") if "```" in text else split_message(text)
        for chunk in chunks:
            await self._send(self.settings.error_webhook, chunk)

    async def _send(self, webhook_url: str, content: str) -> None:
        if not self.enabled or not webhook_url:
            return
        for chunk in split_message(content):
            try:
                response = await self.client.post(webhook_url, json={"content": chunk})
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error(f"Discord webhook delivery failed: {e}")
