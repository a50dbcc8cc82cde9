"""Shared persistent httpx clients, one per kind of destination.

Clients are created on first use and reused for the process lifetime, so
repeated calls to the same host share pooled connections.
"""

from typing import Any

import httpx

from subfeed.constants import API_TIMEOUT_EXTERNAL, HTTPX_TIMEOUT

_POOL_LIMITS = httpx.Limits(
    max_connections=20,
    max_keepalive_connections=10,
    keepalive_expiry=30,
)

_CLIENT_OPTIONS: dict[str, dict[str, Any]] = {
    # PeerTube instances, the Odysee proxy and SponsorBlock
    "platform": {"timeout": API_TIMEOUT_EXTERNAL, "follow_redirects": True},
    # Discord
    "webhook": {"timeout": HTTPX_TIMEOUT},
}

_clients: dict[str, httpx.AsyncClient] = {}


def _get_client(kind: str) -> httpx.AsyncClient:
    client = _clients.get(kind)
    if client is None or client.is_closed:
        client = httpx.AsyncClient(limits=_POOL_LIMITS, **_CLIENT_OPTIONS[kind])
        _clients[kind] = client
    return client


def get_general_client() -> httpx.AsyncClient:
    """Client for platform and SponsorBlock API calls."""
    return _get_client("platform")


def get_webhook_client() -> httpx.AsyncClient:
    """Client for Discord webhook deliveries."""
    return _get_client("webhook")


async def close_all_clients() -> None:
    """Close every client that was opened. Call during app shutdown."""
    while _clients:
        _, client = _clients.popitem()
        await client.aclose()
