"""HTTP API."""

from subfeed.api.router import api_router

__all__ = ["api_router"]
