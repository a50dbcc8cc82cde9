"""Main API router."""

from fastapi import APIRouter

from subfeed.api.feed import router as feed_router

api_router = APIRouter(prefix="/api")

api_router.include_router(feed_router, tags=["feed"])
