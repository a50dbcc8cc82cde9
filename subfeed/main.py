"""Main FastAPI application."""

import asyncio
import logging
import random
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from subfeed import __version__
from subfeed.api import api_router
from subfeed.config import get_settings
from subfeed.constants import (
    FEED_UPDATE_INTERVAL_MAX,
    FEED_UPDATE_INTERVAL_MIN,
    SHUTDOWN_GRACE_PERIOD,
)
from subfeed.db import async_session_maker, dispose_db, init_db, ping_db
from subfeed.services.enrichment import Enricher
from subfeed.services.notifications import Notifier
from subfeed.services.scraper import FeedUpdater
from subfeed.services.sources.registry import create_default_registry
from subfeed.services.sponsorblock import SponsorBlockClient
from subfeed.utils.http_client import close_all_clients
from subfeed.utils.logging import setup_logging

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


def create_feed_updater() -> FeedUpdater:
    """Wire the production sources, store and notifier together."""
    notifier = Notifier(settings)
    sponsorblock = SponsorBlockClient()
    return FeedUpdater(
        registry=create_default_registry(notifier, sponsorblock, settings),
        enricher=Enricher(async_session_maker, sponsorblock, notifier),
        notifier=notifier,
        session_maker=async_session_maker,
        settings=settings,
    )


async def periodic_feed_update(
    updater: FeedUpdater,
    shutdown_event: asyncio.Event,
    running: set[asyncio.Task],
) -> None:
    """Trigger a feed update now and then every 15 to 20 minutes.

    Runs are started as detached tasks; the updater itself drops a trigger
    that arrives while a run is still going.
    """
    while not shutdown_event.is_set():
        task = asyncio.create_task(updater.run_safely(), name="feed_update")
        running.add(task)
        task.add_done_callback(running.discard)

        interval = random.uniform(FEED_UPDATE_INTERVAL_MIN, FEED_UPDATE_INTERVAL_MAX)
        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=interval)
            break  # Shutdown requested
        except TimeoutError:
            pass


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    await init_db()
    logger.info("Database initialized")

    updater = create_feed_updater()
    app.state.feed_updater = updater

    shutdown_event = asyncio.Event()
    running: set[asyncio.Task] = set()
    trigger_task = asyncio.create_task(
        periodic_feed_update(updater, shutdown_event, running),
        name="feed_update_trigger",
    )
    logger.info("Started periodic feed updates (every 15-20 minutes)")

    yield

    logger.info("Shutting down background tasks...")
    shutdown_event.set()

    tasks = [trigger_task, *running]
    try:
        await asyncio.wait_for(
            asyncio.gather(*tasks, return_exceptions=True),
            timeout=SHUTDOWN_GRACE_PERIOD,
        )
        logger.info("All background tasks stopped gracefully")
    except TimeoutError:
        logger.warning("Background tasks did not stop in time, forcing cancellation")
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    await close_all_clients()
    await dispose_db()
    logger.info("HTTP clients and database connections closed")
    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version=__version__,
    lifespan=lifespan,
)

app.include_router(api_router)

_app_start_time = datetime.now(UTC)


@app.get("/health", include_in_schema=True, tags=["monitoring"])
async def health_check() -> JSONResponse:
    """Health check endpoint for monitoring.

    Returns:
        JSONResponse with status, uptime, run state and database health.
    """
    updater: FeedUpdater | None = getattr(app.state, "feed_updater", None)
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "uptime_seconds": (datetime.now(UTC) - _app_start_time).total_seconds(),
        "version": __version__,
        "feed_update": updater.state.value if updater else "not started",
        "checks": {},
    }

    if await ping_db(async_session_maker):
        health_status["checks"]["database"] = {"status": "healthy"}
    else:
        health_status["checks"]["database"] = {"status": "unhealthy"}
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(content=health_status, status_code=status_code)


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
