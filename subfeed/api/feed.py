"""Feed API endpoints."""

import logging
from collections.abc import Sequence
from difflib import SequenceMatcher
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from subfeed.api.auth import require_authorization
from subfeed.constants import FEED_DEFAULT_LIMIT, FEED_MAX_LIMIT, SEARCH_MIN_SCORE
from subfeed.db import get_db
from subfeed.db.crud.videos import get_feed_candidates, get_feed_page, set_read_state
from subfeed.models.schemas import FeedResponse, ReadStateResponse, ReadStateUpdate, VideoRead
from subfeed.models.video import Video, VideoType

router = APIRouter(dependencies=[Depends(require_authorization)])
logger = logging.getLogger(__name__)


def parse_page(value: str | None) -> int:
    """Page number; anything missing, non-numeric or below 2 is page 1."""
    if value is None or not value.isdigit():
        return 1
    return max(1, int(value))


def parse_limit(value: str | None) -> int:
    """Page size, clamped to 1..FEED_MAX_LIMIT."""
    if value is None or not value.isdigit():
        return FEED_DEFAULT_LIMIT
    return min(FEED_MAX_LIMIT, max(1, int(value)))


def parse_types(value: str | None) -> list[VideoType]:
    """Comma-separated video types; unknown ones are ignored."""
    known = {t.value: t for t in VideoType}
    return [known[t] for t in (value or "").split(",") if t in known]


def similarity(query: str, text: str | None) -> float:
    """Fuzzy match score between 0 and 1."""
    if not text:
        return 0.0
    query, text = query.lower(), text.lower()
    if query in text:
        return 1.0
    return SequenceMatcher(None, query, text).ratio()


def search_videos(videos: Sequence[Video], query: str) -> list[Video]:
    """Videos matching ``query`` on title, display name or username, best first."""
    scored = []
    for video in videos:
        score = max(
            similarity(query, video.title),
            similarity(query, video.display_name),
            similarity(query, video.username),
        )
        if score >= SEARCH_MIN_SCORE:
            scored.append((score, video))
    # Stable sort keeps newest-first among equal scores
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [video for _, video in scored]


@router.get("/feed", response_model=FeedResponse, response_model_by_alias=True)
async def get_feed(
    db: Annotated[AsyncSession, Depends(get_db)],
    page: Annotated[str | None, Query()] = None,
    limit: Annotated[str | None, Query()] = None,
    unread: Annotated[str | None, Query()] = None,
    type: Annotated[str | None, Query()] = None,
    search: Annotated[str | None, Query()] = None,
) -> FeedResponse:
    """Get the feed, newest first, optionally filtered and searched."""
    page_number = parse_page(page)
    page_size = parse_limit(limit)
    unread_only = (unread or "").lower() == "true"
    types = parse_types(type)
    offset = (page_number - 1) * page_size

    if search is None:
        videos = await get_feed_page(db, unread_only, types, offset, page_size)
    else:
        candidates = await get_feed_candidates(db, unread_only, types)
        videos = search_videos(candidates, search)[offset : offset + page_size]

    return FeedResponse(documents=[VideoRead.model_validate(video) for video in videos])


@router.patch("/read", response_model=ReadStateResponse, response_model_by_alias=True)
async def update_read_state(
    data: ReadStateUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ReadStateResponse:
    """Mark videos read or unread."""
    modified = 0
    if data.read is not None:
        modified += await set_read_state(db, data.read, unread=False)
    if data.unread is not None:
        modified += await set_read_state(db, data.unread, unread=True)
    logger.info(f"Read state updated for {modified} video(s)")
    return ReadStateResponse(modified_count=modified)
