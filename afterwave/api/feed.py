"""
The signed-in user's collated feed.
"""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from afterwave.api.posts import page_response, parse_limit
from afterwave.dependencies import CurrentSession, get_feed_service
from afterwave.schemas import PostPageResponse
from afterwave.services import FeedService

router = APIRouter(tags=["feed"])


@router.get("/feed", response_model=PostPageResponse)
async def my_feed(
    session: CurrentSession,
    feed: Annotated[FeedService, Depends(get_feed_service)],
    limit: Optional[int] = None,
    cursor: Optional[str] = None,
) -> PostPageResponse:
    """Posts from followed pages, newest first."""
    page = await feed.my_feed(session.user_id, limit=parse_limit(limit), cursor=cursor or None)
    return page_response(page)


__all__ = ["router"]
