"""
API route definitions.
"""

from fastapi import APIRouter

from afterwave.api import artists, auth, feed, posts, users

router = APIRouter()
router.include_router(auth.router)
router.include_router(users.router)
router.include_router(feed.router)
router.include_router(artists.router)
router.include_router(posts.router)


@router.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Simple health endpoint."""
    return {"status": "ok"}


__all__ = ["router"]
