"""Follow/unfollow with idempotent semantics."""

from __future__ import annotations

from typing import List

from afterwave.core.errors import NotFoundError, PreconditionFailed
from afterwave.services.artists import normalize_handle
from afterwave.stores.artists import ArtistStore
from afterwave.stores.follows import FollowStore

MAX_FOLLOWERS_PAGE = 100


class FollowService:
    def __init__(self, follows: FollowStore, artists: ArtistStore) -> None:
        self._follows = follows
        self._artists = artists

    async def follow(self, user_id: str, handle: str) -> bool:
        """Follow an artist; returns False when the user already follows it."""
        handle = normalize_handle(handle)
        if self._artists.get(handle) is None:
            raise NotFoundError("artist not found")
        try:
            return self._follows.follow(user_id, handle)
        except PreconditionFailed as exc:
            raise NotFoundError("artist not found") from exc

    async def unfollow(self, user_id: str, handle: str) -> bool:
        """Unfollow an artist; returns False when there was nothing to undo."""
        return self._follows.unfollow(user_id, normalize_handle(handle))

    async def is_following(self, user_id: str, handle: str) -> bool:
        return self._follows.is_following(user_id, normalize_handle(handle))

    async def list_following(self, user_id: str) -> List[str]:
        return self._follows.list_following(user_id)

    async def list_followers(self, handle: str, *, limit: int = MAX_FOLLOWERS_PAGE) -> List[str]:
        handle = normalize_handle(handle)
        if self._artists.get(handle) is None:
            raise NotFoundError("artist not found")
        return self._follows.list_followers(handle, limit=max(1, min(limit, MAX_FOLLOWERS_PAGE)))


__all__ = ["FollowService"]
