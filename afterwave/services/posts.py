"""
Artist feed posts and their search index maintenance.

Index writes differ by operation: a failed index write on create fails the
request (and the post is rolled back so the title stays usable), updates are
indexed in the background, and deletes are best-effort.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Optional, Protocol, Sequence, Set

from afterwave.clients.feed_index import FeedDoc, FeedRef
from afterwave.core.errors import (
    ConflictError,
    DomainError,
    InvalidInputError,
    NotFoundError,
    PreconditionFailed,
)
from afterwave.models.posts import Post, PostPage
from afterwave.services.artists import ArtistService, normalize_handle
from afterwave.services.roles import PERM_FEED_CREATE, PERM_FEED_DELETE, PERM_FEED_UPDATE
from afterwave.stores.base import isoformat, utc_now
from afterwave.stores.posts import PostStore

logger = logging.getLogger(__name__)

BODY_EXCERPT_LENGTH = 200

_SEPARATORS = re.compile(r"[\s\-]+")
_DISALLOWED = re.compile(r"[^a-z0-9\-]")
_HYPHEN_RUNS = re.compile(r"-{2,}")

# Strong references to in-flight re-index tasks; the loop only keeps weak ones.
_background_tasks: Set[asyncio.Task] = set()


class FeedIndex(Protocol):
    async def index_post(self, doc: FeedDoc) -> None: ...

    async def delete_post(self, artist_handle: str, post_id: str) -> None: ...

    async def search(self, handles: Sequence[str], *, size: int, offset: int = 0) -> list[FeedRef]: ...

    async def ensure_index(self) -> bool: ...


def slugify(title: str) -> str:
    """Lowercase, whitespace/hyphen runs to one hyphen, drop other characters, trim."""
    slug = _SEPARATORS.sub("-", (title or "").strip().lower())
    slug = _DISALLOWED.sub("", slug)
    slug = _HYPHEN_RUNS.sub("-", slug)
    return slug.strip("-")


def body_excerpt(body: str, limit: int = BODY_EXCERPT_LENGTH) -> str:
    return body if len(body) <= limit else body[:limit]


async def drain_background_tasks() -> None:
    """Wait for outstanding background index writes (shutdown and tests)."""
    if _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)


def _feed_doc(post: Post) -> FeedDoc:
    return FeedDoc(
        post_id=post.post_id,
        artist_handle=post.artist_handle,
        created_at=post.created_at,
        body_excerpt=body_excerpt(post.body),
        explicit=post.explicit,
    )


class PostService:
    def __init__(
        self,
        posts: PostStore,
        artists: ArtistService,
        index: FeedIndex,
    ) -> None:
        self._posts = posts
        self._artists = artists
        self._index = index

    async def create_post(
        self,
        handle: str,
        actor_user_id: str,
        *,
        title: str,
        body: str = "",
        image_url: str = "",
        youtube_url: str = "",
        explicit: bool = False,
    ) -> Post:
        artist = await self._artists.require_permission(handle, actor_user_id, PERM_FEED_CREATE)
        title = (title or "").strip()
        if not title:
            raise InvalidInputError("title is required")
        slug = slugify(title)
        if not slug:
            raise InvalidInputError("title must contain at least one letter or number")
        post = Post(
            post_id=slug,
            artist_handle=artist.handle,
            title=title,
            body=(body or "").strip(),
            image_url=(image_url or "").strip(),
            youtube_url=(youtube_url or "").strip(),
            explicit=explicit,
            created_at=isoformat(utc_now()),
            created_by_user_id=actor_user_id,
        )
        try:
            self._posts.create(post)
        except PreconditionFailed as exc:
            raise ConflictError("a post with this title already exists for this artist") from exc
        try:
            await self._index.index_post(_feed_doc(post))
        except Exception:
            logger.exception("Indexing new post %s/%s failed; rolling back", post.artist_handle, slug)
            try:
                self._posts.delete(post)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Rollback of post %s/%s failed", post.artist_handle, slug)
            raise
        return post

    async def get_post(self, handle: str, post_id: str) -> Post:
        post = self._posts.get(normalize_handle(handle), (post_id or "").strip().lower())
        if post is None:
            raise NotFoundError("post not found")
        return post

    async def list_posts(self, handle: str, *, limit: int, cursor: Optional[str] = None) -> PostPage:
        artist = await self._artists.get_artist(handle)
        return self._posts.list_page(artist.handle, limit=limit, cursor=cursor)

    async def update_post(
        self,
        handle: str,
        post_id: str,
        actor_user_id: str,
        *,
        body: Optional[str] = None,
        image_url: Optional[str] = None,
        youtube_url: Optional[str] = None,
        explicit: Optional[bool] = None,
    ) -> Post:
        """Set every provided field, including empty strings; ``None`` means unchanged."""
        artist = await self._artists.require_permission(handle, actor_user_id, PERM_FEED_UPDATE)
        current = await self.get_post(artist.handle, post_id)
        fields: dict[str, object] = {}
        if body is not None:
            fields["body"] = body.strip()
        if image_url is not None:
            fields["image_url"] = image_url.strip()
        if youtube_url is not None:
            fields["youtube_url"] = youtube_url.strip()
        if explicit is not None:
            fields["explicit"] = explicit
        if not fields:
            return current
        fields["updated_at"] = isoformat(utc_now())
        try:
            updated = self._posts.update(artist.handle, current.post_id, fields)
        except PreconditionFailed as exc:
            raise NotFoundError("post not found") from exc
        self._spawn_reindex(updated)
        return updated

    def _spawn_reindex(self, post: Post) -> None:
        task = asyncio.create_task(self._reindex(post))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

    async def _reindex(self, post: Post) -> None:
        try:
            await self._index.index_post(_feed_doc(post))
        except (DomainError, ValueError) as exc:
            logger.warning("Re-indexing post %s/%s failed: %s", post.artist_handle, post.post_id, exc)

    async def delete_post(self, handle: str, post_id: str, actor_user_id: str) -> None:
        artist = await self._artists.require_permission(handle, actor_user_id, PERM_FEED_DELETE)
        post = await self.get_post(artist.handle, post_id)
        try:
            self._posts.delete(post)
        except PreconditionFailed as exc:
            raise NotFoundError("post not found") from exc
        try:
            await self._index.delete_post(post.artist_handle, post.post_id)
        except (DomainError, ValueError) as exc:
            logger.warning("Removing post %s/%s from index failed: %s", post.artist_handle, post.post_id, exc)


__all__ = [
    "BODY_EXCERPT_LENGTH",
    "FeedIndex",
    "PostService",
    "body_excerpt",
    "drain_background_tasks",
    "slugify",
]
