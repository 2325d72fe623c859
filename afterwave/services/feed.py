"""
Collated "my feed": newest-first posts from every artist a user follows.

The search index decides membership and order; the primary store supplies the
post bodies. References that no longer hydrate (index lag after a delete) are
dropped from the page instead of failing it.
"""

from __future__ import annotations

import base64
import binascii
import json
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

from afterwave.clients.feed_index import FeedRef
from afterwave.core.errors import InvalidInputError
from afterwave.models.posts import Post, PostPage
from afterwave.services.posts import FeedIndex
from afterwave.stores.follows import FollowStore
from afterwave.stores.posts import PostStore


def encode_offset_cursor(offset: int) -> str:
    payload = json.dumps({"o": offset}, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(payload).decode("ascii").rstrip("=")


def decode_offset_cursor(cursor: Optional[str]) -> int:
    if not cursor:
        return 0
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        offset = int(json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))["o"])
    except (binascii.Error, ValueError, KeyError, TypeError) as exc:
        raise InvalidInputError("invalid cursor") from exc
    if offset < 0:
        raise InvalidInputError("invalid cursor")
    return offset


class FeedService:
    def __init__(self, follows: FollowStore, posts: PostStore, index: FeedIndex) -> None:
        self._follows = follows
        self._posts = posts
        self._index = index

    async def my_feed(self, user_id: str, *, limit: int, cursor: Optional[str] = None) -> PostPage:
        offset = decode_offset_cursor(cursor)
        handles = self._follows.list_following(user_id)
        if not handles:
            return PostPage()

        # One extra hit tells us whether another page exists.
        refs = await self._index.search(handles, size=limit + 1, offset=offset)
        has_more = len(refs) > limit
        refs = refs[:limit]

        posts = self._hydrate(refs)
        next_cursor = encode_offset_cursor(offset + limit) if has_more else None
        return PostPage(posts=posts, next_cursor=next_cursor)

    def _hydrate(self, refs: List[FeedRef]) -> List[Post]:
        by_handle: "OrderedDict[str, List[str]]" = OrderedDict()
        for ref in refs:
            by_handle.setdefault(ref.artist_handle, []).append(ref.post_id)

        found: Dict[Tuple[str, str], Post] = {}
        for handle, slugs in by_handle.items():
            for post in self._posts.batch_get(handle, slugs):
                found[(handle, post.post_id)] = post

        return [
            found[(ref.artist_handle, ref.post_id)]
            for ref in refs
            if (ref.artist_handle, ref.post_id) in found
        ]


__all__ = ["FeedService", "decode_offset_cursor", "encode_offset_cursor"]
