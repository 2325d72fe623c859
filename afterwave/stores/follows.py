"""
Follow persistence with a denormalized follower counter.

    FOLLOWS#USER#<uid>  / <handle>              user -> followed artists
    ARTISTS#<handle>    / FOLLOWED#<ts>#<uid>   artist -> followers, newest last

Follow and unfollow each commit the two rows and the artist's
``follower_count`` change in one transaction, so the counter only moves on a
real state change.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from afterwave.clients.kv import Condition, DeleteOp, Item, KeyValueStore
from afterwave.core.errors import PreconditionFailed
from afterwave.stores.artists import artist_pk, follower_count_op
from afterwave.stores.base import MirroredStore, isoformat, utc_now

logger = logging.getLogger(__name__)

FOLLOWS_PREFIX = "FOLLOWS#USER#"
FOLLOWED_SK_PREFIX = "FOLLOWED#"


def _follower_sk(followed_at: str, user_id: str) -> str:
    return f"{FOLLOWED_SK_PREFIX}{followed_at}#{user_id}"


class FollowStore(MirroredStore):
    """User/artist follow rows plus the counter on the artist row."""

    def __init__(self, db: KeyValueStore) -> None:
        super().__init__(db)

    def _get(self, user_id: str, handle: str) -> Optional[Item]:
        return self._db.get_item(FOLLOWS_PREFIX + user_id, handle)

    def follow(self, user_id: str, handle: str) -> bool:
        """Follow an artist. Returns False when already following.

        Raises ``PreconditionFailed`` when the artist row does not exist.
        """
        followed_at = isoformat(utc_now())
        try:
            self.write_mirrored(
                {
                    "pk": FOLLOWS_PREFIX + user_id,
                    "sk": handle,
                    "handle": handle,
                    "followed_at": followed_at,
                },
                [
                    {
                        "pk": artist_pk(handle),
                        "sk": _follower_sk(followed_at, user_id),
                        "user_id": user_id,
                        "followed_at": followed_at,
                    }
                ],
                condition=Condition.item_absent(),
                extra=[follower_count_op(handle, 1)],
            )
        except PreconditionFailed:
            if self._get(user_id, handle) is not None:
                return False
            raise
        return True

    def unfollow(self, user_id: str, handle: str) -> bool:
        """Unfollow an artist. Returns False when not following."""
        row = self._get(user_id, handle)
        if row is None:
            return False
        keys = [
            (FOLLOWS_PREFIX + user_id, handle),
            (artist_pk(handle), _follower_sk(row.get("followed_at", ""), user_id)),
        ]
        try:
            self.delete_mirrored(
                keys,
                condition=Condition.item_exists(),
                extra=[follower_count_op(handle, -1)],
            )
        except PreconditionFailed:
            if self._get(user_id, handle) is None:
                return False
            # Artist row gone or counter already at zero: drop the follow rows only.
            logger.warning("Follower counter for %s out of step; removing rows only", handle)
            self._db.transact_write([DeleteOp(pk, sk) for pk, sk in keys])
        return True

    def is_following(self, user_id: str, handle: str) -> bool:
        return self._get(user_id, handle) is not None

    def list_following(self, user_id: str) -> List[str]:
        rows, _ = self._db.query(FOLLOWS_PREFIX + user_id)
        return [row["sk"] for row in rows]

    def list_followers(self, handle: str, *, limit: int = 100) -> List[str]:
        """Follower user ids, most recent first."""
        rows, _ = self._db.query(
            artist_pk(handle),
            sk_prefix=FOLLOWED_SK_PREFIX,
            descending=True,
            limit=limit,
        )
        return [row["user_id"] for row in rows]


__all__ = ["FollowStore"]
