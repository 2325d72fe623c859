"""
Artist page persistence.

    ARTISTS#<handle>       / ARTIST           primary row
    ARTISTS#USER#<uid>     / ARTIST#<handle>  owner -> pages mirror (display_name, created_at)
    ARTISTS#<handle>       / MEMBER#<uid>     member rows, see ``MemberStore``

The owner's ``MEMBER#`` row is written and deleted in the same transaction as
the page.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from afterwave.clients.kv import (
    MAX_TRANSACT_ITEMS,
    Condition,
    Item,
    Key,
    KeyValueStore,
    PutOp,
    UpdateOp,
)
from afterwave.models.artists import Artist
from afterwave.stores.base import MirroredStore
from afterwave.stores.members import MemberStore, member_keys

ARTIST_PREFIX = "ARTISTS#"
ARTIST_SK = "ARTIST"
OWNER_INDEX_PREFIX = "ARTISTS#USER#"
FOLLOWER_COUNT = "follower_count"

ROLE_OWNER = "owner"


def artist_pk(handle: str) -> str:
    return ARTIST_PREFIX + handle


def _to_artist(row: Item) -> Artist:
    return Artist(
        handle=row["handle"],
        display_name=row.get("display_name", ""),
        owner_user_id=row.get("owner_user_id", ""),
        created_at=row.get("created_at", ""),
        bio=row.get("bio", ""),
        follower_count=int(row.get(FOLLOWER_COUNT) or 0),
    )


def follower_count_op(handle: str, delta: int) -> UpdateOp:
    """Counter update for the follow transaction; decrements never go below zero."""
    condition = Condition.attribute_at_least(FOLLOWER_COUNT, 1) if delta < 0 else None
    return UpdateOp(
        artist_pk(handle),
        ARTIST_SK,
        increments={FOLLOWER_COUNT: delta},
        condition=condition,
    )


class ArtistStore(MirroredStore):
    """Artist rows plus the owner index mirror."""

    def __init__(self, db: KeyValueStore) -> None:
        super().__init__(db)

    def create(self, artist: Artist) -> None:
        """Create the page, its owner mirror and the owner member row.

        Raises ``PreconditionFailed`` when the handle is taken.
        """
        self.write_mirrored(
            {
                "pk": artist_pk(artist.handle),
                "sk": ARTIST_SK,
                "handle": artist.handle,
                "display_name": artist.display_name,
                "bio": artist.bio,
                "owner_user_id": artist.owner_user_id,
                "created_at": artist.created_at,
                FOLLOWER_COUNT: 0,
            },
            [
                {
                    "pk": OWNER_INDEX_PREFIX + artist.owner_user_id,
                    "sk": f"ARTIST#{artist.handle}",
                    "handle": artist.handle,
                    "display_name": artist.display_name,
                    "created_at": artist.created_at,
                }
            ],
            condition=Condition.item_absent(),
            extra=[
                PutOp(
                    MemberStore.member_row(artist.handle, artist.owner_user_id, [ROLE_OWNER])
                )
            ],
        )

    def get(self, handle: str) -> Optional[Artist]:
        row = self._db.get_item(artist_pk(handle), ARTIST_SK)
        return _to_artist(row) if row else None

    def update(
        self,
        artist: Artist,
        *,
        display_name: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> None:
        """Apply a partial update to the page and its mirrored fields.

        Raises ``PreconditionFailed`` when the page was deleted meanwhile.
        """
        fields: Dict[str, str] = {}
        if display_name is not None:
            fields["display_name"] = display_name
        if bio is not None:
            fields["bio"] = bio
        if not fields:
            return
        ops = [UpdateOp(artist_pk(artist.handle), ARTIST_SK, set_fields=fields)]
        if "display_name" in fields:
            ops.append(
                UpdateOp(
                    OWNER_INDEX_PREFIX + artist.owner_user_id,
                    f"ARTIST#{artist.handle}",
                    set_fields={"display_name": fields["display_name"]},
                )
            )
        self._db.transact_write(ops)

    def delete(self, artist: Artist, member_user_ids: List[str]) -> None:
        """Delete the page with its owner rows, then every other member with mirrors.

        The page, owner mirror and owner member row go in one transaction
        guarded on the page. Remaining member pairs follow in transactions
        that stay within ``MAX_TRANSACT_ITEMS``.
        """
        self.delete_mirrored(
            [
                (artist_pk(artist.handle), ARTIST_SK),
                (OWNER_INDEX_PREFIX + artist.owner_user_id, f"ARTIST#{artist.handle}"),
                *member_keys(artist.handle, artist.owner_user_id),
            ],
            condition=Condition.item_exists(),
        )
        keys: List[Key] = []
        for user_id in dict.fromkeys(member_user_ids):
            if user_id != artist.owner_user_id:
                keys.extend(member_keys(artist.handle, user_id))
        for start in range(0, len(keys), MAX_TRANSACT_ITEMS):
            self.delete_mirrored(keys[start : start + MAX_TRANSACT_ITEMS])

    def list_by_owner(self, user_id: str) -> List[Item]:
        """Owner mirror rows (handle, display_name, created_at), handle order."""
        rows, _ = self._db.query(OWNER_INDEX_PREFIX + user_id, sk_prefix="ARTIST#")
        return rows


__all__ = [
    "ARTIST_SK",
    "ArtistStore",
    "ROLE_OWNER",
    "artist_pk",
    "follower_count_op",
]
