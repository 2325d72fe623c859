"""
Artist page member persistence.

    ARTISTS#<handle>           / MEMBER#<uid>     roles on the page
    ARTIST_MEMBERS#USER#<uid>  / ARTIST#<handle>  user -> pages mirror with roles

The owner row lives only in the page partition; the owner's pages are served
by the owner index in ``ArtistStore``.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from afterwave.clients.kv import Condition, Item, KeyValueStore
from afterwave.models.artists import Member
from afterwave.stores.base import MirroredStore

MEMBER_SK_PREFIX = "MEMBER#"
MEMBERSHIP_PREFIX = "ARTIST_MEMBERS#USER#"


def dedupe_roles(roles: Sequence[str]) -> List[str]:
    """Trim, lowercase and de-duplicate while keeping first-seen order."""
    cleaned = (role.strip().lower() for role in roles)
    return list(dict.fromkeys(role for role in cleaned if role))


def member_keys(handle: str, user_id: str) -> List[Tuple[str, str]]:
    return [
        ("ARTISTS#" + handle, MEMBER_SK_PREFIX + user_id),
        (MEMBERSHIP_PREFIX + user_id, f"ARTIST#{handle}"),
    ]


def _to_member(row: Item) -> Member:
    return Member(
        artist_handle=row["handle"],
        user_id=row["user_id"],
        roles=list(row.get("roles") or []),
    )


class MemberStore(MirroredStore):
    """Member rows plus the per-user membership mirror."""

    def __init__(self, db: KeyValueStore) -> None:
        super().__init__(db)

    @staticmethod
    def member_row(handle: str, user_id: str, roles: Sequence[str]) -> Item:
        return {
            "pk": "ARTISTS#" + handle,
            "sk": MEMBER_SK_PREFIX + user_id,
            "handle": handle,
            "user_id": user_id,
            "roles": dedupe_roles(roles),
        }

    def _write(self, handle: str, user_id: str, roles: Sequence[str], condition: Condition) -> None:
        row = self.member_row(handle, user_id, roles)
        self.write_mirrored(
            row,
            [
                {
                    "pk": MEMBERSHIP_PREFIX + user_id,
                    "sk": f"ARTIST#{handle}",
                    "handle": handle,
                    "user_id": user_id,
                    "roles": row["roles"],
                }
            ],
            condition=condition,
        )

    def add(self, handle: str, user_id: str, roles: Sequence[str]) -> None:
        """Insert a member. Raises ``PreconditionFailed`` if already a member."""
        self._write(handle, user_id, roles, Condition.item_absent())

    def replace_roles(self, handle: str, user_id: str, roles: Sequence[str]) -> None:
        """Overwrite an existing member's roles. Raises ``PreconditionFailed`` if absent."""
        self._write(handle, user_id, roles, Condition.item_exists())

    def get(self, handle: str, user_id: str) -> Optional[Member]:
        row = self._db.get_item("ARTISTS#" + handle, MEMBER_SK_PREFIX + user_id)
        return _to_member(row) if row else None

    def list_for_artist(self, handle: str) -> List[Member]:
        rows, _ = self._db.query("ARTISTS#" + handle, sk_prefix=MEMBER_SK_PREFIX)
        return [_to_member(row) for row in rows]

    def list_for_user(self, user_id: str) -> List[Member]:
        rows, _ = self._db.query(MEMBERSHIP_PREFIX + user_id, sk_prefix="ARTIST#")
        return [_to_member(row) for row in rows]

    def remove(self, handle: str, user_id: str) -> None:
        """Delete a member and its mirror. Raises ``PreconditionFailed`` if absent."""
        self.delete_mirrored(member_keys(handle, user_id), condition=Condition.item_exists())


__all__ = ["MemberStore", "dedupe_roles", "member_keys"]
