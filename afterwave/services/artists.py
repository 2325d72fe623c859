"""
Artist pages, their members and the permission gate for page actions.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from afterwave.core.errors import (
    CannotRemoveOwnerError,
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    OwnerRolesImmutableError,
    PreconditionFailed,
)
from afterwave.models.artists import Artist, ArtistSummary, Member
from afterwave.services.roles import (
    PERM_ARTIST_DELETE,
    PERM_ARTIST_LIST_MEMBERS,
    PERM_ARTIST_MANAGE_MEMBERS,
    PERM_ARTIST_UPDATE,
    ROLE_OWNER,
    is_assignable,
    roles_grant_permission,
)
from afterwave.stores.artists import ArtistStore
from afterwave.stores.base import isoformat, utc_now
from afterwave.stores.members import MemberStore, dedupe_roles

logger = logging.getLogger(__name__)

# Handles shorter than four characters are reserved for platform subdomains.
HANDLE_PATTERN = re.compile(r"^[a-z0-9]{4,64}$")


def normalize_handle(handle: Optional[str]) -> str:
    return (handle or "").strip().lower()


def validate_handle(handle: str) -> str:
    handle = normalize_handle(handle)
    if not HANDLE_PATTERN.fullmatch(handle):
        raise InvalidInputError(
            "handle must be 4-64 characters of lowercase letters and digits"
        )
    return handle


class ArtistService:
    """Artist page CRUD, member management and ``has_permission``."""

    def __init__(self, artists: ArtistStore, members: MemberStore) -> None:
        self._artists = artists
        self._members = members

    async def _require_artist(self, handle: str) -> Artist:
        artist = self._artists.get(normalize_handle(handle))
        if artist is None:
            raise NotFoundError("artist not found")
        return artist

    def _permitted(self, artist: Artist, user_id: str, permission: str) -> bool:
        if not user_id:
            return False
        if artist.owner_user_id == user_id:
            return True
        if permission == PERM_ARTIST_DELETE:
            return False
        member = self._members.get(artist.handle, user_id)
        if member is None:
            return False
        return roles_grant_permission(member.roles, permission)

    async def has_permission(self, handle: str, user_id: str, permission: str) -> bool:
        """True when the user owns the page or holds a role granting ``permission``."""
        artist = self._artists.get(normalize_handle(handle))
        if artist is None:
            return False
        return self._permitted(artist, user_id, permission)

    async def require_permission(self, handle: str, user_id: str, permission: str) -> Artist:
        """Return the artist, raising ``NotFound``/``Forbidden`` as appropriate."""
        artist = await self._require_artist(handle)
        if not self._permitted(artist, user_id, permission):
            raise ForbiddenError()
        return artist

    # Pages -----------------------------------------------------------------------

    async def create_artist(
        self,
        owner_user_id: str,
        handle: str,
        display_name: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> Artist:
        handle = validate_handle(handle)
        artist = Artist(
            handle=handle,
            display_name=(display_name or "").strip() or handle,
            owner_user_id=owner_user_id,
            created_at=isoformat(utc_now()),
            bio=(bio or "").strip(),
        )
        try:
            self._artists.create(artist)
        except PreconditionFailed as exc:
            raise ConflictError("handle already taken") from exc
        logger.info("Created artist %s", handle)
        return artist

    async def get_artist(self, handle: str) -> Artist:
        return await self._require_artist(handle)

    async def update_artist(
        self,
        handle: str,
        actor_user_id: str,
        *,
        display_name: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> Artist:
        """Partial update. An empty ``display_name`` keeps the current one; ``bio`` is explicit."""
        artist = await self.require_permission(handle, actor_user_id, PERM_ARTIST_UPDATE)
        new_display_name = (display_name or "").strip() or None
        new_bio = bio.strip() if bio is not None else None
        try:
            self._artists.update(artist, display_name=new_display_name, bio=new_bio)
        except PreconditionFailed as exc:
            raise NotFoundError("artist not found") from exc
        return await self._require_artist(artist.handle)

    async def delete_artist(self, handle: str, actor_user_id: str) -> None:
        artist = await self.require_permission(handle, actor_user_id, PERM_ARTIST_DELETE)
        member_ids = [member.user_id for member in self._members.list_for_artist(artist.handle)]
        try:
            self._artists.delete(artist, member_ids)
        except PreconditionFailed as exc:
            raise NotFoundError("artist not found") from exc
        logger.info("Deleted artist %s", artist.handle)

    async def list_for_user(self, user_id: str) -> List[ArtistSummary]:
        """Pages the user owns (role ``owner``) followed by pages they are a member of."""
        summaries: List[ArtistSummary] = []
        owned = set()
        for row in self._artists.list_by_owner(user_id):
            owned.add(row["handle"])
            summaries.append(
                ArtistSummary(
                    handle=row["handle"],
                    display_name=row.get("display_name", ""),
                    created_at=row.get("created_at", ""),
                    role=ROLE_OWNER,
                    roles=[ROLE_OWNER],
                )
            )
        for membership in self._members.list_for_user(user_id):
            if membership.artist_handle in owned:
                continue
            artist = self._artists.get(membership.artist_handle)
            if artist is None:
                continue
            summaries.append(
                ArtistSummary(
                    handle=artist.handle,
                    display_name=artist.display_name,
                    created_at=artist.created_at,
                    role="member",
                    roles=list(membership.roles),
                )
            )
        return summaries

    # Members ---------------------------------------------------------------------

    @staticmethod
    def _validated_roles(roles: Sequence[str]) -> List[str]:
        cleaned = dedupe_roles(roles or [])
        if any(not is_assignable(role) for role in cleaned):
            raise InvalidInputError("roles contain a value that cannot be assigned")
        if not cleaned:
            raise InvalidInputError("at least one role is required")
        return cleaned

    async def add_member(
        self, handle: str, actor_user_id: str, user_id: str, roles: Sequence[str]
    ) -> Member:
        artist = await self.require_permission(handle, actor_user_id, PERM_ARTIST_MANAGE_MEMBERS)
        user_id = (user_id or "").strip()
        if not user_id:
            raise InvalidInputError("user_id is required")
        cleaned = self._validated_roles(roles)
        if user_id == artist.owner_user_id:
            raise OwnerRolesImmutableError()
        try:
            self._members.add(artist.handle, user_id, cleaned)
        except PreconditionFailed as exc:
            raise ConflictError("user is already a member") from exc
        return Member(artist_handle=artist.handle, user_id=user_id, roles=cleaned)

    async def update_member_roles(
        self, handle: str, actor_user_id: str, user_id: str, roles: Sequence[str]
    ) -> Member:
        artist = await self.require_permission(handle, actor_user_id, PERM_ARTIST_MANAGE_MEMBERS)
        cleaned = self._validated_roles(roles)
        if user_id == artist.owner_user_id:
            raise OwnerRolesImmutableError()
        try:
            self._members.replace_roles(artist.handle, user_id, cleaned)
        except PreconditionFailed as exc:
            raise NotFoundError("member not found") from exc
        return Member(artist_handle=artist.handle, user_id=user_id, roles=cleaned)

    async def remove_member(self, handle: str, actor_user_id: str, user_id: str) -> None:
        artist = await self.require_permission(handle, actor_user_id, PERM_ARTIST_MANAGE_MEMBERS)
        if user_id == artist.owner_user_id:
            raise CannotRemoveOwnerError()
        try:
            self._members.remove(artist.handle, user_id)
        except PreconditionFailed as exc:
            raise NotFoundError("member not found") from exc

    async def list_members(self, handle: str, actor_user_id: str) -> List[Member]:
        """Members with the owner first; the owner entry is synthesized if missing."""
        artist = await self.require_permission(handle, actor_user_id, PERM_ARTIST_LIST_MEMBERS)
        members = self._members.list_for_artist(artist.handle)
        owner = next((m for m in members if m.user_id == artist.owner_user_id), None)
        others = [m for m in members if m.user_id != artist.owner_user_id]
        if owner is None:
            owner = Member(
                artist_handle=artist.handle,
                user_id=artist.owner_user_id,
                roles=[ROLE_OWNER],
            )
        return [owner, *others]


__all__ = ["ArtistService", "HANDLE_PATTERN", "normalize_handle", "validate_handle"]
