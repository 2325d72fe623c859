"""
Role vocabulary and permission table for artist page collaboration.

``owner`` is stored on the owner's member row so ownership can move later, but
it is never assignable through the member API. Deleting a page is not granted
by any role; only the page's owner id passes that check.
"""

from __future__ import annotations

from typing import Iterable

ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_FEED = "feed"
ROLE_MUSIC = "music"
ROLE_PHOTOS = "photos"
ROLE_GIGS = "gigs"

ASSIGNABLE_ROLES = (ROLE_ADMIN, ROLE_FEED, ROLE_MUSIC, ROLE_PHOTOS, ROLE_GIGS)

PERM_ARTIST_UPDATE = "artist:update"
PERM_ARTIST_DELETE = "artist:delete"
PERM_ARTIST_MANAGE_MEMBERS = "artist:manage_members"
PERM_ARTIST_LIST_MEMBERS = "artist:list_members"
PERM_FEED_CREATE = "feed:create"
PERM_FEED_UPDATE = "feed:update"
PERM_FEED_DELETE = "feed:delete"
PERM_MUSIC_MANAGE = "music:manage"
PERM_PHOTOS_MANAGE = "photos:manage"
PERM_GIGS_MANAGE = "gigs:manage"

_MANAGEMENT = frozenset(
    {
        PERM_ARTIST_UPDATE,
        PERM_ARTIST_MANAGE_MEMBERS,
        PERM_ARTIST_LIST_MEMBERS,
        PERM_FEED_CREATE,
        PERM_FEED_UPDATE,
        PERM_FEED_DELETE,
        PERM_MUSIC_MANAGE,
        PERM_PHOTOS_MANAGE,
        PERM_GIGS_MANAGE,
    }
)

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    ROLE_OWNER: _MANAGEMENT,
    ROLE_ADMIN: _MANAGEMENT,
    ROLE_FEED: frozenset(
        {PERM_FEED_CREATE, PERM_FEED_UPDATE, PERM_FEED_DELETE, PERM_ARTIST_LIST_MEMBERS}
    ),
    ROLE_MUSIC: frozenset({PERM_MUSIC_MANAGE, PERM_ARTIST_LIST_MEMBERS}),
    ROLE_PHOTOS: frozenset({PERM_PHOTOS_MANAGE, PERM_ARTIST_LIST_MEMBERS}),
    ROLE_GIGS: frozenset({PERM_GIGS_MANAGE, PERM_ARTIST_LIST_MEMBERS}),
}

ALL_PERMISSIONS = frozenset().union(*ROLE_PERMISSIONS.values()) | {PERM_ARTIST_DELETE}


def role_grants_permission(role: str, permission: str) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def roles_grant_permission(roles: Iterable[str], permission: str) -> bool:
    return any(role_grants_permission(role, permission) for role in roles)


def is_assignable(role: str) -> bool:
    return role in ASSIGNABLE_ROLES


def is_valid_role(role: str) -> bool:
    return role == ROLE_OWNER or is_assignable(role)


__all__ = [
    "ALL_PERMISSIONS",
    "ASSIGNABLE_ROLES",
    "PERM_ARTIST_DELETE",
    "PERM_ARTIST_LIST_MEMBERS",
    "PERM_ARTIST_MANAGE_MEMBERS",
    "PERM_ARTIST_UPDATE",
    "PERM_FEED_CREATE",
    "PERM_FEED_DELETE",
    "PERM_FEED_UPDATE",
    "PERM_GIGS_MANAGE",
    "PERM_MUSIC_MANAGE",
    "PERM_PHOTOS_MANAGE",
    "ROLE_ADMIN",
    "ROLE_FEED",
    "ROLE_GIGS",
    "ROLE_MUSIC",
    "ROLE_OWNER",
    "ROLE_PERMISSIONS",
    "ROLE_PHOTOS",
    "is_assignable",
    "is_valid_role",
    "role_grants_permission",
    "roles_grant_permission",
]
