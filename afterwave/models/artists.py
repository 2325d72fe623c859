"""
Domain models for artist pages and their members.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(slots=True)
class Artist:
    handle: str
    display_name: str
    owner_user_id: str
    created_at: str
    bio: str = ""
    follower_count: int = 0


@dataclass(slots=True)
class Member:
    """A user's roles on one artist page."""

    artist_handle: str
    user_id: str
    roles: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ArtistSummary:
    """An artist page as seen from one user's account, with that user's roles."""

    handle: str
    display_name: str
    created_at: str
    role: str
    roles: List[str] = field(default_factory=list)


__all__ = ["Artist", "ArtistSummary", "Member"]
