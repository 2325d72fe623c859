"""Schemas for artist pages and members."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class ArtistCreateRequest(BaseModel):
    handle: str = Field(..., description="4-64 lowercase letters and digits; immutable.")
    display_name: Optional[str] = Field(None, description="Defaults to the handle.")
    bio: Optional[str] = None


class ArtistUpdateRequest(BaseModel):
    display_name: Optional[str] = Field(
        None, description="Omitted or empty keeps the current display name."
    )
    bio: Optional[str] = Field(None, description="Omitted keeps the bio; empty clears it.")


class ArtistResponse(BaseModel):
    handle: str
    display_name: str
    bio: str = ""
    owner_user_id: str
    created_at: str
    follower_count: int = 0


class ArtistSummaryResponse(BaseModel):
    handle: str
    display_name: str
    created_at: str
    role: str = Field(..., description="owner or member")
    roles: List[str] = Field(default_factory=list)


class ArtistListResponse(BaseModel):
    artists: List[ArtistSummaryResponse]


class MemberAddRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    roles: List[str] = Field(..., description="Assignable roles: admin, feed, music, photos, gigs.")


class MemberRolesRequest(BaseModel):
    roles: List[str]


class MemberResponse(BaseModel):
    user_id: str
    roles: List[str]


class MemberListResponse(BaseModel):
    members: List[MemberResponse]


class FollowerListResponse(BaseModel):
    user_ids: List[str]


__all__ = [
    "ArtistCreateRequest",
    "ArtistListResponse",
    "ArtistResponse",
    "ArtistSummaryResponse",
    "ArtistUpdateRequest",
    "FollowerListResponse",
    "MemberAddRequest",
    "MemberListResponse",
    "MemberResponse",
    "MemberRolesRequest",
]
