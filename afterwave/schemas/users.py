"""Schemas for the signed-in user's account."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    user_id: str
    email: str
    created_at: str


class LinkIdentityRequest(BaseModel):
    id_token: str = Field(..., min_length=1)


class FollowingResponse(BaseModel):
    handles: List[str]


__all__ = ["FollowingResponse", "LinkIdentityRequest", "UserResponse"]
