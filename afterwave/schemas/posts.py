"""Schemas for feed posts and paginated post lists."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class PostCreateRequest(BaseModel):
    title: str = Field(..., description="The post id is the slug of the title.")
    body: str = ""
    image_url: str = ""
    youtube_url: str = ""
    explicit: bool = False


class PostUpdateRequest(BaseModel):
    body: Optional[str] = None
    image_url: Optional[str] = None
    youtube_url: Optional[str] = None
    explicit: Optional[bool] = None


class PostResponse(BaseModel):
    post_id: str
    artist_handle: str
    title: str
    body: str
    image_url: str = ""
    youtube_url: str = ""
    explicit: bool = False
    created_at: str
    updated_at: str = ""
    created_by_user_id: str


class PostPageResponse(BaseModel):
    posts: List[PostResponse]
    has_more: bool
    next_cursor: Optional[str] = None


__all__ = ["PostCreateRequest", "PostPageResponse", "PostResponse", "PostUpdateRequest"]
