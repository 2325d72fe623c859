"""
Domain models for artist feed posts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(slots=True)
class Post:
    post_id: str
    artist_handle: str
    title: str
    body: str
    created_at: str
    created_by_user_id: str
    image_url: str = ""
    youtube_url: str = ""
    explicit: bool = False
    updated_at: str = ""


@dataclass(slots=True)
class PostPage:
    posts: List[Post] = field(default_factory=list)
    next_cursor: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


__all__ = ["Post", "PostPage"]
