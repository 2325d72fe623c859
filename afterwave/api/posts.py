"""
Feed post endpoints scoped to one artist page.
"""

from __future__ import annotations

from dataclasses import asdict
from http import HTTPStatus
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Response

from afterwave.dependencies import CurrentSession, get_post_service
from afterwave.models.posts import Post, PostPage
from afterwave.schemas import PostCreateRequest, PostPageResponse, PostResponse, PostUpdateRequest
from afterwave.services import PostService

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100

router = APIRouter(prefix="/artists/{handle}/posts", tags=["posts"])

PostDependency = Annotated[PostService, Depends(get_post_service)]


def parse_limit(limit: Optional[int]) -> int:
    """Page size; anything missing or outside 1..100 falls back to the default."""
    if limit is None or limit < 1 or limit > MAX_PAGE_LIMIT:
        return DEFAULT_PAGE_LIMIT
    return limit


def post_response(post: Post) -> PostResponse:
    return PostResponse(**asdict(post))


def page_response(page: PostPage) -> PostPageResponse:
    return PostPageResponse(
        posts=[post_response(post) for post in page.posts],
        has_more=page.has_more,
        next_cursor=page.next_cursor,
    )


@router.post("", status_code=HTTPStatus.CREATED, response_model=PostResponse)
async def create_post(
    handle: str, payload: PostCreateRequest, session: CurrentSession, posts: PostDependency
) -> PostResponse:
    post = await posts.create_post(
        handle,
        session.user_id,
        title=payload.title,
        body=payload.body,
        image_url=payload.image_url,
        youtube_url=payload.youtube_url,
        explicit=payload.explicit,
    )
    return post_response(post)


@router.get("", response_model=PostPageResponse)
async def list_posts(
    handle: str,
    posts: PostDependency,
    limit: Optional[int] = None,
    cursor: Optional[str] = None,
) -> PostPageResponse:
    """Newest first."""
    page = await posts.list_posts(handle, limit=parse_limit(limit), cursor=cursor or None)
    return page_response(page)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(handle: str, post_id: str, posts: PostDependency) -> PostResponse:
    return post_response(await posts.get_post(handle, post_id))


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(
    handle: str,
    post_id: str,
    payload: PostUpdateRequest,
    session: CurrentSession,
    posts: PostDependency,
) -> PostResponse:
    post = await posts.update_post(
        handle,
        post_id,
        session.user_id,
        body=payload.body,
        image_url=payload.image_url,
        youtube_url=payload.youtube_url,
        explicit=payload.explicit,
    )
    return post_response(post)


@router.delete("/{post_id}", status_code=HTTPStatus.NO_CONTENT)
async def delete_post(
    handle: str, post_id: str, session: CurrentSession, posts: PostDependency
) -> Response:
    await posts.delete_post(handle, post_id, session.user_id)
    return Response(status_code=HTTPStatus.NO_CONTENT)


__all__ = ["DEFAULT_PAGE_LIMIT", "MAX_PAGE_LIMIT", "page_response", "parse_limit", "post_response", "router"]
