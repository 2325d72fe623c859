"""
Endpoints for the signed-in user's account and the pages they follow.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Annotated

from fastapi import APIRouter, Depends, Response

from afterwave.api.cookies import clear_session_cookies
from afterwave.dependencies import (
    CurrentSession,
    SecureCookies,
    get_follow_service,
    get_user_service,
)
from afterwave.schemas import FollowingResponse, LinkIdentityRequest, UserResponse
from afterwave.services import FollowService, UserService

router = APIRouter(tags=["users"])

UserDependency = Annotated[UserService, Depends(get_user_service)]
FollowDependency = Annotated[FollowService, Depends(get_follow_service)]


@router.get("/users/me", response_model=UserResponse)
async def get_me(session: CurrentSession, users: UserDependency) -> UserResponse:
    user = await users.get_user(session.user_id)
    return UserResponse(user_id=user.user_id, email=user.email, created_at=user.created_at)


@router.post("/users/me/identities", status_code=HTTPStatus.NO_CONTENT)
async def link_identity(
    payload: LinkIdentityRequest, session: CurrentSession, users: UserDependency
) -> Response:
    await users.link_identity(session.user_id, payload.id_token)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.delete("/account", status_code=HTTPStatus.NO_CONTENT)
async def delete_account(
    session: CurrentSession,
    users: UserDependency,
    secure_cookies: SecureCookies,
) -> Response:
    """Delete the account, revoke every session and clear the cookies."""
    await users.delete_account(session.user_id)
    response = Response(status_code=HTTPStatus.NO_CONTENT)
    clear_session_cookies(response, secure=secure_cookies)
    return response


@router.get("/users/me/following", response_model=FollowingResponse)
async def list_following(session: CurrentSession, follows: FollowDependency) -> FollowingResponse:
    return FollowingResponse(handles=await follows.list_following(session.user_id))


@router.post("/users/me/following/{handle}", status_code=HTTPStatus.NO_CONTENT)
async def follow_artist(handle: str, session: CurrentSession, follows: FollowDependency) -> Response:
    """Follow a page. Following twice is a no-op."""
    await follows.follow(session.user_id, handle)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.delete("/users/me/following/{handle}", status_code=HTTPStatus.NO_CONTENT)
async def unfollow_artist(handle: str, session: CurrentSession, follows: FollowDependency) -> Response:
    await follows.unfollow(session.user_id, handle)
    return Response(status_code=HTTPStatus.NO_CONTENT)


__all__ = ["router"]
