"""
Artist page, member and follower endpoints.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Annotated

from fastapi import APIRouter, Depends, Response

from afterwave.dependencies import CurrentSession, get_artist_service, get_follow_service
from afterwave.models.artists import Artist, Member
from afterwave.schemas import (
    ArtistCreateRequest,
    ArtistListResponse,
    ArtistResponse,
    ArtistSummaryResponse,
    ArtistUpdateRequest,
    FollowerListResponse,
    MemberAddRequest,
    MemberListResponse,
    MemberResponse,
    MemberRolesRequest,
)
from afterwave.services import ArtistService, FollowService

router = APIRouter(prefix="/artists", tags=["artists"])

ArtistDependency = Annotated[ArtistService, Depends(get_artist_service)]
FollowDependency = Annotated[FollowService, Depends(get_follow_service)]


def _artist_response(artist: Artist) -> ArtistResponse:
    return ArtistResponse(
        handle=artist.handle,
        display_name=artist.display_name,
        bio=artist.bio,
        owner_user_id=artist.owner_user_id,
        created_at=artist.created_at,
        follower_count=artist.follower_count,
    )


def _member_response(member: Member) -> MemberResponse:
    return MemberResponse(user_id=member.user_id, roles=list(member.roles))


@router.post("", status_code=HTTPStatus.CREATED, response_model=ArtistResponse)
async def create_artist(
    payload: ArtistCreateRequest, session: CurrentSession, artists: ArtistDependency
) -> ArtistResponse:
    artist = await artists.create_artist(
        session.user_id, payload.handle, payload.display_name, payload.bio
    )
    return _artist_response(artist)


# Registered before /{handle} so "me" is never read as a handle.
@router.get("/me", response_model=ArtistListResponse)
async def list_my_artists(session: CurrentSession, artists: ArtistDependency) -> ArtistListResponse:
    summaries = await artists.list_for_user(session.user_id)
    return ArtistListResponse(
        artists=[
            ArtistSummaryResponse(
                handle=summary.handle,
                display_name=summary.display_name,
                created_at=summary.created_at,
                role=summary.role,
                roles=list(summary.roles),
            )
            for summary in summaries
        ]
    )


@router.get("/{handle}", response_model=ArtistResponse)
async def get_artist(handle: str, artists: ArtistDependency) -> ArtistResponse:
    return _artist_response(await artists.get_artist(handle))


@router.patch("/{handle}", response_model=ArtistResponse)
async def update_artist(
    handle: str,
    payload: ArtistUpdateRequest,
    session: CurrentSession,
    artists: ArtistDependency,
) -> ArtistResponse:
    artist = await artists.update_artist(
        handle, session.user_id, display_name=payload.display_name, bio=payload.bio
    )
    return _artist_response(artist)


@router.delete("/{handle}", status_code=HTTPStatus.NO_CONTENT)
async def delete_artist(handle: str, session: CurrentSession, artists: ArtistDependency) -> Response:
    await artists.delete_artist(handle, session.user_id)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.get("/{handle}/members", response_model=MemberListResponse)
async def list_members(
    handle: str, session: CurrentSession, artists: ArtistDependency
) -> MemberListResponse:
    members = await artists.list_members(handle, session.user_id)
    return MemberListResponse(members=[_member_response(member) for member in members])


@router.post("/{handle}/members", status_code=HTTPStatus.NO_CONTENT)
async def add_member(
    handle: str,
    payload: MemberAddRequest,
    session: CurrentSession,
    artists: ArtistDependency,
) -> Response:
    await artists.add_member(handle, session.user_id, payload.user_id, payload.roles)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.patch("/{handle}/members/{user_id}", status_code=HTTPStatus.NO_CONTENT)
async def update_member_roles(
    handle: str,
    user_id: str,
    payload: MemberRolesRequest,
    session: CurrentSession,
    artists: ArtistDependency,
) -> Response:
    await artists.update_member_roles(handle, session.user_id, user_id, payload.roles)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.delete("/{handle}/members/{user_id}", status_code=HTTPStatus.NO_CONTENT)
async def remove_member(
    handle: str, user_id: str, session: CurrentSession, artists: ArtistDependency
) -> Response:
    await artists.remove_member(handle, session.user_id, user_id)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.get("/{handle}/followers", response_model=FollowerListResponse)
async def list_followers(handle: str, follows: FollowDependency) -> FollowerListResponse:
    """Most recent followers first, at most 100."""
    return FollowerListResponse(user_ids=await follows.list_followers(handle))


__all__ = ["router"]
