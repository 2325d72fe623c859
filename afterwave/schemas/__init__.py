"""Pydantic schemas exposed by the API."""

from .artists import (
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
from .auth import (
    AuthorizationCodeResponse,
    CredentialsRequest,
    FederatedLoginRequest,
    RefreshRequest,
    TokenPairResponse,
    TokenRequest,
)
from .posts import PostCreateRequest, PostPageResponse, PostResponse, PostUpdateRequest
from .users import FollowingResponse, LinkIdentityRequest, UserResponse

__all__ = [
    "ArtistCreateRequest",
    "ArtistListResponse",
    "ArtistResponse",
    "ArtistSummaryResponse",
    "ArtistUpdateRequest",
    "AuthorizationCodeResponse",
    "CredentialsRequest",
    "FederatedLoginRequest",
    "FollowerListResponse",
    "FollowingResponse",
    "LinkIdentityRequest",
    "MemberAddRequest",
    "MemberListResponse",
    "MemberResponse",
    "MemberRolesRequest",
    "PostCreateRequest",
    "PostPageResponse",
    "PostResponse",
    "PostUpdateRequest",
    "RefreshRequest",
    "TokenPairResponse",
    "TokenRequest",
]
