"""Service layer exports."""

from .artists import ArtistService
from .auth import AuthService
from .feed import FeedService
from .follows import FollowService
from .posts import PostService, slugify
from .token_signer import SessionClaims, SessionTokenSigner
from .users import UserService

__all__ = [
    "ArtistService",
    "AuthService",
    "FeedService",
    "FollowService",
    "PostService",
    "SessionClaims",
    "SessionTokenSigner",
    "UserService",
    "slugify",
]
