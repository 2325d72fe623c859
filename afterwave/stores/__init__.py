"""Entity stores over the single-table key-value layout."""

from .activity import ActivityStore
from .artists import ArtistStore
from .credentials import CredentialStore
from .follows import FollowStore
from .members import MemberStore
from .posts import PostStore
from .users import UserStore

__all__ = [
    "ActivityStore",
    "ArtistStore",
    "CredentialStore",
    "FollowStore",
    "MemberStore",
    "PostStore",
    "UserStore",
]
