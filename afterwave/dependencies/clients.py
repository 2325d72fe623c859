"""
Factory functions to provide shared clients and services as FastAPI dependencies.

Clients are process-wide singletons. Services are cheap wrappers assembled
per request from those clients, so overriding a client dependency (as the
tests do) flows through every service built on it.
"""

from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

from fastapi import Depends

from afterwave.clients import (
    CognitoClient,
    DynamoDBClient,
    FeedIndexClient,
    IDTokenValidator,
    KeyValueStore,
    SQLiteFeedIndex,
    SQLiteStore,
)
from afterwave.core.config import get_settings
from afterwave.services import (
    ArtistService,
    AuthService,
    FeedService,
    FollowService,
    PostService,
    SessionTokenSigner,
    UserService,
)
from afterwave.services.posts import FeedIndex
from afterwave.services.users import IdentityProvider
from afterwave.stores import (
    ActivityStore,
    ArtistStore,
    CredentialStore,
    FollowStore,
    MemberStore,
    PostStore,
    UserStore,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_record_store() -> KeyValueStore:
    """Provide the single-table record store for the configured back-end."""
    settings = _settings()
    if settings.storage_backend == "sqlite":
        return SQLiteStore(settings.sqlite_path)
    return DynamoDBClient(settings.aws)


@lru_cache()
def get_feed_index() -> FeedIndex:
    """Provide the OpenSearch feed index, or a local SQLite index when unconfigured."""
    settings = _settings()
    if settings.search.endpoint:
        return FeedIndexClient(settings.search)
    db_path = Path(settings.sqlite_path)
    return SQLiteFeedIndex(str(db_path.with_name(f"{db_path.stem}-feed.db")))


@lru_cache()
def get_token_signer() -> SessionTokenSigner:
    """Provide the RS256 signer for session tokens."""
    return SessionTokenSigner.from_settings(_settings().security)


@lru_cache()
def get_identity_provider() -> Optional[IdentityProvider]:
    """Provide the Cognito client when a user pool is configured."""
    settings = _settings()
    if not settings.cognito.enabled:
        return None
    return CognitoClient(settings.cognito, settings.aws)


@lru_cache()
def get_id_token_validator() -> Optional[IDTokenValidator]:
    """Provide the ID-token validator with its own JWKS cache."""
    settings = _settings()
    if not settings.cognito.enabled:
        return None
    return IDTokenValidator.for_cognito(settings.cognito, settings.aws)


RecordStore = Annotated[KeyValueStore, Depends(get_record_store)]


def get_auth_service(
    db: RecordStore,
    signer: Annotated[SessionTokenSigner, Depends(get_token_signer)],
) -> AuthService:
    """Build the session/credential service."""
    auth_settings = _settings().auth
    return AuthService(
        CredentialStore(db),
        signer,
        activity=ActivityStore(db),
        auth_code_ttl=timedelta(seconds=auth_settings.auth_code_ttl_seconds),
    )


def get_user_service(
    db: RecordStore,
    auth: Annotated[AuthService, Depends(get_auth_service)],
    identity: Annotated[Optional[IdentityProvider], Depends(get_identity_provider)],
    validator: Annotated[Optional[IDTokenValidator], Depends(get_id_token_validator)],
) -> UserService:
    """Build the account service."""
    return UserService(UserStore(db), auth, identity=identity, id_token_validator=validator)


def get_artist_service(db: RecordStore) -> ArtistService:
    """Build the artist page service."""
    return ArtistService(ArtistStore(db), MemberStore(db))


def get_follow_service(db: RecordStore) -> FollowService:
    """Build the follow service."""
    return FollowService(FollowStore(db), ArtistStore(db))


def get_post_service(
    db: RecordStore,
    artists: Annotated[ArtistService, Depends(get_artist_service)],
    index: Annotated[FeedIndex, Depends(get_feed_index)],
) -> PostService:
    """Build the feed post service."""
    return PostService(PostStore(db), artists, index)


def get_feed_service(
    db: RecordStore,
    index: Annotated[FeedIndex, Depends(get_feed_index)],
) -> FeedService:
    """Build the collated feed service."""
    return FeedService(FollowStore(db), PostStore(db), index)


__all__ = [
    "RecordStore",
    "get_artist_service",
    "get_auth_service",
    "get_feed_index",
    "get_feed_service",
    "get_follow_service",
    "get_id_token_validator",
    "get_identity_provider",
    "get_post_service",
    "get_record_store",
    "get_token_signer",
    "get_user_service",
]
