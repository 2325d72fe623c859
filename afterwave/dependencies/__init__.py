"""Expose dependency helpers for FastAPI routers."""

from .auth import CurrentSession, get_session_claims
from .clients import (
    get_artist_service,
    get_auth_service,
    get_feed_index,
    get_feed_service,
    get_follow_service,
    get_id_token_validator,
    get_identity_provider,
    get_post_service,
    get_record_store,
    get_token_signer,
    get_user_service,
)
from .config import SecureCookies, get_app_settings

__all__ = [
    "CurrentSession",
    "SecureCookies",
    "get_app_settings",
    "get_artist_service",
    "get_auth_service",
    "get_feed_index",
    "get_feed_service",
    "get_follow_service",
    "get_id_token_validator",
    "get_identity_provider",
    "get_post_service",
    "get_record_store",
    "get_session_claims",
    "get_token_signer",
    "get_user_service",
]
