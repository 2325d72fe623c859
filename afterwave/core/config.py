"""
Application configuration models and helpers.

Settings are grouped per concern (AWS, security, identity provider, search
index, auth clients) and composed by ``AppSettings`` so the API process and
any maintenance scripts share one configuration surface.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
    populate_by_name=True,
)

# (session_ttl_seconds, refresh_ttl_seconds) per registered client.
DEFAULT_CLIENT_POLICIES: dict[str, tuple[int, int]] = {
    "web": (15 * 60, 7 * 24 * 3600),
    "ios": (30 * 24 * 3600, 90 * 24 * 3600),
    "android": (30 * 24 * 3600, 90 * 24 * 3600),
    "desktop": (30 * 24 * 3600, 90 * 24 * 3600),
}


class AWSSettings(BaseSettings):
    """Settings for the AWS services backing the platform."""

    model_config = _ENV_CONFIG

    region_name: str = Field("us-east-1", alias="AWS_REGION")
    dynamodb_table_name: str = Field("afterwave", alias="DYNAMO_TABLE")
    dynamodb_endpoint: Optional[str] = Field(
        None,
        alias="DYNAMODB_ENDPOINT",
        description="Override endpoint, e.g. DynamoDB Local during development.",
    )
    connect_timeout_seconds: float = Field(5.0, alias="AWS_CONNECT_TIMEOUT")
    read_timeout_seconds: float = Field(10.0, alias="AWS_READ_TIMEOUT")


class SecuritySettings(BaseSettings):
    """Session token signing keys and cookie policy."""

    model_config = _ENV_CONFIG

    jwt_private_key_path: Optional[str] = Field(None, alias="JWT_PRIVATE_KEY_PATH")
    jwt_public_key_path: Optional[str] = Field(None, alias="JWT_PUBLIC_KEY_PATH")
    cookie_secure: bool = Field(
        True,
        alias="COOKIE_SECURE",
        description="Set false for plain-HTTP local development.",
    )


class CognitoSettings(BaseSettings):
    """Managed identity provider configuration."""

    model_config = _ENV_CONFIG

    user_pool_id: Optional[str] = Field(None, alias="COGNITO_USER_POOL_ID")
    client_id: Optional[str] = Field(None, alias="COGNITO_CLIENT_ID")
    jwks_cache_ttl_seconds: int = Field(24 * 3600, alias="COGNITO_JWKS_TTL")

    @property
    def enabled(self) -> bool:
        return bool(self.user_pool_id and self.client_id)


class SearchSettings(BaseSettings):
    """Feed search index configuration."""

    model_config = _ENV_CONFIG

    endpoint: Optional[str] = Field(None, alias="OPENSEARCH_ENDPOINT")
    feed_index: str = Field("afterwave-feed", alias="OPENSEARCH_FEED_INDEX")
    retry_attempts: int = Field(3, alias="OPENSEARCH_RETRY_ATTEMPTS")
    retry_backoff_seconds: float = Field(0.1, alias="OPENSEARCH_RETRY_BACKOFF")
    timeout_seconds: float = Field(10.0, alias="OPENSEARCH_TIMEOUT")


class AuthSettings(BaseSettings):
    """Registered auth clients and their token lifetimes."""

    model_config = _ENV_CONFIG

    client_policies: dict[str, tuple[int, int]] = Field(
        default_factory=lambda: dict(DEFAULT_CLIENT_POLICIES),
        alias="AUTH_CLIENT_POLICIES",
        description="JSON object mapping client id to [session_ttl, refresh_ttl].",
    )
    auth_code_ttl_seconds: int = Field(300, alias="AUTH_CODE_TTL")

    @field_validator("client_policies")
    @classmethod
    def _normalize_client_ids(
        cls, value: dict[str, tuple[int, int]]
    ) -> dict[str, tuple[int, int]]:
        return {key.strip().lower(): ttl for key, ttl in value.items() if key.strip()}


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = _ENV_CONFIG

    environment: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="APP_LOG_LEVEL")
    storage_backend: Literal["dynamodb", "sqlite"] = Field(
        "dynamodb", alias="STORAGE_BACKEND"
    )
    sqlite_path: str = Field("./data/afterwave.db", alias="SQLITE_PATH")
    aws: AWSSettings = Field(default_factory=AWSSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    cognito: CognitoSettings = Field(default_factory=CognitoSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "AuthSettings",
    "AWSSettings",
    "CognitoSettings",
    "DEFAULT_CLIENT_POLICIES",
    "SearchSettings",
    "SecuritySettings",
    "get_settings",
]
