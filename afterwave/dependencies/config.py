"""Settings injection for routers."""

from typing import Annotated

from fastapi import Depends

from afterwave.core.config import AppSettings, get_settings


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning the cached application settings."""
    return get_settings()


def cookie_secure(settings: Annotated[AppSettings, Depends(get_app_settings)]) -> bool:
    """Whether session cookies carry the ``Secure`` attribute."""
    return settings.security.cookie_secure


SecureCookies = Annotated[bool, Depends(cookie_secure)]

__all__ = ["SecureCookies", "cookie_secure", "get_app_settings"]
