"""Cached JSON Web Key Sets and ID-token validation for the identity provider."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx
from jose import JWTError, jwt

from afterwave.core.config import AWSSettings, CognitoSettings
from afterwave.core.errors import UnauthenticatedError, UnavailableError

logger = logging.getLogger(__name__)


class JWKSCache:
    """Process-wide signing keys for one issuer with TTL and refresh-on-miss.

    Reads are lock-free while the cached set is fresh. Refreshes are serialized
    through an ``asyncio.Lock`` so concurrent misses trigger a single fetch.
    """

    def __init__(
        self,
        url: str,
        *,
        ttl_seconds: int = 24 * 3600,
        min_refresh_interval_seconds: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._url = url
        self._ttl = ttl_seconds
        self._min_refresh_interval = min_refresh_interval_seconds
        self._transport = transport
        self._clock = clock
        self._lock = asyncio.Lock()
        self._keys: Dict[str, Dict[str, Any]] = {}
        self._fetched_at: Optional[float] = None

    def _fresh(self) -> bool:
        return self._fetched_at is not None and self._clock() - self._fetched_at < self._ttl

    async def _fetch(self) -> Dict[str, Dict[str, Any]]:
        async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
            try:
                response = await client.get(self._url)
            except httpx.TransportError as exc:
                logger.warning("JWKS fetch from %s failed: %s", self._url, exc)
                raise UnavailableError("identity provider keys unavailable") from exc
        if response.status_code != 200:
            logger.warning("JWKS fetch returned %s", response.status_code)
            raise UnavailableError("identity provider keys unavailable")
        keys: Dict[str, Dict[str, Any]] = {}
        for key in response.json().get("keys", []):
            if key.get("kty") != "RSA" or not key.get("kid") or not key.get("n"):
                continue
            keys[key["kid"]] = key
        return keys

    async def get_keys(self, *, force: bool = False) -> Dict[str, Dict[str, Any]]:
        """Return the key set, fetching it when stale or when ``force`` is set."""
        if not force and self._fresh():
            return self._keys
        async with self._lock:
            recently = (
                self._fetched_at is not None
                and self._clock() - self._fetched_at < self._min_refresh_interval
            )
            if self._fresh() and (not force or recently):
                return self._keys
            self._keys = await self._fetch()
            self._fetched_at = self._clock()
            return self._keys

    async def get_key(self, kid: str) -> Optional[Dict[str, Any]]:
        """Look up one key; an unknown ``kid`` forces a single refresh."""
        keys = await self.get_keys()
        if kid in keys:
            return keys[kid]
        keys = await self.get_keys(force=True)
        return keys.get(kid)


@dataclass(slots=True)
class IdentityClaims:
    subject: str
    email: str


class IDTokenValidator:
    """Validate ID tokens issued by the user pool (RS256, iss, aud, exp, sub)."""

    def __init__(self, cache: JWKSCache, *, issuer: str, audience: str) -> None:
        self._cache = cache
        self._issuer = issuer
        self._audience = audience

    @classmethod
    def for_cognito(
        cls,
        cognito: CognitoSettings,
        aws: AWSSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "IDTokenValidator":
        issuer = f"https://cognito-idp.{aws.region_name}.amazonaws.com/{cognito.user_pool_id}"
        cache = JWKSCache(
            f"{issuer}/.well-known/jwks.json",
            ttl_seconds=cognito.jwks_cache_ttl_seconds,
            transport=transport,
        )
        return cls(cache, issuer=issuer, audience=cognito.client_id or "")

    async def validate(self, id_token: str) -> IdentityClaims:
        try:
            header = jwt.get_unverified_header(id_token)
        except JWTError as exc:
            raise UnauthenticatedError("invalid id token") from exc
        if header.get("alg") != "RS256" or not header.get("kid"):
            raise UnauthenticatedError("invalid id token")
        key = await self._cache.get_key(header["kid"])
        if key is None:
            raise UnauthenticatedError("invalid id token")
        try:
            claims = jwt.decode(
                id_token,
                key,
                algorithms=["RS256"],
                audience=self._audience,
                issuer=self._issuer,
                options={"require_exp": True, "require_sub": True, "verify_at_hash": False},
            )
        except JWTError as exc:
            raise UnauthenticatedError("invalid id token") from exc
        subject = claims.get("sub") or ""
        if not subject:
            raise UnauthenticatedError("invalid id token")
        return IdentityClaims(subject=subject, email=(claims.get("email") or "").strip().lower())


__all__ = ["IDTokenValidator", "IdentityClaims", "JWKSCache"]
