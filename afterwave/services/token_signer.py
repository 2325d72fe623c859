"""RS256 session tokens.

The private key signs on the auth path; every other request only needs the
public key to verify, so token checks never touch the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import JWTError, jwt

from afterwave.core.config import SecuritySettings
from afterwave.core.errors import UnauthenticatedError

logger = logging.getLogger(__name__)

ALGORITHM = "RS256"


@dataclass(slots=True)
class SessionClaims:
    user_id: str
    session_id: str


def _private_pem(key: rsa.RSAPrivateKey) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def _public_pem(key: rsa.RSAPublicKey) -> str:
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


class SessionTokenSigner:
    """Sign and verify session tokens asserting ``sub`` (user) and ``jti`` (session)."""

    def __init__(self, *, private_key_pem: Optional[str], public_key_pem: str) -> None:
        self._private_pem = private_key_pem
        self._public_pem = public_key_pem

    @classmethod
    def generate(cls, key_size: int = 2048) -> "SessionTokenSigner":
        """Create a signer with a fresh in-memory key pair."""
        key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
        return cls(private_key_pem=_private_pem(key), public_key_pem=_public_pem(key.public_key()))

    @classmethod
    def from_settings(cls, settings: SecuritySettings) -> "SessionTokenSigner":
        """Load PEM keys from the configured paths.

        The public key is derived from the private key when only the latter is
        configured. Without any key an ephemeral pair is generated, which
        invalidates all sessions on restart.
        """
        private_pem: Optional[str] = None
        public_pem: Optional[str] = None
        if settings.jwt_private_key_path:
            raw = Path(settings.jwt_private_key_path).read_bytes()
            private_key = serialization.load_pem_private_key(raw, password=None)
            if not isinstance(private_key, rsa.RSAPrivateKey):
                raise ValueError("JWT private key must be an RSA key")
            private_pem = _private_pem(private_key)
            public_pem = _public_pem(private_key.public_key())
        if settings.jwt_public_key_path:
            raw = Path(settings.jwt_public_key_path).read_bytes()
            public_key = serialization.load_pem_public_key(raw)
            if not isinstance(public_key, rsa.RSAPublicKey):
                raise ValueError("JWT public key must be an RSA key")
            public_pem = _public_pem(public_key)
        if public_pem is None:
            logger.warning("No JWT keys configured; generating an ephemeral key pair")
            return cls.generate()
        return cls(private_key_pem=private_pem, public_key_pem=public_pem)

    def sign(self, *, user_id: str, session_id: str, issued_at: datetime, expires_at: datetime) -> str:
        if not self._private_pem:
            raise RuntimeError("This signer has no private key and can only verify")
        claims = {
            "sub": user_id,
            "jti": session_id,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(claims, self._private_pem, algorithm=ALGORITHM)

    def verify(self, token: str) -> SessionClaims:
        """Check signature and expiry. Raises ``UnauthenticatedError`` when invalid."""
        if not token:
            raise UnauthenticatedError("missing or invalid authorization")
        try:
            claims = jwt.decode(
                token,
                self._public_pem,
                algorithms=[ALGORITHM],
                options={"require_exp": True, "require_sub": True, "verify_aud": False},
            )
        except JWTError as exc:
            raise UnauthenticatedError("invalid token") from exc
        if not claims.get("sub"):
            raise UnauthenticatedError("invalid token")
        return SessionClaims(user_id=claims["sub"], session_id=claims.get("jti", ""))


__all__ = ["SessionClaims", "SessionTokenSigner"]
