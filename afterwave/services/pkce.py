"""PKCE helpers (RFC 7636), S256 method only."""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets

METHOD_S256 = "S256"


def s256_challenge(verifier: str) -> str:
    """Return base64url(SHA-256(verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def verify_s256(verifier: str, challenge: str) -> bool:
    """Constant-time check that ``verifier`` hashes to ``challenge``."""
    if not verifier or not challenge:
        return False
    try:
        computed = s256_challenge(verifier)
    except UnicodeEncodeError:
        return False
    if not challenge.isascii():
        return False
    return hmac.compare_digest(computed.encode("ascii"), challenge.encode("ascii"))


def generate_verifier(num_bytes: int = 32) -> str:
    return secrets.token_urlsafe(num_bytes)


__all__ = ["METHOD_S256", "generate_verifier", "s256_challenge", "verify_s256"]
