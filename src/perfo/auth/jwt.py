"""
RS256 JWT issuing and verification.

Access tokens carry the user's role so clients can render admin screens
without an extra round-trip; authorization itself always re-reads the user
row (see ``perfo.auth.dependencies``).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import jwt

from perfo.config import get_settings

_private_key: str | None = None
_public_key: str | None = None


def _load_keys() -> tuple[str, str]:
    """Read the PEM key pair from disk once."""
    global _private_key, _public_key  # noqa: PLW0603
    if _private_key is None or _public_key is None:
        settings = get_settings()
        _private_key = Path(settings.jwt_private_key_path).read_text()
        _public_key = Path(settings.jwt_public_key_path).read_text()
    return _private_key, _public_key


def reset_keys() -> None:
    """Forget cached keys (tests swap key files between runs)."""
    global _private_key, _public_key  # noqa: PLW0603
    _private_key = None
    _public_key = None


def _encode(claims: dict[str, Any], lifetime: timedelta) -> str:
    private_key, _ = _load_keys()
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {**claims, "iat": now, "exp": now + lifetime, "iss": settings.jwt_issuer}
    return jwt.encode(payload, private_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: int, role: str) -> str:
    settings = get_settings()
    return _encode(
        {"sub": str(user_id), "role": role, "type": "access"},
        timedelta(minutes=settings.jwt_access_token_expire_minutes),
    )


def create_refresh_token(user_id: int, *, token_id: str) -> str:
    """Long-lived token; ``token_id`` becomes the ``jti`` used for revocation."""
    settings = get_settings()
    return _encode(
        {"sub": str(user_id), "jti": token_id, "type": "refresh"},
        timedelta(days=settings.jwt_refresh_token_expire_days),
    )


def verify_token(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Decode and validate a token.

    Raises:
        jwt.InvalidTokenError: bad signature, issuer, expiry or token type.
    """
    _, public_key = _load_keys()
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            public_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type") != expected_type:
        msg = f"Expected token type '{expected_type}', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)
    return payload
