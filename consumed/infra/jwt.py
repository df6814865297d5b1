"""JWT helpers for Supabase-issued access tokens.

Tokens are HS256-signed with the project JWT secret and carry the auth user id
in ``sub`` and the address in ``email``.
"""

from __future__ import annotations

import time
from typing import Any, Dict

import jwt
from jwt import InvalidTokenError

from consumed.settings import settings


def encode_access(payload: dict[str, object], *, ttl_seconds: int = 3600) -> str:
    """Encode an access token the way the auth provider does (used by tooling and tests)."""
    now = int(time.time())
    body: Dict[str, Any] = {"aud": settings.jwt_audience, "iat": now, "exp": now + ttl_seconds}
    body.update(payload)
    return jwt.encode(body, settings.jwt_secret, algorithm="HS256")


def decode_access(token: str) -> dict[str, object]:
    """Decode and validate an access token.

    Raises jwt.InvalidTokenError subclasses on failure.
    """
    payload = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        audience=settings.jwt_audience,
        leeway=5,
        options={"require": ["exp", "sub"]},
    )
    if not payload.get("email"):
        raise InvalidTokenError("missing_claim:email")
    return payload  # type: ignore[return-value]
