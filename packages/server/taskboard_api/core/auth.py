"""
Authentication for the sync endpoints.

Credentials are issued by the auth service; this module only verifies them:
- Bearer JWT (native clients) or session cookie carrying the same JWT (browsers)
- Revocation list in Redis keyed by the token's ``jti``
- The resolved ``Caller`` is passed explicitly into every service call
"""

from __future__ import annotations

from typing import Optional

import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader

from taskboard_api.core.config import get_settings
from taskboard_api.core.errors import UnauthorizedError
from taskboard_api.core.redis import get_redis

log = structlog.get_logger()
settings = get_settings()

api_key_header = APIKeyHeader(name="Authorization", auto_error=False)


class Caller:
    """The authenticated user a sync request acts on behalf of."""

    def __init__(self, id: str, email: Optional[str] = None, is_super_admin: bool = False):
        self.id = id
        self.email = email
        self.is_super_admin = is_super_admin

    def __repr__(self) -> str:
        return f"Caller(id={self.id!r})"


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# JWT Revocation (Redis)
# ---------------------------------------------------------------------------

async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(f"jwt:revoked:{jti}") > 0


# ---------------------------------------------------------------------------
# Authentication dependency
# ---------------------------------------------------------------------------

def _extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
        if token:
            return token
    return request.cookies.get(settings.session_cookie_name)


async def authenticate_token(token: str) -> Caller:
    try:
        payload = decode_jwt(token)
    except jwt.PyJWTError:
        raise UnauthorizedError("Invalid or expired session")

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        raise UnauthorizedError("Session has been revoked")

    subject = payload.get("sub")
    if not subject:
        raise UnauthorizedError("Invalid or expired session")

    return Caller(
        id=str(subject),
        email=payload.get("email"),
        is_super_admin=bool(payload.get("is_super_admin", False)),
    )


async def get_current_caller(
    request: Request,
    authorization: Optional[str] = Depends(api_key_header),
) -> Caller:
    """Main authentication dependency: Bearer header first, then session cookie."""
    token = _extract_token(request, authorization)
    if not token:
        raise UnauthorizedError("Authentication required")

    caller = await authenticate_token(token)
    structlog.contextvars.bind_contextvars(user_id=caller.id)
    return caller
