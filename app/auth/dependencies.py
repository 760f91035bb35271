# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Verifies the Supabase access token on every protected request.
#
# Signing keys:
# - ES256 (current Supabase signing keys) via the project JWKS, cached 1h
# - HS256 (legacy project JWT secret) as fallback, refused when unset
#
# Failures surface as AquaBot errors so they share the JSON envelope:
#   no/invalid token -> AUTH_REQUIRED (401)
#   expired token    -> AUTH_EXPIRED (401)
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/tanks")
#   async def list_tanks(user: AuthUser = Depends(get_current_user)):
#       ...
# =============================================================================

import logging
import time
from typing import Any, Optional
from uuid import UUID

import httpx
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from app.auth.models import AuthUser
from app.config import settings
from app.exceptions import AuthExpiredError, AuthRequiredError

logger = logging.getLogger(__name__)

# auto_error=False so a missing header reaches our own AUTH_REQUIRED error
security = HTTPBearer(auto_error=False)

JWT_AUDIENCE = "authenticated"
JWKS_CACHE_TTL = 3600

_jwks_cache: dict[str, Any] = {}
_jwks_cache_time: float = 0


def _jwks_url() -> str:
    return f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1/.well-known/jwks.json"


def fetch_jwks() -> dict[str, Any]:
    """Project JWKS, refreshed at most once an hour."""
    global _jwks_cache, _jwks_cache_time

    now = time.time()
    if _jwks_cache and (now - _jwks_cache_time) < JWKS_CACHE_TTL:
        return _jwks_cache

    try:
        response = httpx.get(_jwks_url(), timeout=10)
        response.raise_for_status()
        _jwks_cache = response.json()
        _jwks_cache_time = now
        logger.debug("Refreshed Supabase JWKS")
    except httpx.HTTPError as e:
        logger.warning(f"Failed to fetch JWKS: {e}")
        # A stale key set still verifies tokens signed with unrotated keys
        if not _jwks_cache:
            return {"keys": []}
    return _jwks_cache


def _legacy_secret() -> tuple[str, str]:
    """
    The HS256 project secret; refused when SUPABASE_JWT_SECRET is unset.
    """
    if not settings.SUPABASE_JWT_SECRET:
        logger.warning("HS256 token rejected: SUPABASE_JWT_SECRET is not configured")
        raise AuthRequiredError("Invalid authentication token")
    return settings.SUPABASE_JWT_SECRET, "HS256"


def signing_key_for(token: str) -> tuple[Any, str]:
    """
    (key, algorithm) for verifying `token`.

    ES256 tokens use the JWKS entry matching their kid; everything else
    falls back to the HS256 project secret.

    Raises:
        AuthRequiredError: The token needs the HS256 secret and none is set
    """
    try:
        header = jwt.get_unverified_header(token)
    except JWTError:
        return _legacy_secret()

    alg = header.get("alg", "HS256")
    kid = header.get("kid")
    if alg == "HS256":
        return _legacy_secret()

    if kid:
        for key in fetch_jwks().get("keys", []):
            if key.get("kid") == kid:
                return key, alg

    logger.warning(f"No JWKS key for alg={alg}, kid={kid}; falling back to HS256")
    return _legacy_secret()


def decode_token(token: str) -> AuthUser:
    """
    Verify a token and return its user.

    Raises:
        AuthExpiredError: Token is past its exp claim
        AuthRequiredError: Anything else wrong with the token
    """
    key, algorithm = signing_key_for(token)
    try:
        payload = jwt.decode(token, key, algorithms=[algorithm], audience=JWT_AUDIENCE)
    except ExpiredSignatureError:
        raise AuthExpiredError()
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise AuthRequiredError("Invalid authentication token")

    try:
        user_id = UUID(payload.get("sub") or "")
    except ValueError:
        logger.warning("JWT has a missing or malformed sub claim")
        raise AuthRequiredError("Invalid authentication token")

    return AuthUser(id=user_id, email=payload.get("email"))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthUser:
    """The authenticated user; 401 without a valid Bearer token."""
    if credentials is None or not credentials.credentials:
        raise AuthRequiredError()
    return decode_token(credentials.credentials)

