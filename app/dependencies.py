# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends(); tests replace
# them through app.dependency_overrides.
# =============================================================================

from typing import Annotated

from fastapi import Depends

from app.auth import AuthUser, get_current_user
from lib.llm import LLMClient
from lib.rate_limit import FixedWindowRateLimiter, get_auth_rate_limiter


def get_llm_client() -> LLMClient:
    """Sonnet client for chat, photo diagnosis and maintenance recommendations."""
    return LLMClient()


def get_login_rate_limiter() -> FixedWindowRateLimiter:
    """Per-IP limiter for POST /auth/login."""
    return get_auth_rate_limiter()


# Type aliases for dependency injection
CurrentUser = Annotated[AuthUser, Depends(get_current_user)]
LLMDep = Annotated[LLMClient, Depends(get_llm_client)]
