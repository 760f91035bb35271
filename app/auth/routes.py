# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# Endpoints:
#   POST /api/v1/auth/login  - Email/password sign-in (5 attempts / 15 min / IP)
#   GET  /api/v1/auth/me     - Profile row, effective tier and its limits
#
# Sign-up, magic links and password resets happen client-side against
# Supabase Auth.
# =============================================================================

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.auth.dependencies import get_current_user
from app.auth.models import AuthUser, LoginRequest
from app.dependencies import get_login_rate_limiter
from app.exceptions import AuthRequiredError, InternalError, RateLimitExceededError
from app.responses import success_response
from core.services.tier_service import TierService, get_tier_limits
from lib.rate_limit import FixedWindowRateLimiter, get_client_ip
from lib.supabase_client import SupabaseClient, SupabaseClientError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _login_limit_message(minutes: int) -> str:
    unit = "minute" if minutes == 1 else "minutes"
    return f"Too many login attempts. Please try again in {minutes} {unit}."


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    limiter: FixedWindowRateLimiter = Depends(get_login_rate_limiter),
) -> JSONResponse:
    """
    Sign in with email and password.

    Returns:
        {user, session, onboarding_completed, redirect_to}

    Raises:
        429: Too many attempts from this IP
        401: Wrong email or password
    """
    limit = limiter.check(f"login:{get_client_ip(request)}")
    if not limit.success:
        raise RateLimitExceededError(
            _login_limit_message(limit.retry_after_minutes()),
            headers=limit.headers(),
        )

    try:
        auth = SupabaseClient.get_auth_client().auth.sign_in_with_password(
            {"email": body.email, "password": body.password}
        )
    except SupabaseClientError as e:
        logger.error(e.message)
        raise InternalError("Authentication service unavailable")
    except Exception as e:
        logger.info(f"Login failed: {e}")
        raise AuthRequiredError("Invalid email or password")

    if not auth.user or not auth.session:
        raise AuthRequiredError("Invalid email or password")

    data = {
        "user": {"id": auth.user.id, "email": auth.user.email},
        "session": {
            "access_token": auth.session.access_token,
            "refresh_token": auth.session.refresh_token,
            "expires_at": auth.session.expires_at,
        },
    }

    try:
        profile = SupabaseClient.fetch_user_profile(auth.user.id)
    except SupabaseClientError as e:
        logger.error(f"Failed to fetch user profile after login: {e.message}")
        data.update({
            "onboarding_completed": None,
            "redirect_to": "/dashboard",
            "warning": "Could not verify onboarding status",
        })
        return success_response(data, request=request, headers=limit.headers())

    onboarded = bool((profile or {}).get("onboarding_completed"))
    data.update({
        "onboarding_completed": onboarded,
        "redirect_to": "/dashboard" if onboarded else "/onboarding",
    })
    logger.info(f"User {auth.user.id} signed in")
    return success_response(data, request=request, headers=limit.headers())


@router.get("/me")
async def get_me(request: Request, user: AuthUser = Depends(get_current_user)) -> JSONResponse:
    """
    The caller's profile row, effective tier and that tier's limits.

    A user whose public.users row hasn't been created yet gets the token's
    id and email only.
    """
    try:
        profile = SupabaseClient.fetch_user_profile(user.id)
    except SupabaseClientError as e:
        logger.warning(f"Could not fetch user profile: {e.message}")
        profile = None

    tier = TierService.get_user_tier(user.id)
    return success_response(
        {
            "profile": profile or {"id": str(user.id), "email": user.email},
            "tier": tier.value,
            "limits": get_tier_limits(tier).model_dump(),
        },
        request=request,
    )
