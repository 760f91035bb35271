# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AuthUser(BaseModel):
    """
    Authenticated user extracted from Supabase JWT.

    This is the minimal user info available from the token itself,
    without querying the database.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID
    email: Optional[str] = None


class LoginRequest(BaseModel):
    """
    Email/password sign-in.

    Example:
        {"email": "reef@example.com", "password": "hunter22"}
    """
    email: EmailStr
    password: str = Field(..., min_length=1, description="Password is required")
