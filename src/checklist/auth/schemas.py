"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

USERNAME_PATTERN = re.compile(r"[A-Za-z0-9_]{3,20}")


class UserResponse(BaseModel):
    """Public view of a user account."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    email: str
    email_verified: bool
    created_at: datetime


# ---------------------------------------------------------------------------
# Signup / verification
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Create an account. The password rules are checked in the service layer."""

    email: EmailStr
    username: str
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        if not USERNAME_PATTERN.fullmatch(v):
            msg = "Username must be 3-20 characters and contain only letters, numbers, and underscores"
            raise ValueError(msg)
        return v


class SignupResponse(BaseModel):
    message: str
    requires_verification: bool
    user_id: uuid.UUID
    email: str


class VerifyEmailRequest(BaseModel):
    """Verify an email address with the emailed one-time code."""

    email: EmailStr
    otp: str = Field(..., pattern=r"^\d{6}$")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


class ResendOtpRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Login with email or username + password."""

    email_or_username: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)


class TokenResponse(BaseModel):
    message: str
    token: str
    user: UserResponse


class MeResponse(BaseModel):
    user: UserResponse


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


class ForgotPasswordRequest(BaseModel):
    """Request a password reset email."""

    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class ResetPasswordRequest(BaseModel):
    """Reset password with a valid token."""

    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=128)


# ---------------------------------------------------------------------------
# Progress migration
# ---------------------------------------------------------------------------


class MigrateProgressRequest(BaseModel):
    """Pre-registration progress; entries are validated one by one."""

    checklists: list[Any]


class MigrateProgressResponse(BaseModel):
    message: str
    checklists_processed: int
    items_imported: int
