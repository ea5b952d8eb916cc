"""
Authentication business logic.

Handles user creation, email OTP verification, login, and password reset tokens.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, or_, select

from checklist.auth.disposable import is_disposable_email
from checklist.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from checklist.db.base import utcnow
from checklist.db.models import User

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class AccountExistsError(ValueError):
    """Email or username is already taken."""


class OtpError(ValueError):
    """An email verification attempt was refused."""

    status_code = 400

    def __init__(self, message: str, attempts_remaining: int | None = None) -> None:
        super().__init__(message)
        self.attempts_remaining = attempts_remaining


class OtpAttemptsExhaustedError(OtpError):
    """The attempt budget for the pending code is spent."""

    status_code = 429


def _sha256(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


async def get_user_by_login(db: AsyncSession, email_or_username: str) -> User | None:
    """Fetch a user whose email or username matches."""
    result = await db.execute(
        select(User).where(
            or_(
                func.lower(User.email) == email_or_username.lower(),
                User.username == email_or_username,
            )
        )
    )
    return result.scalars().first()


# ---------------------------------------------------------------------------
# Signup + OTP
# ---------------------------------------------------------------------------


def generate_otp() -> str:
    """Six random digits, zero padded."""
    return f"{secrets.randbelow(1_000_000):06d}"


def issue_otp(user: User, ttl_minutes: int) -> str:
    """
    Attach a fresh one-time code to ``user`` and reset the attempt counter.

    Returns the plaintext code to email; only its hash is stored.
    """
    code = generate_otp()
    user.otp_hash = _sha256(code)
    user.otp_expires_at = utcnow() + timedelta(minutes=ttl_minutes)
    user.otp_attempts = 0
    return code


async def register_user(
    db: AsyncSession,
    email: str,
    username: str,
    password: str,
    *,
    otp_ttl_minutes: int,
) -> tuple[User, str]:
    """
    Create an unverified user with a pending OTP.

    Returns:
        Tuple of (user, plaintext otp).

    Raises:
        PasswordStrengthError: If the password is weak.
        ValueError: If the email domain is disposable.
        AccountExistsError: If the email or username is taken.
    """
    if is_disposable_email(email):
        msg = "Disposable email addresses are not allowed"
        raise ValueError(msg)

    validate_password_strength(password)

    existing = await db.execute(
        select(User.id).where(or_(func.lower(User.email) == email.lower(), User.username == username))
    )
    if existing.first() is not None:
        msg = "Email or username already exists"
        raise AccountExistsError(msg)

    user = User(
        email=email.lower().strip(),
        username=username,
        password_hash=hash_password(password),
        email_verified=False,
    )
    code = issue_otp(user, otp_ttl_minutes)
    db.add(user)
    await db.flush()
    logger.info("user_created", user_id=str(user.id), username=username)
    return user, code


async def verify_otp(db: AsyncSession, email: str, code: str, *, max_attempts: int) -> User:
    """
    Check an emailed code and mark the address verified.

    A wrong code consumes one of ``max_attempts``; the caller must commit even
    when this raises so the counter persists.

    Raises:
        LookupError: If no user has this email.
        OtpError: If the code is absent, expired, or wrong.
        OtpAttemptsExhaustedError: If the attempt budget is spent.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        msg = "User not found"
        raise LookupError(msg)
    if user.email_verified:
        msg = "Email is already verified"
        raise OtpError(msg)
    if user.otp_hash is None or user.otp_expires_at is None:
        msg = "No verification code pending. Please request a new one."
        raise OtpError(msg)
    if user.otp_expires_at < utcnow():
        msg = "Verification code has expired. Please request a new one."
        raise OtpError(msg)
    if user.otp_attempts >= max_attempts:
        msg = "Too many failed attempts. Please request a new code."
        raise OtpAttemptsExhaustedError(msg, attempts_remaining=0)

    if not hmac.compare_digest(user.otp_hash, _sha256(code)):
        user.otp_attempts += 1
        await db.flush()
        remaining = max(0, max_attempts - user.otp_attempts)
        logger.info("otp_mismatch", user_id=str(user.id), attempts_remaining=remaining)
        msg = "Invalid verification code"
        raise OtpError(msg, attempts_remaining=remaining)

    user.email_verified = True
    user.otp_hash = None
    user.otp_expires_at = None
    user.otp_attempts = 0
    await db.flush()
    logger.info("otp_verified", user_id=str(user.id))
    return user


async def regenerate_otp(db: AsyncSession, email: str, *, otp_ttl_minutes: int) -> tuple[User, str]:
    """
    Replace the pending code for an unverified user.

    Raises:
        LookupError: If no user has this email.
        OtpError: If the address is already verified.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        msg = "User not found"
        raise LookupError(msg)
    if user.email_verified:
        msg = "Email is already verified"
        raise OtpError(msg)
    code = issue_otp(user, otp_ttl_minutes)
    await db.flush()
    return user, code


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate_user(db: AsyncSession, email_or_username: str, password: str) -> User:
    """
    Authenticate with email-or-username + password.

    Raises:
        ValueError: If credentials are invalid.
    """
    user = await get_user_by_login(db, email_or_username)
    if user is None or not verify_password(password, user.password_hash):
        msg = "Invalid credentials"
        raise ValueError(msg)

    if check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        await db.flush()
        logger.info("password_rehashed", user_id=str(user.id))

    return user


# ---------------------------------------------------------------------------
# Password reset tokens
# ---------------------------------------------------------------------------


async def create_reset_token(db: AsyncSession, user: User, ttl_minutes: int) -> str:
    """
    Store the hash of a new reset token on ``user``, replacing any previous one.

    Returns the raw token to send to the user.
    """
    raw_token = secrets.token_hex(32)
    user.reset_token_hash = _sha256(raw_token)
    user.reset_token_expires_at = utcnow() + timedelta(minutes=ttl_minutes)
    await db.flush()
    return raw_token


async def get_user_by_reset_token(db: AsyncSession, raw_token: str) -> User | None:
    """Return the user holding this token if it has not expired."""
    result = await db.execute(select(User).where(User.reset_token_hash == _sha256(raw_token)))
    user = result.scalar_one_or_none()
    if user is None or user.reset_token_expires_at is None:
        return None
    if user.reset_token_expires_at <= utcnow():
        return None
    return user


async def reset_password(db: AsyncSession, raw_token: str, new_password: str) -> User:
    """
    Replace the password of the token holder and consume the token.

    Raises:
        PasswordStrengthError: If the new password is weak.
        ValueError: If the token is invalid, expired, or already used.
    """
    validate_password_strength(new_password)

    user = await get_user_by_reset_token(db, raw_token)
    if user is None:
        msg = "Invalid or expired reset token"
        raise ValueError(msg)

    user.password_hash = hash_password(new_password)
    user.reset_token_hash = None
    user.reset_token_expires_at = None
    await db.flush()
    logger.info("password_reset", user_id=str(user.id))
    return user
