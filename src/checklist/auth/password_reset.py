"""Password reset router: /api/password/* endpoints."""

from __future__ import annotations

from urllib.parse import quote

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from checklist.auth.schemas import ForgotPasswordRequest, ResetPasswordRequest
from checklist.auth.service import (
    create_reset_token,
    get_user_by_email,
    get_user_by_reset_token,
    reset_password,
)
from checklist.config import Settings, get_app_settings
from checklist.database import get_session
from checklist.email.service import get_email_service
from checklist.middleware.rate_limit import rate_limit

logger = structlog.get_logger()

router = APIRouter(prefix="/api/password", tags=["Password reset"])

_GENERIC_RESET_MESSAGE = "If an account with that email exists, a password reset link has been sent."


@router.post("/forgot-password", dependencies=[Depends(rate_limit("password_reset"))])
async def forgot_password(
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, str]:
    """Request a password reset email. The answer never reveals whether the account exists."""
    user = await get_user_by_email(db, body.email)
    if user is None:
        return {"message": _GENERIC_RESET_MESSAGE}

    raw_token = await create_reset_token(db, user, settings.password_reset_token_ttl_minutes)
    await db.commit()

    reset_url = f"{settings.frontend_base_url}/reset-password?token={quote(raw_token)}"
    email_service = get_email_service(settings)
    sent = await email_service.send_template(
        to=user.email,
        template_name="password_reset",
        context={
            "username": user.username,
            "reset_url": reset_url,
            "expires_minutes": settings.password_reset_token_ttl_minutes,
        },
    )
    if not sent:
        logger.error("password_reset_email_failed", user_id=str(user.id))
        raise HTTPException(status_code=500, detail="Failed to send password reset email")

    logger.info("password_reset_requested", user_id=str(user.id))
    return {"message": _GENERIC_RESET_MESSAGE}


@router.post("/reset-password", dependencies=[Depends(rate_limit("password_reset"))])
async def reset_password_endpoint(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Set a new password using a single-use reset token."""
    try:
        await reset_password(db, body.token, body.new_password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return {"message": "Password has been reset successfully. You can now log in with your new password."}


@router.get("/verify-reset-token/{token}")
async def verify_reset_token(
    token: str,
    db: AsyncSession = Depends(get_session),
) -> dict[str, bool]:
    """Let the reset page check a token before asking for a new password."""
    user = await get_user_by_reset_token(db, token)
    if user is None:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")
    return {"valid": True}
