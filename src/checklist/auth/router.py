"""Authentication router: all /api/auth/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from checklist.auth.dependencies import get_current_user
from checklist.auth.jwt import TokenClaims, TokenSigner, get_token_signer
from checklist.auth.schemas import (
    LoginRequest,
    MeResponse,
    MigrateProgressRequest,
    MigrateProgressResponse,
    ResendOtpRequest,
    SignupRequest,
    SignupResponse,
    TokenResponse,
    UserResponse,
    VerifyEmailRequest,
)
from checklist.auth.service import (
    OtpError,
    authenticate_user,
    get_user_by_id,
    regenerate_otp,
    register_user,
    verify_otp,
)
from checklist.config import Settings, get_app_settings
from checklist.database import get_session
from checklist.email.service import get_email_service
from checklist.middleware.error_handler import APIError
from checklist.middleware.rate_limit import rate_limit
from checklist.progress.builtin_service import import_local_progress

logger = structlog.get_logger()

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


async def _send_otp(settings: Settings, email: str, username: str, code: str) -> bool:
    email_service = get_email_service(settings)
    return await email_service.send_template(
        to=email,
        template_name="verification_code",
        context={"username": username, "code": code, "expires_minutes": settings.otp_ttl_minutes},
    )


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=201,
    dependencies=[Depends(rate_limit("auth"))],
)
async def signup(
    body: SignupRequest,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> SignupResponse:
    """Create an unverified account and email a verification code."""
    try:
        user, code = await register_user(
            db,
            email=body.email,
            username=body.username,
            password=body.password,
            otp_ttl_minutes=settings.otp_ttl_minutes,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()

    # Delivery failure must not undo the signup; the user can ask for a resend.
    if not await _send_otp(settings, user.email, user.username, code):
        logger.warning("verification_email_failed", user_id=str(user.id))

    return SignupResponse(
        message="Account created. Please check your email for the verification code.",
        requires_verification=True,
        user_id=user.id,
        email=user.email,
    )


@router.post(
    "/verify-email",
    response_model=TokenResponse,
    dependencies=[Depends(rate_limit("otp"))],
)
async def verify_email(
    body: VerifyEmailRequest,
    db: AsyncSession = Depends(get_session),
    signer: TokenSigner = Depends(get_token_signer),
    settings: Settings = Depends(get_app_settings),
) -> TokenResponse:
    """Verify an email address with the emailed code and log the user in."""
    try:
        user = await verify_otp(db, body.email, body.otp, max_attempts=settings.otp_max_attempts)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except OtpError as e:
        # A failed attempt still counts against the budget.
        await db.commit()
        extra = {} if e.attempts_remaining is None else {"attempts_remaining": e.attempts_remaining}
        raise APIError(e.status_code, str(e), **extra) from e
    await db.commit()

    return TokenResponse(
        message="Email verified successfully",
        token=signer.issue(user),
        user=UserResponse.model_validate(user),
    )


@router.post("/resend-otp", dependencies=[Depends(rate_limit("otp"))])
async def resend_otp(
    body: ResendOtpRequest,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, str]:
    """Issue a fresh verification code."""
    try:
        user, code = await regenerate_otp(db, body.email, otp_ttl_minutes=settings.otp_ttl_minutes)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except OtpError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()

    if not await _send_otp(settings, user.email, user.username, code):
        raise HTTPException(status_code=500, detail="Failed to send verification email")
    return {"message": "Verification code sent"}


@router.post(
    "/login",
    response_model=TokenResponse,
    dependencies=[Depends(rate_limit("auth"))],
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
    signer: TokenSigner = Depends(get_token_signer),
) -> TokenResponse:
    """Login with email or username + password."""
    try:
        user = await authenticate_user(db, body.email_or_username, body.password)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    await db.commit()

    logger.info("user_logged_in", user_id=str(user.id))
    return TokenResponse(
        message="Login successful",
        token=signer.issue(user),
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=MeResponse)
async def me(
    claims: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MeResponse:
    """Current user profile."""
    user = await get_user_by_id(db, claims.id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return MeResponse(user=UserResponse.model_validate(user))


@router.post("/logout")
async def logout() -> dict[str, str]:
    """Tokens are stateless; the client discards its copy."""
    return {"message": "Logged out successfully"}


@router.post("/migrate-progress", response_model=MigrateProgressResponse)
async def migrate_progress(
    body: MigrateProgressRequest,
    claims: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MigrateProgressResponse:
    """One-time import of progress recorded before the account existed."""
    user = await get_user_by_id(db, claims.id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    if user.has_migrated_localstorage:
        raise HTTPException(status_code=400, detail="Progress already migrated")

    processed, imported = await import_local_progress(db, user.id, body.checklists)
    user.has_migrated_localstorage = True
    await db.commit()

    logger.info("progress_migrated", user_id=str(user.id), checklists=processed, items=imported)
    return MigrateProgressResponse(
        message="Progress migrated successfully",
        checklists_processed=processed,
        items_imported=imported,
    )
