"""
HS256 JWT access tokens.

The signing secret is process configuration: a frozen ``TokenSigner`` is built
once from settings in ``create_app()`` and handed to request handlers through
``app.state``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import jwt
from fastapi import Request

if TYPE_CHECKING:
    from checklist.config import Settings
    from checklist.db.models import User


@dataclass(frozen=True)
class TokenClaims:
    """The identity carried by a verified access token."""

    id: uuid.UUID
    username: str
    email: str
    email_verified: bool


@dataclass(frozen=True)
class TokenSigner:
    """Issues and verifies access tokens with a shared secret."""

    secret: str
    algorithm: str = "HS256"
    expire_days: int = 7

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenSigner:
        """Build a signer from validated application settings."""
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expire_days=settings.jwt_expire_days,
        )

    def issue(self, user: User) -> str:
        """
        Create an access token for ``user``.

        Args:
            user: The authenticated user row.

        Returns:
            Encoded JWT string valid for ``expire_days``.
        """
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": str(user.id),
            "username": user.username,
            "email": user.email,
            "email_verified": user.email_verified,
            "iat": now,
            "exp": now + timedelta(days=self.expire_days),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify and decode a token.

        Raises:
            jwt.InvalidTokenError: If the token is invalid or expired.
        """
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            msg = "Token expired"
            raise jwt.InvalidTokenError(msg) from None

        try:
            user_id = uuid.UUID(payload["sub"])
        except ValueError:
            msg = "Invalid token subject"
            raise jwt.InvalidTokenError(msg) from None

        return TokenClaims(
            id=user_id,
            username=payload.get("username", ""),
            email=payload.get("email", ""),
            email_verified=bool(payload.get("email_verified", False)),
        )


def get_token_signer(request: Request) -> TokenSigner:
    """FastAPI dependency returning the app's signer."""
    return request.app.state.token_signer
