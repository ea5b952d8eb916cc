"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from checklist.auth.jwt import TokenClaims, TokenSigner, get_token_signer

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    signer: TokenSigner = Depends(get_token_signer),
) -> TokenClaims:
    """
    Require a valid bearer token and return its claims.

    Raises 401 when the header is missing, the token has expired, or it fails
    verification.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="No token provided")
    try:
        return signer.verify(credentials.credentials)
    except jwt.InvalidTokenError as e:
        detail = "Token expired" if str(e) == "Token expired" else "Invalid token"
        raise HTTPException(status_code=401, detail=detail) from e


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    signer: TokenSigner = Depends(get_token_signer),
) -> TokenClaims | None:
    """Return the caller's claims when a valid token is present, else None."""
    if credentials is None:
        return None
    try:
        return signer.verify(credentials.credentials)
    except jwt.InvalidTokenError:
        return None
