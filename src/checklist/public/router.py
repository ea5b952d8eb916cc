"""Public list endpoints: /api/public-lists/*."""

from __future__ import annotations

import uuid
from typing import Literal

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from checklist.auth.dependencies import get_current_user, get_optional_user
from checklist.auth.jwt import TokenClaims
from checklist.config import Settings, get_app_settings
from checklist.database import get_session
from checklist.public import service
from checklist.public.schemas import (
    CopyResponse,
    LineageResponse,
    PublicListDetail,
    PublicListPage,
    RateRequest,
    RateResponse,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/public-lists", tags=["Public lists"])


@router.get("", response_model=PublicListPage)
async def browse(
    sort: Literal["recent", "rating", "popular"] = Query("recent"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    search: str = Query(""),
    user: TokenClaims | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
) -> PublicListPage:
    """Browse and search public lists. Signed-in callers also get their own ratings."""
    items, total = await service.search_public_lists(
        db,
        search=search,
        sort=sort,
        limit=limit,
        offset=offset,
        viewer_id=user.id if user else None,
    )
    return PublicListPage(lists=items, total=total, limit=limit, offset=offset)


@router.get("/{list_id}", response_model=PublicListDetail)
async def get_public_list(
    list_id: uuid.UUID,
    user: TokenClaims | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
) -> PublicListDetail:
    try:
        return await service.get_public_detail(db, list_id, user.id if user else None)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.get("/{list_id}/lineage", response_model=LineageResponse)
async def get_lineage(
    list_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> LineageResponse:
    """Copy ancestry of a list, original first."""
    try:
        lineage = await service.get_lineage(db, list_id, max_depth=settings.lineage_max_depth)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return LineageResponse(lineage=lineage)


@router.post("/{list_id}/rate", response_model=RateResponse)
async def rate(
    list_id: uuid.UUID,
    body: RateRequest,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> RateResponse:
    try:
        custom_list = await service.rate_list(db, list_id, user.id, body.rating)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return RateResponse(
        message="Rating saved successfully",
        average_rating=service.average_rating(custom_list.rating_sum, custom_list.rating_count),
        rating_count=custom_list.rating_count,
        user_rating=body.rating,
    )


@router.post("/{list_id}/copy", response_model=CopyResponse, status_code=201)
async def copy(
    list_id: uuid.UUID,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CopyResponse:
    """Deep-copy a public list into the caller's account. All or nothing."""
    try:
        new_list = await service.copy_public_list(db, list_id, user.id)
        await db.commit()
    except LookupError as e:
        await db.rollback()
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        await db.rollback()
        logger.exception("list_copy_failed", list_id=str(list_id), user_id=str(user.id))
        raise HTTPException(status_code=500, detail="Failed to copy list") from e
    return CopyResponse(message="List copied successfully", list_id=new_list.id)
