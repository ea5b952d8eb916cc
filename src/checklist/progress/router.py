"""Progress endpoints for custom lists: /api/progress/*."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from checklist.auth.dependencies import get_current_user
from checklist.auth.jwt import TokenClaims
from checklist.database import get_session
from checklist.progress import service
from checklist.progress.schemas import (
    CompleteTopicRequest,
    CompleteTopicResponse,
    ProgressOut,
    ProgressStats,
    ResetResponse,
    ToggleRequest,
)

router = APIRouter(prefix="/api/progress", tags=["Progress"])


async def _require_list(db: AsyncSession, list_id: uuid.UUID, user: TokenClaims) -> None:
    try:
        await service.get_accessible_list(db, list_id, user.id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.get("/list/{list_id}", response_model=list[ProgressOut])
async def get_list_progress(
    list_id: uuid.UUID,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[ProgressOut]:
    await _require_list(db, list_id, user)
    rows = await service.get_list_progress(db, user.id, list_id)
    return [ProgressOut.model_validate(row) for row in rows]


@router.post("/toggle", response_model=ProgressOut)
async def toggle(
    body: ToggleRequest,
    response: Response,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProgressOut:
    """Flip a topic or resource; 201 when the row is created."""
    try:
        row, created = await service.toggle_progress(db, user.id, body.list_id, body.topic_id, body.resource_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    if created:
        response.status_code = 201
    return ProgressOut.model_validate(row)


@router.post("/complete-topic", response_model=CompleteTopicResponse)
async def complete_topic(
    body: CompleteTopicRequest,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CompleteTopicResponse:
    try:
        marked = await service.complete_topic(db, user.id, body.list_id, body.topic_id, body.include_resources)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return CompleteTopicResponse(
        message="Topic marked as complete",
        topic_id=body.topic_id,
        include_resources=body.include_resources,
        resources_completed=marked,
    )


@router.delete("/list/{list_id}", response_model=ResetResponse)
async def reset_list_progress(
    list_id: uuid.UUID,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ResetResponse:
    await _require_list(db, list_id, user)
    deleted = await service.reset_progress(db, user.id, list_id)
    await db.commit()
    return ResetResponse(message="Progress reset successfully", deleted_count=deleted)


@router.get("/list/{list_id}/stats", response_model=ProgressStats)
async def list_stats(
    list_id: uuid.UUID,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProgressStats:
    await _require_list(db, list_id, user)
    return await service.get_progress_stats(db, user.id, list_id)
