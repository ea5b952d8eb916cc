"""Builtin checklist progress endpoints: /api/builtin-progress/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from checklist.auth.dependencies import get_current_user
from checklist.auth.jwt import TokenClaims
from checklist.database import get_session
from checklist.db.models import CHECKLIST_TYPES
from checklist.middleware.rate_limit import rate_limit
from checklist.progress import builtin_service
from checklist.progress.schemas import (
    BatchAllRequest,
    BatchAllResponse,
    BatchResponse,
    ChecklistItems,
    ResetResponse,
)

router = APIRouter(prefix="/api/builtin-progress", tags=["Builtin progress"])


def _check_type(checklist_type: str) -> None:
    if checklist_type not in CHECKLIST_TYPES:
        raise HTTPException(status_code=400, detail="Invalid checklist type")


@router.get("/load-all", dependencies=[Depends(rate_limit("progress_load"))])
async def load_all(
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, dict[str, dict[str, bool]]]:
    """All completed items of every builtin checklist."""
    return await builtin_service.load_all(db, user.id)


@router.post("/batch", response_model=BatchResponse)
async def batch(
    body: ChecklistItems,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BatchResponse:
    """Reconcile one checklist with the submitted state."""
    inserted, deleted = await builtin_service.apply_checklist(db, user.id, body)
    await db.commit()
    return BatchResponse(message="Progress updated successfully", inserted=inserted, deleted=deleted)


@router.post(
    "/batch-all",
    response_model=BatchAllResponse,
    dependencies=[Depends(rate_limit("progress_save"))],
)
async def batch_all(
    body: BatchAllRequest,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BatchAllResponse:
    """Reconcile many checklists in one transaction; malformed entries are skipped."""
    processed, inserted, deleted = await builtin_service.apply_batch(db, user.id, body.checklists)
    await db.commit()
    return BatchAllResponse(
        message="All progress updated successfully",
        checklists_processed=processed,
        total_inserted=inserted,
        total_deleted=deleted,
    )


@router.get("/{checklist_type}/{checklist_id}")
async def get_checklist(
    checklist_type: str,
    checklist_id: str,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, bool]:
    _check_type(checklist_type)
    return await builtin_service.load_checklist(db, user.id, checklist_type, checklist_id)


@router.delete("/{checklist_type}/{checklist_id}", response_model=ResetResponse)
async def reset_checklist(
    checklist_type: str,
    checklist_id: str,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ResetResponse:
    _check_type(checklist_type)
    deleted = await builtin_service.reset_checklist(db, user.id, checklist_type, checklist_id)
    await db.commit()
    return ResetResponse(message="Progress reset successfully", deleted_count=deleted)
