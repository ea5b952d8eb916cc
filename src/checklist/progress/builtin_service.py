"""
Progress on the predefined (builtin) checklists.

Clients send the full checked state of a checklist; the server stores one row
per checked item and reconciles by diffing against what is stored.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError
from sqlalchemy import delete, select

from checklist.db.base import utcnow
from checklist.db.models import CHECKLIST_TYPES, BuiltinProgress
from checklist.db.upsert import upsert_insert
from checklist.progress.schemas import ChecklistItems

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def parse_entry(raw: Any) -> ChecklistItems | None:  # noqa: ANN401
    """Validate one batch entry; malformed entries are logged and give None."""
    try:
        return ChecklistItems.model_validate(raw)
    except ValidationError as e:
        logger.warning(
            "builtin_progress_batch_skipped",
            reason=e.errors(include_url=False, include_input=False)[0]["msg"],
            entry_type=raw.get("type") if isinstance(raw, dict) else type(raw).__name__,
        )
        return None


async def _upsert_checked(
    db: AsyncSession,
    user_id: uuid.UUID,
    checklist_type: str,
    checklist_id: str,
    item_keys: set[str],
) -> None:
    if not item_keys:
        return
    now = utcnow()
    stmt = upsert_insert(db, BuiltinProgress.__table__).values(
        [
            {
                "id": uuid.uuid4(),
                "user_id": user_id,
                "checklist_type": checklist_type,
                "checklist_id": checklist_id,
                "item_key": key,
                "completed": True,
                "completed_at": now,
                "created_at": now,
                "updated_at": now,
            }
            for key in sorted(item_keys)
        ]
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "checklist_type", "checklist_id", "item_key"],
        set_={"completed": True, "completed_at": now, "updated_at": now},
    )
    await db.execute(stmt)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def load_all(db: AsyncSession, user_id: uuid.UUID) -> dict[str, dict[str, dict[str, bool]]]:
    """Every completed item grouped by type then checklist; all types are present."""
    progress: dict[str, dict[str, dict[str, bool]]] = {t: {} for t in CHECKLIST_TYPES}
    result = await db.execute(
        select(BuiltinProgress.checklist_type, BuiltinProgress.checklist_id, BuiltinProgress.item_key).where(
            BuiltinProgress.user_id == user_id,
            BuiltinProgress.completed.is_(True),
        )
    )
    for checklist_type, checklist_id, item_key in result.all():
        progress.setdefault(checklist_type, {}).setdefault(checklist_id, {})[item_key] = True
    return progress


async def load_checklist(
    db: AsyncSession, user_id: uuid.UUID, checklist_type: str, checklist_id: str
) -> dict[str, bool]:
    result = await db.execute(
        select(BuiltinProgress.item_key).where(
            BuiltinProgress.user_id == user_id,
            BuiltinProgress.checklist_type == checklist_type,
            BuiltinProgress.checklist_id == checklist_id,
            BuiltinProgress.completed.is_(True),
        )
    )
    return {key: True for key in result.scalars().all()}


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def apply_checklist(db: AsyncSession, user_id: uuid.UUID, entry: ChecklistItems) -> tuple[int, int]:
    """
    Make the stored rows of one checklist match ``entry``.

    Keys newly true are inserted; stored keys that are not true in ``entry``
    are deleted.

    Returns:
        Tuple of (inserted, deleted).
    """
    stored = set(
        (
            await db.execute(
                select(BuiltinProgress.item_key).where(
                    BuiltinProgress.user_id == user_id,
                    BuiltinProgress.checklist_type == entry.type,
                    BuiltinProgress.checklist_id == entry.id,
                )
            )
        ).scalars().all()
    )
    checked = entry.checked_keys()
    to_insert = checked - stored
    to_delete = stored - checked

    await _upsert_checked(db, user_id, entry.type, entry.id, to_insert)

    deleted = 0
    if to_delete:
        result = await db.execute(
            delete(BuiltinProgress).where(
                BuiltinProgress.user_id == user_id,
                BuiltinProgress.checklist_type == entry.type,
                BuiltinProgress.checklist_id == entry.id,
                BuiltinProgress.item_key.in_(sorted(to_delete)),
            )
        )
        deleted = result.rowcount or 0

    return len(to_insert), deleted


async def apply_batch(db: AsyncSession, user_id: uuid.UUID, raw_entries: list[Any]) -> tuple[int, int, int]:
    """
    Diff several checklists in one transaction, skipping malformed entries.

    Returns:
        Tuple of (checklists_processed, total_inserted, total_deleted).
    """
    processed = inserted = deleted = 0
    for raw in raw_entries:
        entry = parse_entry(raw)
        if entry is None:
            continue
        added, removed = await apply_checklist(db, user_id, entry)
        processed += 1
        inserted += added
        deleted += removed
    logger.info(
        "builtin_progress_batch_saved",
        user_id=str(user_id),
        received=len(raw_entries),
        processed=processed,
        inserted=inserted,
        deleted=deleted,
    )
    return processed, inserted, deleted


async def reset_checklist(db: AsyncSession, user_id: uuid.UUID, checklist_type: str, checklist_id: str) -> int:
    result = await db.execute(
        delete(BuiltinProgress).where(
            BuiltinProgress.user_id == user_id,
            BuiltinProgress.checklist_type == checklist_type,
            BuiltinProgress.checklist_id == checklist_id,
        )
    )
    return result.rowcount or 0


async def import_local_progress(db: AsyncSession, user_id: uuid.UUID, raw_entries: list[Any]) -> tuple[int, int]:
    """
    Merge progress recorded before signup: every checked item is upserted,
    nothing stored is removed.

    Returns:
        Tuple of (checklists_processed, items_imported).
    """
    processed = imported = 0
    for raw in raw_entries:
        entry = parse_entry(raw)
        if entry is None:
            continue
        checked = entry.checked_keys()
        await _upsert_checked(db, user_id, entry.type, entry.id, checked)
        processed += 1
        imported += len(checked)
    return processed, imported
