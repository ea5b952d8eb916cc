"""
Progress tracking for custom lists.

A row with ``resource_id`` NULL records a topic; a row with ``resource_id`` set
records a resource. Rows are matched with IS NULL semantics so a missing id
never creates a duplicate.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, func, or_, select

from checklist.db.base import utcnow
from checklist.db.models import (
    CustomList,
    CustomProgress,
    CustomResource,
    CustomSection,
    CustomTopic,
)
from checklist.progress.schemas import ItemCounts, ProgressStats

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def _same(column: Any, value: uuid.UUID | None) -> Any:  # noqa: ANN401
    return column.is_(None) if value is None else column == value


async def get_accessible_list(db: AsyncSession, list_id: uuid.UUID, user_id: uuid.UUID) -> CustomList:
    """
    A list the caller may track progress on: their own, or any public list.

    Raises:
        LookupError: Otherwise.
    """
    result = await db.execute(
        select(CustomList).where(
            CustomList.id == list_id,
            or_(CustomList.user_id == user_id, CustomList.is_public.is_(True)),
        )
    )
    custom_list = result.scalar_one_or_none()
    if custom_list is None:
        msg = "List not found"
        raise LookupError(msg)
    return custom_list


async def _topic_in_list(db: AsyncSession, topic_id: uuid.UUID, list_id: uuid.UUID) -> CustomTopic:
    result = await db.execute(
        select(CustomTopic)
        .join(CustomSection, CustomTopic.section_id == CustomSection.id)
        .where(CustomTopic.id == topic_id, CustomSection.list_id == list_id)
    )
    topic = result.scalar_one_or_none()
    if topic is None:
        msg = "Topic not found"
        raise LookupError(msg)
    return topic


async def _resource_in_list(db: AsyncSession, resource_id: uuid.UUID, list_id: uuid.UUID) -> CustomResource:
    result = await db.execute(
        select(CustomResource)
        .join(CustomTopic, CustomResource.topic_id == CustomTopic.id)
        .join(CustomSection, CustomTopic.section_id == CustomSection.id)
        .where(CustomResource.id == resource_id, CustomSection.list_id == list_id)
    )
    resource = result.scalar_one_or_none()
    if resource is None:
        msg = "Resource not found"
        raise LookupError(msg)
    return resource


async def get_list_progress(db: AsyncSession, user_id: uuid.UUID, list_id: uuid.UUID) -> list[CustomProgress]:
    result = await db.execute(
        select(CustomProgress)
        .where(CustomProgress.user_id == user_id, CustomProgress.list_id == list_id)
        .order_by(CustomProgress.created_at)
    )
    return list(result.scalars().all())


async def _find_row(
    db: AsyncSession,
    user_id: uuid.UUID,
    list_id: uuid.UUID,
    topic_id: uuid.UUID | None,
    resource_id: uuid.UUID | None,
) -> CustomProgress | None:
    result = await db.execute(
        select(CustomProgress).where(
            CustomProgress.user_id == user_id,
            CustomProgress.list_id == list_id,
            _same(CustomProgress.topic_id, topic_id),
            _same(CustomProgress.resource_id, resource_id),
        )
    )
    return result.scalars().first()


async def toggle_progress(
    db: AsyncSession,
    user_id: uuid.UUID,
    list_id: uuid.UUID,
    topic_id: uuid.UUID | None,
    resource_id: uuid.UUID | None,
) -> tuple[CustomProgress, bool]:
    """
    Flip the completion of a topic or resource.

    A missing row counts as not completed, so the first toggle creates it completed.

    Returns:
        Tuple of (row, created).

    Raises:
        LookupError: If the list is not accessible or the ids do not belong to it.
    """
    await get_accessible_list(db, list_id, user_id)
    if topic_id is not None:
        await _topic_in_list(db, topic_id, list_id)
    if resource_id is not None:
        resource = await _resource_in_list(db, resource_id, list_id)
        if topic_id is not None and resource.topic_id != topic_id:
            msg = "Resource not found"
            raise LookupError(msg)

    row = await _find_row(db, user_id, list_id, topic_id, resource_id)
    if row is None:
        row = CustomProgress(
            user_id=user_id,
            list_id=list_id,
            topic_id=topic_id,
            resource_id=resource_id,
            completed=True,
            completed_at=utcnow(),
        )
        db.add(row)
        await db.flush()
        return row, True

    row.completed = not row.completed
    row.completed_at = utcnow() if row.completed else None
    await db.flush()
    return row, False


async def _mark_completed(
    db: AsyncSession,
    user_id: uuid.UUID,
    list_id: uuid.UUID,
    topic_id: uuid.UUID,
    resource_id: uuid.UUID | None,
) -> None:
    now = utcnow()
    row = await _find_row(db, user_id, list_id, topic_id, resource_id)
    if row is None:
        db.add(
            CustomProgress(
                user_id=user_id,
                list_id=list_id,
                topic_id=topic_id,
                resource_id=resource_id,
                completed=True,
                completed_at=now,
            )
        )
    else:
        row.completed = True
        row.completed_at = now


async def complete_topic(
    db: AsyncSession,
    user_id: uuid.UUID,
    list_id: uuid.UUID,
    topic_id: uuid.UUID,
    include_resources: bool = True,
) -> int:
    """
    Mark a topic completed and, optionally, every resource under it.

    Returns:
        Number of resources marked.
    """
    await get_accessible_list(db, list_id, user_id)
    await _topic_in_list(db, topic_id, list_id)
    await _mark_completed(db, user_id, list_id, topic_id, None)

    marked = 0
    if include_resources:
        resource_ids = (
            await db.execute(select(CustomResource.id).where(CustomResource.topic_id == topic_id))
        ).scalars().all()
        for resource_id in resource_ids:
            await _mark_completed(db, user_id, list_id, topic_id, resource_id)
            marked += 1

    await db.flush()
    return marked


async def reset_progress(db: AsyncSession, user_id: uuid.UUID, list_id: uuid.UUID) -> int:
    """Delete every progress row of the caller for this list."""
    result = await db.execute(
        delete(CustomProgress).where(CustomProgress.user_id == user_id, CustomProgress.list_id == list_id)
    )
    logger.info("progress_reset", list_id=str(list_id), user_id=str(user_id), rows=result.rowcount)
    return result.rowcount or 0


async def get_progress_stats(db: AsyncSession, user_id: uuid.UUID, list_id: uuid.UUID) -> ProgressStats:
    """Topic and resource completion counts with an overall percentage."""
    total_topics = (
        await db.execute(
            select(func.count(CustomTopic.id))
            .join(CustomSection, CustomTopic.section_id == CustomSection.id)
            .where(CustomSection.list_id == list_id)
        )
    ).scalar_one()
    completed_topics = (
        await db.execute(
            select(func.count(func.distinct(CustomProgress.topic_id)))
            .join(CustomTopic, CustomProgress.topic_id == CustomTopic.id)
            .join(CustomSection, CustomTopic.section_id == CustomSection.id)
            .where(
                CustomSection.list_id == list_id,
                CustomProgress.user_id == user_id,
                CustomProgress.resource_id.is_(None),
                CustomProgress.completed.is_(True),
            )
        )
    ).scalar_one()

    total_resources = (
        await db.execute(
            select(func.count(CustomResource.id))
            .join(CustomTopic, CustomResource.topic_id == CustomTopic.id)
            .join(CustomSection, CustomTopic.section_id == CustomSection.id)
            .where(CustomSection.list_id == list_id)
        )
    ).scalar_one()
    completed_resources = (
        await db.execute(
            select(func.count(func.distinct(CustomProgress.resource_id)))
            .join(CustomResource, CustomProgress.resource_id == CustomResource.id)
            .join(CustomTopic, CustomResource.topic_id == CustomTopic.id)
            .join(CustomSection, CustomTopic.section_id == CustomSection.id)
            .where(
                CustomSection.list_id == list_id,
                CustomProgress.user_id == user_id,
                CustomProgress.completed.is_(True),
            )
        )
    ).scalar_one()

    total = total_topics + total_resources
    done = completed_topics + completed_resources
    overall = math.floor(done * 100 / total + 0.5) if total else 0
    return ProgressStats(
        topics=ItemCounts(total=total_topics, completed=completed_topics),
        resources=ItemCounts(total=total_resources, completed=completed_resources),
        overall_progress=overall,
    )
