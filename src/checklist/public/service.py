"""
Public list catalogue: search, ratings, lineage and deep copy.

Ratings keep ``rating_count``/``rating_sum`` on the list in step with the
``list_ratings`` rows by recomputing both inside the rating transaction.
"""

from __future__ import annotations

import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any, Literal

import structlog
from sqlalchemy import Float, case, cast, func, or_, select, update

from checklist.db.base import utcnow
from checklist.db.models import (
    CustomList,
    CustomResource,
    CustomSection,
    CustomTopic,
    ListRating,
    User,
)
from checklist.db.upsert import upsert_insert
from checklist.lists.service import build_tree, summary_query, to_summary
from checklist.public.schemas import LineageEntry, PublicListDetail, PublicListItem

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

SortMode = Literal["recent", "rating", "popular"]


def average_rating(rating_sum: int, rating_count: int) -> float:
    """Mean rating to one decimal (half up), 0 when unrated."""
    if rating_count <= 0:
        return 0.0
    mean = Decimal(rating_sum) / Decimal(rating_count)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally (escape char ``\\``)."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


def _public_conditions(search: str) -> list[Any]:
    conditions: list[Any] = [CustomList.is_public.is_(True)]
    term = search.strip()
    if term:
        pattern = f"%{escape_like(term)}%"
        conditions.append(
            or_(
                CustomList.title.ilike(pattern, escape="\\"),
                CustomList.description.ilike(pattern, escape="\\"),
            )
        )
    return conditions


def _order_by(sort: SortMode) -> list[Any]:
    if sort == "rating":
        mean = case(
            (CustomList.rating_count > 0, cast(CustomList.rating_sum, Float) / CustomList.rating_count),
            else_=0.0,
        )
        return [mean.desc(), CustomList.created_at.desc()]
    if sort == "popular":
        return [CustomList.copy_count.desc(), CustomList.created_at.desc()]
    return [CustomList.created_at.desc()]


async def user_ratings(db: AsyncSession, user_id: uuid.UUID, list_ids: list[uuid.UUID]) -> dict[uuid.UUID, int]:
    """The caller's rating for each of ``list_ids`` they have rated."""
    if not list_ids:
        return {}
    result = await db.execute(
        select(ListRating.list_id, ListRating.rating).where(
            ListRating.user_id == user_id,
            ListRating.list_id.in_(list_ids),
        )
    )
    return {list_id: rating for list_id, rating in result.all()}


async def search_public_lists(
    db: AsyncSession,
    *,
    search: str = "",
    sort: SortMode = "recent",
    limit: int = 20,
    offset: int = 0,
    viewer_id: uuid.UUID | None = None,
) -> tuple[list[PublicListItem], int]:
    """
    One page of public lists plus the total number of matches.

    Returns:
        Tuple of (items, total).
    """
    conditions = _public_conditions(search)

    section_count = (
        select(func.count(CustomSection.id))
        .where(CustomSection.list_id == CustomList.id)
        .correlate(CustomList)
        .scalar_subquery()
    )
    topic_count = (
        select(func.count(CustomTopic.id))
        .join(CustomSection, CustomTopic.section_id == CustomSection.id)
        .where(CustomSection.list_id == CustomList.id)
        .correlate(CustomList)
        .scalar_subquery()
    )
    stmt = (
        summary_query()
        .add_columns(section_count.label("section_count"), topic_count.label("topic_count"))
        .where(*conditions)
        .order_by(*_order_by(sort))
        .limit(limit)
        .offset(offset)
    )
    rows = (await db.execute(stmt)).all()

    total = (await db.execute(select(func.count(CustomList.id)).where(*conditions))).scalar_one()

    ratings = await user_ratings(db, viewer_id, [row[0].id for row in rows]) if viewer_id else {}

    items = []
    for row in rows:
        custom_list: CustomList = row[0]
        items.append(
            PublicListItem(
                id=custom_list.id,
                user_id=custom_list.user_id,
                title=custom_list.title,
                description=custom_list.description,
                icon=custom_list.icon,
                rating_count=custom_list.rating_count,
                rating_sum=custom_list.rating_sum,
                copy_count=custom_list.copy_count,
                original_list_id=custom_list.original_list_id,
                created_at=custom_list.created_at,
                owner_username=row.owner_username,
                original_title=row.original_title,
                original_owner_username=row.original_owner_username,
                section_count=row.section_count,
                topic_count=row.topic_count,
                average_rating=average_rating(custom_list.rating_sum, custom_list.rating_count),
                user_rating=ratings.get(custom_list.id),
            )
        )
    return items, total


async def get_public_list(db: AsyncSession, list_id: uuid.UUID) -> CustomList:
    """Raises LookupError unless the list exists and is public."""
    result = await db.execute(
        select(CustomList).where(CustomList.id == list_id, CustomList.is_public.is_(True))
    )
    custom_list = result.scalar_one_or_none()
    if custom_list is None:
        msg = "List not found or not public"
        raise LookupError(msg)
    return custom_list


async def get_public_detail(
    db: AsyncSession, list_id: uuid.UUID, viewer_id: uuid.UUID | None = None
) -> PublicListDetail:
    """
    A public list with its full tree, mean rating and the viewer's own rating.

    Raises:
        LookupError: If the list is missing or private.
    """
    row = (
        await db.execute(
            summary_query().where(CustomList.id == list_id, CustomList.is_public.is_(True))
        )
    ).first()
    if row is None:
        msg = "List not found or not public"
        raise LookupError(msg)
    summary = to_summary(row)
    ratings = await user_ratings(db, viewer_id, [list_id]) if viewer_id else {}
    return PublicListDetail(
        **summary.model_dump(),
        sections=await build_tree(db, list_id),
        average_rating=average_rating(summary.rating_sum, summary.rating_count),
        user_rating=ratings.get(list_id),
    )


# ---------------------------------------------------------------------------
# Lineage
# ---------------------------------------------------------------------------


async def get_lineage(db: AsyncSession, list_id: uuid.UUID, max_depth: int) -> list[LineageEntry]:
    """
    Ancestry of a list, original first and ``list_id`` last.

    Follows ``original_list_id`` until it is null. The walk stops at a list it
    has already visited or after ``max_depth`` hops, so a cyclic chain ends.

    Raises:
        LookupError: If ``list_id`` does not exist.
    """
    chain: list[LineageEntry] = []
    visited: set[uuid.UUID] = set()
    current: uuid.UUID | None = list_id

    while current is not None:
        if current in visited:
            logger.warning("lineage_cycle", list_id=str(list_id), repeated=str(current))
            break
        if len(chain) >= max_depth:
            logger.warning("lineage_depth_exceeded", list_id=str(list_id), max_depth=max_depth)
            break
        visited.add(current)

        row = (
            await db.execute(
                select(CustomList, User.username)
                .outerjoin(User, CustomList.user_id == User.id)
                .where(CustomList.id == current)
            )
        ).first()
        if row is None:
            break
        custom_list, username = row
        chain.append(
            LineageEntry(
                id=custom_list.id,
                title=custom_list.title,
                username=username,
                user_id=custom_list.user_id,
                created_at=custom_list.created_at,
                is_public=custom_list.is_public,
            )
        )
        current = custom_list.original_list_id

    if not chain:
        msg = "List not found"
        raise LookupError(msg)
    chain.reverse()
    return chain


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------


async def rate_list(db: AsyncSession, list_id: uuid.UUID, user_id: uuid.UUID, rating: int) -> CustomList:
    """
    Record the caller's rating (last write wins) and refresh the list's aggregate.

    Raises:
        LookupError: If the list is missing or private.
    """
    custom_list = await get_public_list(db, list_id)
    now = utcnow()

    stmt = upsert_insert(db, ListRating.__table__).values(
        id=uuid.uuid4(),
        list_id=list_id,
        user_id=user_id,
        rating=rating,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["list_id", "user_id"],
        set_={"rating": rating, "updated_at": now},
    )
    await db.execute(stmt)

    count, total = (
        await db.execute(
            select(func.count(ListRating.id), func.coalesce(func.sum(ListRating.rating), 0)).where(
                ListRating.list_id == list_id
            )
        )
    ).one()
    custom_list.rating_count = count
    custom_list.rating_sum = total
    await db.flush()
    logger.info("list_rated", list_id=str(list_id), user_id=str(user_id), rating=rating)
    return custom_list


# ---------------------------------------------------------------------------
# Copy
# ---------------------------------------------------------------------------


def _clone_section(section: CustomSection, list_id: uuid.UUID) -> CustomSection:
    return CustomSection(
        id=uuid.uuid4(),
        list_id=list_id,
        title=section.title,
        icon=section.icon,
        order_index=section.order_index,
    )


def _clone_topic(topic: CustomTopic, section_id: uuid.UUID, parent_topic_id: uuid.UUID | None) -> CustomTopic:
    return CustomTopic(
        id=uuid.uuid4(),
        section_id=section_id,
        parent_topic_id=parent_topic_id,
        title=topic.title,
        order_index=topic.order_index,
    )


def _clone_resource(resource: CustomResource, topic_id: uuid.UUID) -> CustomResource:
    return CustomResource(
        id=uuid.uuid4(),
        topic_id=topic_id,
        type=resource.type,
        title=resource.title,
        url=resource.url,
        platform=resource.platform,
        order_index=resource.order_index,
    )


async def copy_public_list(db: AsyncSession, list_id: uuid.UUID, user_id: uuid.UUID) -> CustomList:
    """
    Deep-copy a public list into ``user_id``'s account as a private list.

    Subtopics are re-pointed at the copies of their parents. The caller owns
    the transaction: it commits on success and rolls back on any error.

    Raises:
        LookupError: If the source is missing or private.
    """
    source = await get_public_list(db, list_id)

    new_list = CustomList(
        id=uuid.uuid4(),
        user_id=user_id,
        title=f"{source.title} (Copy)",
        description=source.description,
        icon=source.icon,
        is_public=False,
        original_list_id=source.id,
    )
    db.add(new_list)
    await db.flush()

    sections = (
        await db.execute(
            select(CustomSection).where(CustomSection.list_id == source.id).order_by(CustomSection.order_index)
        )
    ).scalars().all()
    section_ids: dict[uuid.UUID, uuid.UUID] = {}
    for section in sections:
        clone = _clone_section(section, new_list.id)
        section_ids[section.id] = clone.id
        db.add(clone)
    await db.flush()

    # Parents before children so every subtopic's parent already has a new id
    topics = (
        await db.execute(
            select(CustomTopic)
            .join(CustomSection, CustomTopic.section_id == CustomSection.id)
            .where(CustomSection.list_id == source.id)
            .order_by(CustomTopic.parent_topic_id.is_not(None), CustomTopic.order_index)
        )
    ).scalars().all()
    topic_ids: dict[uuid.UUID, uuid.UUID] = {}
    for topic in topics:
        parent_id = topic_ids[topic.parent_topic_id] if topic.parent_topic_id is not None else None
        clone = _clone_topic(topic, section_ids[topic.section_id], parent_id)
        topic_ids[topic.id] = clone.id
        db.add(clone)
    await db.flush()

    resources = (
        await db.execute(
            select(CustomResource)
            .join(CustomTopic, CustomResource.topic_id == CustomTopic.id)
            .join(CustomSection, CustomTopic.section_id == CustomSection.id)
            .where(CustomSection.list_id == source.id)
            .order_by(CustomResource.order_index)
        )
    ).scalars().all()
    for resource in resources:
        db.add(_clone_resource(resource, topic_ids[resource.topic_id]))
    await db.flush()

    await db.execute(
        update(CustomList)
        .where(CustomList.id == source.id)
        .values(copy_count=CustomList.copy_count + 1)
    )

    logger.info(
        "list_copied",
        source_id=str(source.id),
        new_list_id=str(new_list.id),
        user_id=str(user_id),
        sections=len(sections),
        topics=len(topics),
        resources=len(resources),
    )
    return new_list
