"""
Custom list business logic.

Lists own sections, sections own topics (one level of subtopics), topics own
resources. Every lookup is scoped to the caller: rows of someone else's list
are reported as missing.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import Select, func, select
from sqlalchemy.orm import aliased

from checklist.db.models import CustomList, CustomResource, CustomSection, CustomTopic, User
from checklist.lists.platform import detect_platform
from checklist.lists.schemas import (
    ListOut,
    ListSummary,
    ResourceOut,
    SectionTree,
    TopicTree,
)

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from checklist.lists.schemas import (
        ListCreate,
        ListUpdate,
        ResourceCreate,
        ResourceUpdate,
        SectionCreate,
        SectionUpdate,
        TopicCreate,
        TopicUpdate,
    )

logger = structlog.get_logger()


def apply_changes(row: Any, changes: dict[str, Any]) -> None:  # noqa: ANN401
    """Coalesce update: only keys with a non-null value overwrite the row."""
    for field, value in changes.items():
        if value is not None:
            setattr(row, field, value)


# ---------------------------------------------------------------------------
# List queries
# ---------------------------------------------------------------------------


def summary_query() -> Select[Any]:
    """Lists joined with owner username and the title/owner of the list they were copied from."""
    owner = aliased(User)
    original = aliased(CustomList)
    original_owner = aliased(User)
    return (
        select(
            CustomList,
            owner.username.label("owner_username"),
            original.title.label("original_title"),
            original_owner.username.label("original_owner_username"),
        )
        .outerjoin(owner, CustomList.user_id == owner.id)
        .outerjoin(original, CustomList.original_list_id == original.id)
        .outerjoin(original_owner, original.user_id == original_owner.id)
    )


def to_summary(row: Any) -> ListSummary:  # noqa: ANN401
    """Build a ListSummary from a ``summary_query()`` row."""
    return ListSummary(
        **ListOut.model_validate(row[0]).model_dump(),
        owner_username=row.owner_username,
        original_title=row.original_title,
        original_owner_username=row.original_owner_username,
    )


async def get_user_lists(db: AsyncSession, user_id: uuid.UUID) -> list[ListSummary]:
    """All of a user's lists, newest first."""
    result = await db.execute(
        summary_query().where(CustomList.user_id == user_id).order_by(CustomList.created_at.desc())
    )
    return [to_summary(row) for row in result.all()]


async def get_list_summary(db: AsyncSession, list_id: uuid.UUID, user_id: uuid.UUID) -> ListSummary:
    """
    One of the caller's lists with owner and origin info.

    Raises:
        LookupError: If the list does not exist or belongs to someone else.
    """
    result = await db.execute(
        summary_query().where(CustomList.id == list_id, CustomList.user_id == user_id)
    )
    row = result.first()
    if row is None:
        msg = "List not found"
        raise LookupError(msg)
    return to_summary(row)


async def get_owned_list(db: AsyncSession, list_id: uuid.UUID, user_id: uuid.UUID) -> CustomList:
    """Raises LookupError unless ``user_id`` owns the list."""
    result = await db.execute(
        select(CustomList).where(CustomList.id == list_id, CustomList.user_id == user_id)
    )
    custom_list = result.scalar_one_or_none()
    if custom_list is None:
        msg = "List not found"
        raise LookupError(msg)
    return custom_list


async def build_tree(db: AsyncSession, list_id: uuid.UUID) -> list[SectionTree]:
    """
    Assemble sections -> topics -> subtopics -> resources for a list.

    Three flat queries ordered by order_index, joined in memory by foreign key.
    A topic with a parent appears only in its parent's ``subtopics``.
    """
    sections = (
        await db.execute(
            select(CustomSection)
            .where(CustomSection.list_id == list_id)
            .order_by(CustomSection.order_index, CustomSection.created_at)
        )
    ).scalars().all()

    topics = (
        await db.execute(
            select(CustomTopic)
            .join(CustomSection, CustomTopic.section_id == CustomSection.id)
            .where(CustomSection.list_id == list_id)
            .order_by(CustomTopic.order_index, CustomTopic.created_at)
        )
    ).scalars().all()

    resources = (
        await db.execute(
            select(CustomResource)
            .join(CustomTopic, CustomResource.topic_id == CustomTopic.id)
            .join(CustomSection, CustomTopic.section_id == CustomSection.id)
            .where(CustomSection.list_id == list_id)
            .order_by(CustomResource.order_index, CustomResource.created_at)
        )
    ).scalars().all()

    resources_by_topic: dict[uuid.UUID, list[ResourceOut]] = defaultdict(list)
    for resource in resources:
        resources_by_topic[resource.topic_id].append(ResourceOut.model_validate(resource))

    subtopics_by_parent: dict[uuid.UUID, list[TopicTree]] = defaultdict(list)
    top_level_by_section: dict[uuid.UUID, list[TopicTree]] = defaultdict(list)
    for topic in topics:
        node = TopicTree.model_validate(topic)
        node.resources = resources_by_topic.get(topic.id, [])
        if topic.parent_topic_id is None:
            top_level_by_section[topic.section_id].append(node)
        else:
            subtopics_by_parent[topic.parent_topic_id].append(node)

    tree: list[SectionTree] = []
    for section in sections:
        section_node = SectionTree.model_validate(section)
        section_node.topics = top_level_by_section.get(section.id, [])
        for topic_node in section_node.topics:
            topic_node.subtopics = subtopics_by_parent.get(topic_node.id, [])
        tree.append(section_node)
    return tree


# ---------------------------------------------------------------------------
# List mutations
# ---------------------------------------------------------------------------


async def create_list(db: AsyncSession, user_id: uuid.UUID, body: ListCreate) -> CustomList:
    """Create a list owned by ``user_id``; private unless asked otherwise."""
    custom_list = CustomList(
        user_id=user_id,
        title=body.title,
        description=body.description,
        icon=body.icon,
        is_public=body.is_public,
    )
    db.add(custom_list)
    await db.flush()
    logger.info("list_created", list_id=str(custom_list.id), user_id=str(user_id))
    return custom_list


async def update_list(db: AsyncSession, list_id: uuid.UUID, user_id: uuid.UUID, body: ListUpdate) -> CustomList:
    """Coalesce update of title, description, icon and is_public."""
    custom_list = await get_owned_list(db, list_id, user_id)
    apply_changes(custom_list, body.model_dump())
    await db.flush()
    await db.refresh(custom_list)
    return custom_list


async def delete_list(db: AsyncSession, list_id: uuid.UUID, user_id: uuid.UUID) -> ListOut:
    """Delete a list and, through cascades, everything under it."""
    custom_list = await get_owned_list(db, list_id, user_id)
    snapshot = ListOut.model_validate(custom_list)
    await db.delete(custom_list)
    await db.flush()
    logger.info("list_deleted", list_id=str(list_id), user_id=str(user_id))
    return snapshot


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


async def next_order_index(db: AsyncSession, column: Any, *conditions: Any) -> int:  # noqa: ANN401
    """max(order_index) + 1 among the rows matching ``conditions``, 0 when there are none."""
    result = await db.execute(select(func.max(column)).where(*conditions))
    current = result.scalar()
    return 0 if current is None else current + 1


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


async def get_owned_section(db: AsyncSession, section_id: uuid.UUID, user_id: uuid.UUID) -> CustomSection:
    result = await db.execute(
        select(CustomSection)
        .join(CustomList, CustomSection.list_id == CustomList.id)
        .where(CustomSection.id == section_id, CustomList.user_id == user_id)
    )
    section = result.scalar_one_or_none()
    if section is None:
        msg = "Section not found"
        raise LookupError(msg)
    return section


async def create_section(db: AsyncSession, user_id: uuid.UUID, body: SectionCreate) -> CustomSection:
    await get_owned_list(db, body.list_id, user_id)
    order_index = body.order_index
    if order_index is None:
        order_index = await next_order_index(
            db, CustomSection.order_index, CustomSection.list_id == body.list_id
        )
    section = CustomSection(list_id=body.list_id, title=body.title, icon=body.icon, order_index=order_index)
    db.add(section)
    await db.flush()
    return section


async def update_section(
    db: AsyncSession, section_id: uuid.UUID, user_id: uuid.UUID, body: SectionUpdate
) -> CustomSection:
    section = await get_owned_section(db, section_id, user_id)
    apply_changes(section, body.model_dump())
    await db.flush()
    return section


async def reorder_section(
    db: AsyncSession, section_id: uuid.UUID, user_id: uuid.UUID, new_order_index: int
) -> CustomSection:
    """Set this section's index only; siblings are left as they are."""
    section = await get_owned_section(db, section_id, user_id)
    section.order_index = new_order_index
    await db.flush()
    return section


async def delete_section(db: AsyncSession, section_id: uuid.UUID, user_id: uuid.UUID) -> CustomSection:
    section = await get_owned_section(db, section_id, user_id)
    await db.delete(section)
    await db.flush()
    return section


# ---------------------------------------------------------------------------
# Topics
# ---------------------------------------------------------------------------


async def get_owned_topic(db: AsyncSession, topic_id: uuid.UUID, user_id: uuid.UUID) -> CustomTopic:
    result = await db.execute(
        select(CustomTopic)
        .join(CustomSection, CustomTopic.section_id == CustomSection.id)
        .join(CustomList, CustomSection.list_id == CustomList.id)
        .where(CustomTopic.id == topic_id, CustomList.user_id == user_id)
    )
    topic = result.scalar_one_or_none()
    if topic is None:
        msg = "Topic not found"
        raise LookupError(msg)
    return topic


async def create_topic(db: AsyncSession, user_id: uuid.UUID, body: TopicCreate) -> CustomTopic:
    """
    Create a topic, or a subtopic when ``parent_topic_id`` is given.

    Raises:
        LookupError: If the section is not the caller's.
        ValueError: If the parent is not a top-level topic of the same section.
    """
    await get_owned_section(db, body.section_id, user_id)

    if body.parent_topic_id is not None:
        parent = await db.get(CustomTopic, body.parent_topic_id)
        if parent is None or parent.section_id != body.section_id or parent.parent_topic_id is not None:
            msg = "Parent topic must be a top-level topic in the same section"
            raise ValueError(msg)

    order_index = body.order_index
    if order_index is None:
        if body.parent_topic_id is not None:
            scope = (CustomTopic.parent_topic_id == body.parent_topic_id,)
        else:
            scope = (CustomTopic.section_id == body.section_id, CustomTopic.parent_topic_id.is_(None))
        order_index = await next_order_index(db, CustomTopic.order_index, *scope)

    topic = CustomTopic(
        section_id=body.section_id,
        parent_topic_id=body.parent_topic_id,
        title=body.title,
        order_index=order_index,
    )
    db.add(topic)
    await db.flush()
    return topic


async def update_topic(db: AsyncSession, topic_id: uuid.UUID, user_id: uuid.UUID, body: TopicUpdate) -> CustomTopic:
    topic = await get_owned_topic(db, topic_id, user_id)
    apply_changes(topic, body.model_dump())
    await db.flush()
    return topic


async def reorder_topic(
    db: AsyncSession, topic_id: uuid.UUID, user_id: uuid.UUID, new_order_index: int
) -> CustomTopic:
    topic = await get_owned_topic(db, topic_id, user_id)
    topic.order_index = new_order_index
    await db.flush()
    return topic


async def delete_topic(db: AsyncSession, topic_id: uuid.UUID, user_id: uuid.UUID) -> CustomTopic:
    topic = await get_owned_topic(db, topic_id, user_id)
    await db.delete(topic)
    await db.flush()
    return topic


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


async def get_owned_resource(db: AsyncSession, resource_id: uuid.UUID, user_id: uuid.UUID) -> CustomResource:
    result = await db.execute(
        select(CustomResource)
        .join(CustomTopic, CustomResource.topic_id == CustomTopic.id)
        .join(CustomSection, CustomTopic.section_id == CustomSection.id)
        .join(CustomList, CustomSection.list_id == CustomList.id)
        .where(CustomResource.id == resource_id, CustomList.user_id == user_id)
    )
    resource = result.scalar_one_or_none()
    if resource is None:
        msg = "Resource not found"
        raise LookupError(msg)
    return resource


async def create_resource(db: AsyncSession, user_id: uuid.UUID, body: ResourceCreate) -> CustomResource:
    """Create a resource; the platform is detected from the URL when not given."""
    await get_owned_topic(db, body.topic_id, user_id)
    order_index = body.order_index
    if order_index is None:
        order_index = await next_order_index(
            db, CustomResource.order_index, CustomResource.topic_id == body.topic_id
        )
    resource = CustomResource(
        topic_id=body.topic_id,
        type=body.type,
        title=body.title,
        url=body.url,
        platform=body.platform or detect_platform(body.url),
        order_index=order_index,
    )
    db.add(resource)
    await db.flush()
    return resource


async def update_resource(
    db: AsyncSession, resource_id: uuid.UUID, user_id: uuid.UUID, body: ResourceUpdate
) -> CustomResource:
    resource = await get_owned_resource(db, resource_id, user_id)
    apply_changes(resource, body.model_dump())
    await db.flush()
    return resource


async def reorder_resource(
    db: AsyncSession, resource_id: uuid.UUID, user_id: uuid.UUID, new_order_index: int
) -> CustomResource:
    resource = await get_owned_resource(db, resource_id, user_id)
    resource.order_index = new_order_index
    await db.flush()
    return resource


async def delete_resource(db: AsyncSession, resource_id: uuid.UUID, user_id: uuid.UUID) -> CustomResource:
    resource = await get_owned_resource(db, resource_id, user_id)
    await db.delete(resource)
    await db.flush()
    return resource
