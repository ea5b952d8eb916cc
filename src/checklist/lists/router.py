"""Custom list endpoints: /api/custom-lists, /api/sections, /api/topics, /api/resources."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from checklist.auth.dependencies import get_current_user
from checklist.auth.jwt import TokenClaims
from checklist.database import get_session
from checklist.lists import service
from checklist.lists.schemas import (
    ListCreate,
    ListDeleted,
    ListDetail,
    ListOut,
    ListSummary,
    ListUpdate,
    ReorderRequest,
    ResourceCreate,
    ResourceDeleted,
    ResourceOut,
    ResourceUpdate,
    SectionCreate,
    SectionDeleted,
    SectionOut,
    SectionUpdate,
    TopicCreate,
    TopicDeleted,
    TopicOut,
    TopicUpdate,
)
from checklist.middleware.rate_limit import rate_limit

lists_router = APIRouter(prefix="/api/custom-lists", tags=["Custom lists"])
sections_router = APIRouter(prefix="/api/sections", tags=["Custom lists"])
topics_router = APIRouter(prefix="/api/topics", tags=["Custom lists"])
resources_router = APIRouter(prefix="/api/resources", tags=["Custom lists"])


def _not_found(e: LookupError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------


@lists_router.get("", response_model=list[ListSummary])
async def get_lists(
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[ListSummary]:
    """The caller's lists, newest first."""
    return await service.get_user_lists(db, user.id)


@lists_router.get("/{list_id}", response_model=ListDetail)
async def get_list(
    list_id: uuid.UUID,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ListDetail:
    """One of the caller's lists with its full section/topic/resource tree."""
    try:
        summary = await service.get_list_summary(db, list_id, user.id)
    except LookupError as e:
        raise _not_found(e) from e
    sections = await service.build_tree(db, list_id)
    return ListDetail(**summary.model_dump(), sections=sections)


@lists_router.post(
    "",
    response_model=ListOut,
    status_code=201,
    dependencies=[Depends(rate_limit("list_creation"))],
)
async def create_list(
    body: ListCreate,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ListOut:
    custom_list = await service.create_list(db, user.id, body)
    await db.commit()
    return ListOut.model_validate(custom_list)


@lists_router.put("/{list_id}", response_model=ListOut)
async def update_list(
    list_id: uuid.UUID,
    body: ListUpdate,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ListOut:
    try:
        custom_list = await service.update_list(db, list_id, user.id, body)
    except LookupError as e:
        raise _not_found(e) from e
    await db.commit()
    return ListOut.model_validate(custom_list)


@lists_router.delete("/{list_id}", response_model=ListDeleted)
async def delete_list(
    list_id: uuid.UUID,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ListDeleted:
    try:
        deleted = await service.delete_list(db, list_id, user.id)
    except LookupError as e:
        raise _not_found(e) from e
    await db.commit()
    return ListDeleted(message="List deleted successfully", list=deleted)


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@sections_router.post("", response_model=SectionOut, status_code=201)
async def create_section(
    body: SectionCreate,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SectionOut:
    try:
        section = await service.create_section(db, user.id, body)
    except LookupError as e:
        raise _not_found(e) from e
    await db.commit()
    return SectionOut.model_validate(section)


@sections_router.put("/{section_id}", response_model=SectionOut)
async def update_section(
    section_id: uuid.UUID,
    body: SectionUpdate,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SectionOut:
    try:
        section = await service.update_section(db, section_id, user.id, body)
    except LookupError as e:
        raise _not_found(e) from e
    await db.commit()
    return SectionOut.model_validate(section)


@sections_router.delete("/{section_id}", response_model=SectionDeleted)
async def delete_section(
    section_id: uuid.UUID,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SectionDeleted:
    try:
        section = await service.delete_section(db, section_id, user.id)
    except LookupError as e:
        raise _not_found(e) from e
    await db.commit()
    return SectionDeleted(message="Section deleted successfully", section=SectionOut.model_validate(section))


@sections_router.put("/{section_id}/reorder", response_model=SectionOut)
async def reorder_section(
    section_id: uuid.UUID,
    body: ReorderRequest,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SectionOut:
    try:
        section = await service.reorder_section(db, section_id, user.id, body.new_order_index)
    except LookupError as e:
        raise _not_found(e) from e
    await db.commit()
    return SectionOut.model_validate(section)


# ---------------------------------------------------------------------------
# Topics
# ---------------------------------------------------------------------------


@topics_router.post("", response_model=TopicOut, status_code=201)
async def create_topic(
    body: TopicCreate,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TopicOut:
    try:
        topic = await service.create_topic(db, user.id, body)
    except LookupError as e:
        raise _not_found(e) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return TopicOut.model_validate(topic)


@topics_router.put("/{topic_id}", response_model=TopicOut)
async def update_topic(
    topic_id: uuid.UUID,
    body: TopicUpdate,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TopicOut:
    try:
        topic = await service.update_topic(db, topic_id, user.id, body)
    except LookupError as e:
        raise _not_found(e) from e
    await db.commit()
    return TopicOut.model_validate(topic)


@topics_router.delete("/{topic_id}", response_model=TopicDeleted)
async def delete_topic(
    topic_id: uuid.UUID,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TopicDeleted:
    try:
        topic = await service.delete_topic(db, topic_id, user.id)
    except LookupError as e:
        raise _not_found(e) from e
    await db.commit()
    return TopicDeleted(message="Topic deleted successfully", topic=TopicOut.model_validate(topic))


@topics_router.put("/{topic_id}/reorder", response_model=TopicOut)
async def reorder_topic(
    topic_id: uuid.UUID,
    body: ReorderRequest,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TopicOut:
    try:
        topic = await service.reorder_topic(db, topic_id, user.id, body.new_order_index)
    except LookupError as e:
        raise _not_found(e) from e
    await db.commit()
    return TopicOut.model_validate(topic)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


@resources_router.post("", response_model=ResourceOut, status_code=201)
async def create_resource(
    body: ResourceCreate,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ResourceOut:
    try:
        resource = await service.create_resource(db, user.id, body)
    except LookupError as e:
        raise _not_found(e) from e
    await db.commit()
    return ResourceOut.model_validate(resource)


@resources_router.put("/{resource_id}", response_model=ResourceOut)
async def update_resource(
    resource_id: uuid.UUID,
    body: ResourceUpdate,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ResourceOut:
    try:
        resource = await service.update_resource(db, resource_id, user.id, body)
    except LookupError as e:
        raise _not_found(e) from e
    await db.commit()
    return ResourceOut.model_validate(resource)


@resources_router.delete("/{resource_id}", response_model=ResourceDeleted)
async def delete_resource(
    resource_id: uuid.UUID,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ResourceDeleted:
    try:
        resource = await service.delete_resource(db, resource_id, user.id)
    except LookupError as e:
        raise _not_found(e) from e
    await db.commit()
    return ResourceDeleted(message="Resource deleted successfully", resource=ResourceOut.model_validate(resource))


@resources_router.put("/{resource_id}/reorder", response_model=ResourceOut)
async def reorder_resource(
    resource_id: uuid.UUID,
    body: ReorderRequest,
    user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ResourceOut:
    try:
        resource = await service.reorder_resource(db, resource_id, user.id, body.new_order_index)
    except LookupError as e:
        raise _not_found(e) from e
    await db.commit()
    return ResourceOut.model_validate(resource)
