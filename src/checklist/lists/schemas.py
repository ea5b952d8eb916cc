"""Request/response schemas for custom lists and their sections, topics and resources."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints

ResourceType = Literal["video", "note", "link", "practice"]


def _require_text(v: str) -> str:
    if not v:
        msg = "Title is required"
        raise ValueError(msg)
    return v


Title = Annotated[str, StringConstraints(strip_whitespace=True, max_length=255), AfterValidator(_require_text)]


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------


class ResourceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    topic_id: uuid.UUID
    type: str
    title: str
    url: str
    platform: str | None
    order_index: int
    created_at: datetime


class TopicOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    section_id: uuid.UUID
    parent_topic_id: uuid.UUID | None
    title: str
    order_index: int
    created_at: datetime


class SectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    list_id: uuid.UUID
    title: str
    icon: str
    order_index: int
    created_at: datetime


class ListOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: str | None
    icon: str
    is_public: bool
    rating_count: int
    rating_sum: int
    copy_count: int
    original_list_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime


class ListSummary(ListOut):
    """A list with its owner's name and where it was copied from."""

    owner_username: str | None = None
    original_title: str | None = None
    original_owner_username: str | None = None


# ---------------------------------------------------------------------------
# Nested tree
# ---------------------------------------------------------------------------


class TopicTree(TopicOut):
    resources: list[ResourceOut] = []
    subtopics: list[TopicTree] = []


class SectionTree(SectionOut):
    topics: list[TopicTree] = []


class ListDetail(ListSummary):
    sections: list[SectionTree] = []


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class ListCreate(BaseModel):
    title: Title
    description: str | None = None
    icon: str = Field("📚", min_length=1, max_length=16)
    is_public: bool = False


class ListUpdate(BaseModel):
    """Every field is optional; omitted or null fields keep their stored value."""

    title: Title | None = None
    description: str | None = None
    icon: str | None = Field(None, min_length=1, max_length=16)
    is_public: bool | None = None


class SectionCreate(BaseModel):
    list_id: uuid.UUID
    title: Title
    icon: str = Field("📁", min_length=1, max_length=16)
    order_index: int | None = Field(None, ge=0)


class SectionUpdate(BaseModel):
    title: Title | None = None
    icon: str | None = Field(None, min_length=1, max_length=16)
    order_index: int | None = Field(None, ge=0)


class TopicCreate(BaseModel):
    section_id: uuid.UUID
    parent_topic_id: uuid.UUID | None = None
    title: Title
    order_index: int | None = Field(None, ge=0)


class TopicUpdate(BaseModel):
    title: Title | None = None
    order_index: int | None = Field(None, ge=0)


class ResourceCreate(BaseModel):
    topic_id: uuid.UUID
    type: ResourceType
    title: Title
    url: str = Field(..., min_length=1, max_length=2048)
    platform: str | None = Field(None, max_length=64)
    order_index: int | None = Field(None, ge=0)


class ResourceUpdate(BaseModel):
    type: ResourceType | None = None
    title: Title | None = None
    url: str | None = Field(None, min_length=1, max_length=2048)
    platform: str | None = Field(None, max_length=64)
    order_index: int | None = Field(None, ge=0)


class ReorderRequest(BaseModel):
    new_order_index: int = Field(..., ge=0)


# ---------------------------------------------------------------------------
# Deletion envelopes
# ---------------------------------------------------------------------------


class ListDeleted(BaseModel):
    message: str
    list: ListOut


class SectionDeleted(BaseModel):
    message: str
    section: SectionOut


class TopicDeleted(BaseModel):
    message: str
    topic: TopicOut


class ResourceDeleted(BaseModel):
    message: str
    resource: ResourceOut
