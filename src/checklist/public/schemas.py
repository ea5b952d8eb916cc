"""Request/response schemas for shared (public) lists."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, field_validator

from checklist.lists.schemas import ListDetail


class PublicListItem(BaseModel):
    """One row of the public catalogue."""

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: str | None
    icon: str
    rating_count: int
    rating_sum: int
    copy_count: int
    original_list_id: uuid.UUID | None
    created_at: datetime
    owner_username: str | None
    original_title: str | None
    original_owner_username: str | None
    section_count: int
    topic_count: int
    average_rating: float
    user_rating: int | None = None


class PublicListPage(BaseModel):
    lists: list[PublicListItem]
    total: int
    limit: int
    offset: int


class PublicListDetail(ListDetail):
    average_rating: float
    user_rating: int | None = None


class LineageEntry(BaseModel):
    id: uuid.UUID
    title: str
    username: str | None
    user_id: uuid.UUID
    created_at: datetime
    is_public: bool


class LineageResponse(BaseModel):
    lineage: list[LineageEntry]


class RateRequest(BaseModel):
    rating: int

    @field_validator("rating")
    @classmethod
    def check_range(cls, v: int) -> int:
        if not 1 <= v <= 5:
            msg = "Rating must be between 1 and 5"
            raise ValueError(msg)
        return v


class RateResponse(BaseModel):
    message: str
    average_rating: float
    rating_count: int
    user_rating: int


class CopyResponse(BaseModel):
    message: str
    list_id: uuid.UUID
