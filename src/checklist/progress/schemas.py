"""Request/response schemas for progress tracking."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from checklist.db.models import CHECKLIST_TYPES

# ---------------------------------------------------------------------------
# Custom list progress
# ---------------------------------------------------------------------------


class ProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    list_id: uuid.UUID
    topic_id: uuid.UUID | None
    resource_id: uuid.UUID | None
    completed: bool
    completed_at: datetime | None
    created_at: datetime


class ToggleRequest(BaseModel):
    list_id: uuid.UUID
    topic_id: uuid.UUID | None = None
    resource_id: uuid.UUID | None = None

    @model_validator(mode="after")
    def require_target(self) -> ToggleRequest:
        if self.topic_id is None and self.resource_id is None:
            msg = "list_id and either topic_id or resource_id are required"
            raise ValueError(msg)
        return self


class CompleteTopicRequest(BaseModel):
    list_id: uuid.UUID
    topic_id: uuid.UUID
    include_resources: bool = True


class CompleteTopicResponse(BaseModel):
    message: str
    topic_id: uuid.UUID
    include_resources: bool
    resources_completed: int


class ResetResponse(BaseModel):
    message: str
    deleted_count: int


class ItemCounts(BaseModel):
    total: int
    completed: int


class ProgressStats(BaseModel):
    topics: ItemCounts
    resources: ItemCounts
    overall_progress: int


# ---------------------------------------------------------------------------
# Builtin checklists
# ---------------------------------------------------------------------------


class ChecklistItems(BaseModel):
    """The completion state of one builtin checklist: ``items`` maps item key -> checked."""

    type: str
    id: str = Field(..., min_length=1, max_length=100)
    items: dict[str, Any]

    @field_validator("type")
    @classmethod
    def check_type(cls, v: str) -> str:
        if v not in CHECKLIST_TYPES:
            msg = "Invalid checklist type"
            raise ValueError(msg)
        return v

    def checked_keys(self) -> set[str]:
        """Keys explicitly marked ``true``."""
        return {key for key, value in self.items.items() if value is True and 0 < len(key) <= 500}


class BatchAllRequest(BaseModel):
    """Entries are validated one by one so a bad checklist does not sink the batch."""

    checklists: list[Any]


class BatchResponse(BaseModel):
    message: str
    inserted: int
    deleted: int


class BatchAllResponse(BaseModel):
    message: str
    checklists_processed: int
    total_inserted: int
    total_deleted: int
