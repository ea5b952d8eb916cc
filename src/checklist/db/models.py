"""ORM models for users, custom lists and progress.

Tables are created by the Alembic migrations in ``alembic/versions``; the
models mirror them column for column.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from checklist.db.base import Base, UTCDateTime, utcnow

CHECKLIST_TYPES = ("language_dsa", "language_dev", "dsa_topics", "examination")
RESOURCE_TYPES = ("video", "note", "link", "practice")


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")

    # Pending email verification
    otp_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    otp_expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    otp_attempts: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    # Pending password reset
    reset_token_hash: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    reset_token_expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    has_migrated_localstorage: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Custom lists: list -> section -> topic [-> subtopic] -> resource
# ---------------------------------------------------------------------------


class CustomList(Base):
    """A user-authored checklist. ``original_list_id`` links a copy to its source."""

    __tablename__ = "custom_lists"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str] = mapped_column(String(16), default="📚", nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    rating_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    rating_sum: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    copy_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    original_list_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("custom_lists.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)


class CustomSection(Base):
    """Maps to the 'custom_sections' table."""

    __tablename__ = "custom_sections"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    list_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("custom_lists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    icon: Mapped[str] = mapped_column(String(16), default="📁", nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)


class CustomTopic(Base):
    """A topic inside a section; a non-null ``parent_topic_id`` makes it a subtopic."""

    __tablename__ = "custom_topics"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    section_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("custom_sections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_topic_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("custom_topics.id", ondelete="CASCADE"), nullable=True, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)


class CustomResource(Base):
    """Maps to the 'custom_resources' table."""

    __tablename__ = "custom_resources"
    __table_args__ = (
        CheckConstraint(
            "type IN ('video', 'note', 'link', 'practice')",
            name="ck_custom_resources_type",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    topic_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("custom_topics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    platform: Mapped[str | None] = mapped_column(String(64), nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


class CustomProgress(Base):
    """Completion of one topic (resource_id NULL) or one resource of a custom list."""

    __tablename__ = "custom_progress"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    list_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("custom_lists.id", ondelete="CASCADE"), nullable=False
    )
    topic_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("custom_topics.id", ondelete="CASCADE"), nullable=True
    )
    resource_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("custom_resources.id", ondelete="CASCADE"), nullable=True
    )
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)


Index("ix_custom_progress_user_list", CustomProgress.user_id, CustomProgress.list_id)


class BuiltinProgress(Base):
    """Completion of one item of a predefined checklist."""

    __tablename__ = "builtin_progress"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "checklist_type", "checklist_id", "item_key",
            name="uq_builtin_progress_item",
        ),
        CheckConstraint(
            "checklist_type IN ('language_dsa', 'language_dev', 'dsa_topics', 'examination')",
            name="ck_builtin_progress_type",
        ),
        Index("ix_builtin_progress_user_checklist", "user_id", "checklist_type", "checklist_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    checklist_type: Mapped[str] = mapped_column(String(50), nullable=False)
    checklist_id: Mapped[str] = mapped_column(String(100), nullable=False)
    item_key: Mapped[str] = mapped_column(String(500), nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, default=utcnow, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------


class ListRating(Base):
    """One user's 1-5 rating of a public list."""

    __tablename__ = "list_ratings"
    __table_args__ = (
        UniqueConstraint("list_id", "user_id", name="uq_list_ratings_list_user"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_list_ratings_rating"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    list_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("custom_lists.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)
