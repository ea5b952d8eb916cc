"""Initial schema: users, custom lists, progress and ratings.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")
    )


def _uuid_fk(name: str, target: str, *, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()"))


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()"))


def upgrade() -> None:
    """Create all tables."""
    # --- users ---
    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("username", sa.String(20), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("email_verified", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("otp_hash", sa.String(64), nullable=True),
        sa.Column("otp_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("otp_attempts", sa.Integer(), server_default="0", nullable=False),
        sa.Column("reset_token_hash", sa.String(64), nullable=True),
        sa.Column("reset_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("has_migrated_localstorage", sa.Boolean(), server_default="false", nullable=False),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_users_reset_token_hash", "users", ["reset_token_hash"])
    op.create_index("ix_users_email_lower", "users", [sa.text("LOWER(email)")])

    # --- custom_lists ---
    op.create_table(
        "custom_lists",
        _uuid_pk(),
        _uuid_fk("user_id", "users.id"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(16), server_default="📚", nullable=False),
        sa.Column("is_public", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("rating_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("rating_sum", sa.Integer(), server_default="0", nullable=False),
        sa.Column("copy_count", sa.Integer(), server_default="0", nullable=False),
        _uuid_fk("original_list_id", "custom_lists.id", nullable=True, ondelete="SET NULL"),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_custom_lists_user_id", "custom_lists", ["user_id"])
    op.create_index(
        "ix_custom_lists_public_created",
        "custom_lists",
        ["created_at"],
        postgresql_where=sa.text("is_public"),
    )

    # --- custom_sections ---
    op.create_table(
        "custom_sections",
        _uuid_pk(),
        _uuid_fk("list_id", "custom_lists.id"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("icon", sa.String(16), server_default="📁", nullable=False),
        sa.Column("order_index", sa.Integer(), server_default="0", nullable=False),
        _created_at(),
    )
    op.create_index("ix_custom_sections_list_id", "custom_sections", ["list_id"])

    # --- custom_topics ---
    op.create_table(
        "custom_topics",
        _uuid_pk(),
        _uuid_fk("section_id", "custom_sections.id"),
        _uuid_fk("parent_topic_id", "custom_topics.id", nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("order_index", sa.Integer(), server_default="0", nullable=False),
        _created_at(),
    )
    op.create_index("ix_custom_topics_section_id", "custom_topics", ["section_id"])
    op.create_index("ix_custom_topics_parent_topic_id", "custom_topics", ["parent_topic_id"])

    # --- custom_resources ---
    op.create_table(
        "custom_resources",
        _uuid_pk(),
        _uuid_fk("topic_id", "custom_topics.id"),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("platform", sa.String(64), nullable=True),
        sa.Column("order_index", sa.Integer(), server_default="0", nullable=False),
        _created_at(),
        sa.CheckConstraint("type IN ('video', 'note', 'link', 'practice')", name="ck_custom_resources_type"),
    )
    op.create_index("ix_custom_resources_topic_id", "custom_resources", ["topic_id"])

    # --- custom_progress ---
    op.create_table(
        "custom_progress",
        _uuid_pk(),
        _uuid_fk("user_id", "users.id"),
        _uuid_fk("list_id", "custom_lists.id"),
        _uuid_fk("topic_id", "custom_topics.id", nullable=True),
        _uuid_fk("resource_id", "custom_resources.id", nullable=True),
        sa.Column("completed", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_custom_progress_user_list", "custom_progress", ["user_id", "list_id"])
    # One row per (user, topic, resource) with NULL resource meaning the topic itself
    op.execute(
        "CREATE UNIQUE INDEX uq_custom_progress_item ON custom_progress "
        "(user_id, topic_id, COALESCE(resource_id, '00000000-0000-0000-0000-000000000000'::uuid))"
    )

    # --- builtin_progress ---
    op.create_table(
        "builtin_progress",
        _uuid_pk(),
        _uuid_fk("user_id", "users.id"),
        sa.Column("checklist_type", sa.String(50), nullable=False),
        sa.Column("checklist_id", sa.String(100), nullable=False),
        sa.Column("item_key", sa.String(500), nullable=False),
        sa.Column("completed", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("NOW()")),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("user_id", "checklist_type", "checklist_id", "item_key", name="uq_builtin_progress_item"),
        sa.CheckConstraint(
            "checklist_type IN ('language_dsa', 'language_dev', 'dsa_topics', 'examination')",
            name="ck_builtin_progress_type",
        ),
    )
    op.create_index(
        "ix_builtin_progress_user_checklist", "builtin_progress", ["user_id", "checklist_type", "checklist_id"]
    )

    # --- list_ratings ---
    op.create_table(
        "list_ratings",
        _uuid_pk(),
        _uuid_fk("list_id", "custom_lists.id"),
        _uuid_fk("user_id", "users.id"),
        sa.Column("rating", sa.Integer(), nullable=False),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("list_id", "user_id", name="uq_list_ratings_list_user"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_list_ratings_rating"),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("list_ratings")
    op.drop_table("builtin_progress")
    op.drop_index("uq_custom_progress_item", table_name="custom_progress")
    op.drop_table("custom_progress")
    op.drop_table("custom_resources")
    op.drop_table("custom_topics")
    op.drop_table("custom_sections")
    op.drop_table("custom_lists")
    op.drop_table("users")
