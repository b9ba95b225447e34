"""Initial schema: members, skills, swaps, admin_log

Revision ID: 5a1c9e3b7d20
Revises:
Create Date: 2026-10-17 10:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "5a1c9e3b7d20"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "members",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("location", sa.String(200)),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        sa.Column("available_weekdays", sa.Boolean()),
        sa.Column("available_weekends", sa.Boolean()),
        sa.Column("available_mornings", sa.Boolean()),
        sa.Column("available_afternoons", sa.Boolean()),
        sa.Column("available_evenings", sa.Boolean()),
        sa.Column("is_public", sa.Boolean()),
        sa.Column("is_active", sa.Boolean()),
        sa.Column("is_banned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ban_reason", sa.Text()),
        sa.Column("ban_expiry", sa.DateTime(timezone=True)),
        sa.Column("banned_at", sa.DateTime(timezone=True)),
        sa.Column("banned_by", sa.String(32)),
        sa.Column("rating_average", sa.Float(), nullable=False, server_default="0"),
        sa.Column("rating_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_swaps", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_active", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("rating_count >= 0", name="ck_members_rating_count"),
        sa.CheckConstraint(
            "rating_average >= 0 AND rating_average <= 5",
            name="ck_members_rating_average",
        ),
        sa.CheckConstraint("completed_swaps >= 0", name="ck_members_completed_swaps"),
    )
    op.create_index("ix_members_is_banned", "members", ["is_banned"])

    op.create_table(
        "offered_skills",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "member_id", sa.String(32),
            sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("skill", sa.String(100), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("level", sa.String(20), nullable=False),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_rejected", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("rejection_reason", sa.Text()),
        sa.Column("reviewed_at", sa.DateTime(timezone=True)),
        sa.Column("reviewed_by", sa.String(32)),
        sa.CheckConstraint("NOT (is_approved AND is_rejected)", name="ck_offered_skills_review"),
    )
    op.create_index("ix_offered_skills_member", "offered_skills", ["member_id", "position"])
    op.create_index("ix_offered_skills_pending", "offered_skills", ["is_approved", "is_rejected"])

    op.create_table(
        "wanted_skills",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "member_id", sa.String(32),
            sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("skill", sa.String(100), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("level", sa.String(20), nullable=False),
    )
    op.create_index("ix_wanted_skills_member", "wanted_skills", ["member_id", "position"])

    op.create_table(
        "swaps",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column(
            "requester_id", sa.String(32),
            sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "provider_id", sa.String(32),
            sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("offered_skill", sa.String(100), nullable=False),
        sa.Column("offered_description", sa.Text()),
        sa.Column("offered_level", sa.String(20)),
        sa.Column("requested_skill", sa.String(100), nullable=False),
        sa.Column("requested_description", sa.Text()),
        sa.Column("requested_level", sa.String(20)),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("message", sa.Text()),
        sa.Column("scheduled_date", sa.DateTime(timezone=True)),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("meeting_type", sa.String(20), nullable=False, server_default="online"),
        sa.Column("meeting_details", sa.Text()),
        sa.Column("requester_rating", sa.Integer()),
        sa.Column("requester_comment", sa.Text()),
        sa.Column("requester_feedback_at", sa.DateTime(timezone=True)),
        sa.Column("provider_rating", sa.Integer()),
        sa.Column("provider_comment", sa.Text()),
        sa.Column("provider_feedback_at", sa.DateTime(timezone=True)),
        sa.Column("rejected_at", sa.DateTime(timezone=True)),
        sa.Column("rejection_reason", sa.Text()),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("admin_cancelled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("admin_cancel_reason", sa.Text()),
        sa.Column("admin_cancelled_by", sa.String(32)),
        sa.Column("admin_cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("requester_id <> provider_id", name="ck_swaps_distinct_parties"),
        sa.CheckConstraint("duration > 0", name="ck_swaps_duration"),
        sa.CheckConstraint(
            "requester_rating IS NULL OR (requester_rating BETWEEN 1 AND 5)",
            name="ck_swaps_requester_rating",
        ),
        sa.CheckConstraint(
            "provider_rating IS NULL OR (provider_rating BETWEEN 1 AND 5)",
            name="ck_swaps_provider_rating",
        ),
        sa.CheckConstraint(
            "rejected_at IS NULL OR completed_at IS NULL", name="ck_swaps_single_outcome"
        ),
    )
    op.create_index("ix_swaps_requester_status", "swaps", ["requester_id", "status"])
    op.create_index("ix_swaps_provider_status", "swaps", ["provider_id", "status"])
    op.create_index("ix_swaps_status_created", "swaps", ["status", "created_at"])

    op.create_table(
        "admin_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("actor_id", sa.String(32), nullable=False),
        sa.Column("action_type", sa.String(50), nullable=False),
        sa.Column("target_table", sa.String(50), nullable=False),
        sa.Column("target_id", sa.String(100)),
        sa.Column("before_snapshot", postgresql.JSONB()),
        sa.Column("after_snapshot", postgresql.JSONB()),
        sa.Column("reason", sa.Text()),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_admin_log_actor_time", "admin_log", ["actor_id", "timestamp"])
    op.create_index(
        "ix_admin_log_target", "admin_log", ["target_table", "target_id", "timestamp"]
    )


def downgrade() -> None:
    op.drop_table("admin_log")
    op.drop_table("swaps")
    op.drop_table("wanted_skills")
    op.drop_table("offered_skills")
    op.drop_table("members")
