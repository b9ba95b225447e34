"""
skillswap.database.models — SQLAlchemy 2.0 Data Models
=======================================================

Plain persisted records; no business methods live here.  Every mutation
goes through the lifecycle, rating and moderation services.

Tables:
- members         — Member profile, ban sub-state, rating accumulator
- offered_skills  — Ordered skills a member offers, with review sub-state
- wanted_skills   — Ordered skills a member wants to learn
- swaps           — One negotiated exchange, its feedback slots and
                    optimistic-concurrency version
- admin_log       — Append-only audit trail of moderator actions
"""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from skillswap.constants import MemberRole, MeetingType, SkillLevel, SwapStatus


def _new_id() -> str:
    return uuid4().hex


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all SkillSwap ORM models."""


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------
class Member(Base):
    __tablename__ = "members"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    location: Mapped[str | None] = mapped_column(String(200), default=None)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MemberRole.MEMBER.value
    )

    # Availability
    available_weekdays: Mapped[bool] = mapped_column(Boolean, default=False)
    available_weekends: Mapped[bool] = mapped_column(Boolean, default=False)
    available_mornings: Mapped[bool] = mapped_column(Boolean, default=False)
    available_afternoons: Mapped[bool] = mapped_column(Boolean, default=False)
    available_evenings: Mapped[bool] = mapped_column(Boolean, default=False)

    # Visibility
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Ban sub-state (all null when not banned)
    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ban_reason: Mapped[str | None] = mapped_column(Text, default=None)
    ban_expiry: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )  # None while banned = permanent
    banned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    banned_by: Mapped[str | None] = mapped_column(String(32), default=None)

    # Rating accumulator
    rating_average: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    completed_swaps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    last_active: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships, loaded with the member so detached copies stay usable
    skills_offered: Mapped[list[OfferedSkill]] = relationship(
        back_populates="member",
        cascade="all, delete-orphan",
        order_by="OfferedSkill.position",
        lazy="selectin",
    )
    skills_wanted: Mapped[list[WantedSkill]] = relationship(
        back_populates="member",
        cascade="all, delete-orphan",
        order_by="WantedSkill.position",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("rating_count >= 0", name="ck_members_rating_count"),
        CheckConstraint(
            "rating_average >= 0 AND rating_average <= 5",
            name="ck_members_rating_average",
        ),
        CheckConstraint("completed_swaps >= 0", name="ck_members_completed_swaps"),
        Index("ix_members_is_banned", "is_banned"),
    )

    @property
    def is_moderator(self) -> bool:
        return self.role == MemberRole.MODERATOR

    def __repr__(self) -> str:
        return f"<Member id={self.id} name={self.name!r} role={self.role}>"


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------
class OfferedSkill(Base):
    """A skill a member offers.  Review is pending while both flags are false."""
    __tablename__ = "offered_skills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    member_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skill: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    level: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SkillLevel.INTERMEDIATE.value
    )

    # Review sub-state
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_rejected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rejection_reason: Mapped[str | None] = mapped_column(Text, default=None)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    reviewed_by: Mapped[str | None] = mapped_column(String(32), default=None)

    member: Mapped[Member] = relationship(back_populates="skills_offered")

    __table_args__ = (
        CheckConstraint(
            "NOT (is_approved AND is_rejected)", name="ck_offered_skills_review"
        ),
        Index("ix_offered_skills_member", "member_id", "position"),
        Index("ix_offered_skills_pending", "is_approved", "is_rejected"),
    )

    @property
    def is_pending(self) -> bool:
        return not self.is_approved and not self.is_rejected

    def __repr__(self) -> str:
        return f"<OfferedSkill id={self.id} skill={self.skill!r} member={self.member_id}>"


class WantedSkill(Base):
    __tablename__ = "wanted_skills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    member_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skill: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    level: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SkillLevel.BEGINNER.value
    )

    member: Mapped[Member] = relationship(back_populates="skills_wanted")

    __table_args__ = (
        Index("ix_wanted_skills_member", "member_id", "position"),
    )

    def __repr__(self) -> str:
        return f"<WantedSkill id={self.id} skill={self.skill!r} member={self.member_id}>"


# ---------------------------------------------------------------------------
# Swaps
# ---------------------------------------------------------------------------
class Swap(Base):
    """One proposed exchange.

    The offered/requested skill columns are snapshots taken at creation,
    not references to the live skill rows.  ``version`` is the optimistic
    concurrency token: SQLAlchemy adds ``WHERE version = :old`` to every
    UPDATE/DELETE and raises ``StaleDataError`` when no row matches.
    """
    __tablename__ = "swaps"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    requester_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    provider_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )

    # Skill snapshots
    offered_skill: Mapped[str] = mapped_column(String(100), nullable=False)
    offered_description: Mapped[str | None] = mapped_column(Text, default=None)
    offered_level: Mapped[str | None] = mapped_column(String(20), default=None)
    requested_skill: Mapped[str] = mapped_column(String(100), nullable=False)
    requested_description: Mapped[str | None] = mapped_column(Text, default=None)
    requested_level: Mapped[str | None] = mapped_column(String(20), default=None)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SwapStatus.PENDING.value
    )
    message: Mapped[str | None] = mapped_column(Text, default=None)

    # Scheduling
    scheduled_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=60)  # minutes
    meeting_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MeetingType.ONLINE.value
    )
    meeting_details: Mapped[str | None] = mapped_column(Text, default=None)

    # Feedback slots
    requester_rating: Mapped[int | None] = mapped_column(Integer, default=None)
    requester_comment: Mapped[str | None] = mapped_column(Text, default=None)
    requester_feedback_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    provider_rating: Mapped[int | None] = mapped_column(Integer, default=None)
    provider_comment: Mapped[str | None] = mapped_column(Text, default=None)
    provider_feedback_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    # Outcome timestamps
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    rejection_reason: Mapped[str | None] = mapped_column(Text, default=None)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    # Moderator force-cancel
    admin_cancelled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    admin_cancel_reason: Mapped[str | None] = mapped_column(Text, default=None)
    admin_cancelled_by: Mapped[str | None] = mapped_column(String(32), default=None)
    admin_cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("requester_id <> provider_id", name="ck_swaps_distinct_parties"),
        CheckConstraint("duration > 0", name="ck_swaps_duration"),
        CheckConstraint(
            "requester_rating IS NULL OR (requester_rating BETWEEN 1 AND 5)",
            name="ck_swaps_requester_rating",
        ),
        CheckConstraint(
            "provider_rating IS NULL OR (provider_rating BETWEEN 1 AND 5)",
            name="ck_swaps_provider_rating",
        ),
        CheckConstraint(
            "rejected_at IS NULL OR completed_at IS NULL",
            name="ck_swaps_single_outcome",
        ),
        Index("ix_swaps_requester_status", "requester_id", "status"),
        Index("ix_swaps_provider_status", "provider_id", "status"),
        Index("ix_swaps_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Swap id={self.id} status={self.status} v={self.version}>"


# ---------------------------------------------------------------------------
# AdminLog: append-only audit trail of moderator actions
# ---------------------------------------------------------------------------
class AdminLog(Base):
    __tablename__ = "admin_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[str] = mapped_column(String(32), nullable=False)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    target_table: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    before_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    after_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_admin_log_actor_time", "actor_id", "timestamp"),
        Index("ix_admin_log_target", "target_table", "target_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<AdminLog id={self.id} actor={self.actor_id} action={self.action_type}>"
