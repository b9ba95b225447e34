"""
skillswap.services.moderation_service — Bans & Skill Review
============================================================

Moderator mutations on member records.  Each one follows the audit
pattern from :mod:`skillswap.services.audit_service` and writes only the
columns of its own sub-machine, so a ban never races a rating update and
a skill review never touches the ban fields.

Lazy ban expiry lives next to the authentication read path in
:func:`skillswap.services.member_service.clear_expired_ban`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import Engine, select, update
from sqlalchemy.orm import Session

from skillswap.constants import MemberRole
from skillswap.database.engine import get_session
from skillswap.database.models import Member, OfferedSkill
from skillswap.datetime_utils import isoformat_or_none, utc_now
from skillswap.engine.moderation import (
    CLEARED_BAN,
    Approve,
    SkillDecision,
    ban_fields,
    review_fields,
    review_state,
)
from skillswap.errors import Forbidden, InvalidState, NotFound
from skillswap.services import audit_service
from skillswap.services.member_service import expire_member_fields, load_member

logger = logging.getLogger(__name__)

_BAN_COLUMNS = tuple(CLEARED_BAN)
_REVIEW_COLUMNS = ("skill", "is_approved", "is_rejected", "rejection_reason")


def _write_ban(session: Session, member_id: str, values: dict[str, Any]) -> None:
    session.execute(
        update(Member)
        .where(Member.id == member_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    expire_member_fields(session, member_id, *values)


def _detached(engine: Engine, member_id: str) -> Member:
    with Session(engine) as session:
        member = load_member(session, member_id)
        session.expunge(member)
        return member


# ---------------------------------------------------------------------------
# Ban sub-machine
# ---------------------------------------------------------------------------
def ban_member(
    engine: Engine,
    member_id: str,
    *,
    reason: str | None,
    duration_days: int | None,
    moderator_id: str,
    now: datetime | None = None,
) -> Member:
    """Ban *member_id* for *duration_days*, or permanently when ``None``.

    Re-banning an already banned member replaces the previous ban.
    """
    now = now or utc_now()
    values = ban_fields(
        reason=reason.strip() if reason else None,
        duration_days=duration_days,
        moderator_id=moderator_id,
        now=now,
    )

    with get_session(engine) as session:
        member = load_member(session, member_id)
        if member.role == MemberRole.MODERATOR:
            logger.warning("Moderator %s tried to ban moderator %s", moderator_id, member_id)
            raise Forbidden("Cannot ban moderators")

        before = audit_service.row_to_dict(member, _BAN_COLUMNS)
        _write_ban(session, member_id, values)
        after = audit_service.row_to_dict(member, _BAN_COLUMNS)
        audit_service.log_admin_action(
            session,
            actor_id=moderator_id,
            action_type="BAN",
            target_table="members",
            target_id=member_id,
            before=before,
            after=after,
            reason=values["ban_reason"],
        )

    logger.info(
        "Member %s banned until %s",
        member_id, isoformat_or_none(values["ban_expiry"]) or "forever",
    )
    return _detached(engine, member_id)


def unban_member(engine: Engine, member_id: str, *, moderator_id: str) -> Member:
    """Clear every ban field on *member_id*."""
    with get_session(engine) as session:
        member = load_member(session, member_id)
        before = audit_service.row_to_dict(member, _BAN_COLUMNS)
        _write_ban(session, member_id, CLEARED_BAN)
        audit_service.log_admin_action(
            session,
            actor_id=moderator_id,
            action_type="UNBAN",
            target_table="members",
            target_id=member_id,
            before=before,
            after=audit_service.row_to_dict(member, _BAN_COLUMNS),
        )
    return _detached(engine, member_id)


# ---------------------------------------------------------------------------
# Skill-review sub-machine
# ---------------------------------------------------------------------------
def review_skill(
    engine: Engine,
    member_id: str,
    skill_id: int,
    decision: SkillDecision,
    *,
    moderator_id: str,
    now: datetime | None = None,
) -> OfferedSkill:
    """Approve or reject one pending offered-skill entry.

    The UPDATE only matches while both flags are still false, so two
    moderators reviewing the same entry cannot both succeed.
    """
    now = now or utc_now()
    with get_session(engine) as session:
        load_member(session, member_id)
        entry = session.get(OfferedSkill, skill_id)
        if entry is None or entry.member_id != member_id:
            raise NotFound("Skill not found", {"member_id": member_id, "skill_id": skill_id})

        values = review_fields(
            decision,
            is_approved=entry.is_approved,
            is_rejected=entry.is_rejected,
            moderator_id=moderator_id,
            now=now,
        )
        before = audit_service.row_to_dict(entry, _REVIEW_COLUMNS)
        result = session.execute(
            update(OfferedSkill)
            .where(
                OfferedSkill.id == skill_id,
                OfferedSkill.is_approved.is_(False),
                OfferedSkill.is_rejected.is_(False),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        session.expire(entry)
        if result.rowcount == 0:
            state = review_state(entry.is_approved, entry.is_rejected)
            raise InvalidState(f"Skill has already been {state}", current_status=state)

        action = "APPROVE_SKILL" if isinstance(decision, Approve) else "REJECT_SKILL"
        audit_service.log_admin_action(
            session,
            actor_id=moderator_id,
            action_type=action,
            target_table="offered_skills",
            target_id=str(skill_id),
            before=before,
            after=audit_service.row_to_dict(entry, _REVIEW_COLUMNS),
            reason=values["rejection_reason"],
        )
        session.flush()
        session.expunge(entry)
        return entry


def pending_skills(engine: Engine) -> list[dict]:
    """Every offered entry awaiting review, grouped by member."""
    stmt = (
        select(OfferedSkill, Member.name, Member.email)
        .join(Member, Member.id == OfferedSkill.member_id)
        .where(OfferedSkill.is_approved.is_(False), OfferedSkill.is_rejected.is_(False))
        .order_by(Member.joined_at, Member.id, OfferedSkill.position)
    )
    grouped: dict[str, dict] = {}
    with Session(engine) as session:
        for entry, name, email in session.execute(stmt):
            group = grouped.setdefault(entry.member_id, {
                "member_id": entry.member_id,
                "name": name,
                "email": email,
                "skills": [],
            })
            group["skills"].append({
                "id": entry.id,
                "skill": entry.skill,
                "description": entry.description,
                "level": entry.level,
            })
    return list(grouped.values())
