"""
skillswap.services.member_service — Member Record Store
========================================================

Owns member registration, self-profile edits and the authentication read
path.  Four field groups share the ``members`` row (profile, ban
sub-state, rating, completed-swap counter) and each is written with
column-scoped UPDATEs, so a profile edit never clobbers a concurrent
rating update and vice versa:

* profile:  ORM unit of work; SQLAlchemy only emits changed columns
* ban:      :mod:`moderation_service` / :func:`clear_expired_ban`
* rating:   :mod:`rating_service` (single-statement fold)
* counters: :func:`increment_completed_swaps` (``SET n = n + 1``)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import Engine, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from skillswap.config import SkillSwapConfig
from skillswap.constants import AVAILABILITY_SLOTS, MemberRole
from skillswap.database.models import Member, OfferedSkill, WantedSkill
from skillswap.datetime_utils import isoformat_or_none, utc_now
from skillswap.engine.lifecycle import parse_level
from skillswap.engine.moderation import CLEARED_BAN, ban_has_expired
from skillswap.errors import Forbidden, NotFound, ValidationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def load_member(session: Session, member_id: str) -> Member:
    """Fetch a member inside an open session or raise :class:`NotFound`."""
    member = session.get(Member, member_id)
    if member is None:
        raise NotFound("Member not found", {"member_id": member_id})
    return member


def get_member(engine: Engine, member_id: str) -> Member:
    """Return a detached copy of the member with both skill lists loaded."""
    with Session(engine, expire_on_commit=False) as session:
        member = load_member(session, member_id)
        session.expunge(member)
        return member


def provider_advertises(session: Session, provider_id: str, skill: str) -> bool:
    """Does *provider_id* offer *skill* (case-insensitive, not rejected)?"""
    found = session.scalar(
        select(OfferedSkill.id).where(
            OfferedSkill.member_id == provider_id,
            func.lower(OfferedSkill.skill) == skill.strip().lower(),
            OfferedSkill.is_rejected.is_(False),
        ).limit(1)
    )
    return found is not None


# ---------------------------------------------------------------------------
# Field-group writes
# ---------------------------------------------------------------------------
def expire_member_fields(session: Session, member_id: str, *fields: str) -> None:
    """Drop cached column values after a Core UPDATE so the next read refetches."""
    member = session.identity_map.get(identity_key(Member, member_id))
    if member is not None:
        session.expire(member, list(fields) or None)


def increment_completed_swaps(session: Session, *member_ids: str) -> None:
    """``completed_swaps = completed_swaps + 1`` for each member, in one statement."""
    session.execute(
        update(Member)
        .where(Member.id.in_(member_ids))
        .values(completed_swaps=Member.completed_swaps + 1)
        .execution_options(synchronize_session=False)
    )
    for member_id in member_ids:
        expire_member_fields(session, member_id, "completed_swaps")


def clear_expired_ban(session: Session, member_id: str, now: datetime) -> bool:
    """Lazily lift a time-limited ban whose expiry has passed.

    The UPDATE repeats the expiry predicate in its WHERE clause, so a ban
    that was re-issued between the read and the write is left alone.
    Returns True if a ban was cleared.
    """
    member = load_member(session, member_id)
    if not ban_has_expired(member.is_banned, member.ban_expiry, now):
        return False

    result = session.execute(
        update(Member)
        .where(
            Member.id == member_id,
            Member.is_banned.is_(True),
            Member.ban_expiry.is_not(None),
            Member.ban_expiry < now,
        )
        .values(**CLEARED_BAN)
        .execution_options(synchronize_session=False)
    )
    expire_member_fields(session, member_id, *CLEARED_BAN)
    if result.rowcount:
        logger.info("Ban on member %s expired; cleared on access", member_id)
        return True
    return False


# ---------------------------------------------------------------------------
# Authentication read path
# ---------------------------------------------------------------------------
def authenticate_member(
    engine: Engine, member_id: str, *, now: datetime | None = None
) -> Member:
    """Load the caller for an authenticated request.

    1. Clear an expired time-limited ban (self-healing, no background sweep).
    2. Refuse banned or deactivated members with :class:`Forbidden`.
    3. Stamp ``last_active``.
    """
    now = now or utc_now()
    with Session(engine, expire_on_commit=False) as session:
        clear_expired_ban(session, member_id, now)
        member = load_member(session, member_id)

        if member.is_banned:
            expiry = isoformat_or_none(member.ban_expiry)
            logger.warning("Banned member %s attempted access", member_id)
            raise Forbidden(
                "Account has been banned",
                {"ban_reason": member.ban_reason, "ban_expiry": expiry},
            )
        if not member.is_active:
            raise Forbidden("Account has been deactivated")

        member.last_active = now
        session.commit()
        session.refresh(member)
        session.expunge(member)
        return member


# ---------------------------------------------------------------------------
# Registration & profile edits
# ---------------------------------------------------------------------------
def _clean_email(email: str | None) -> str:
    cleaned = (email or "").strip().lower()
    local, _, domain = cleaned.partition("@")
    if not local or "." not in domain:
        raise ValidationError("Invalid email")
    return cleaned


def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Name is required")
    return cleaned


def _skill_fields(raw: Mapping[str, Any], default_level: str) -> dict[str, Any]:
    skill = (raw.get("skill") or "").strip()
    if not skill:
        raise ValidationError("Skill name is required")
    description = raw.get("description")
    return {
        "skill": skill,
        "description": description.strip() if description else None,
        "level": parse_level(raw.get("level") or default_level).value,
    }


def _build_offered(
    existing: Sequence[OfferedSkill],
    entries: Sequence[Mapping[str, Any]],
    default_level: str,
) -> list[OfferedSkill]:
    """Rebuild the offered list in order.

    An entry with the same skill name (case-insensitive), description and
    level as an existing one keeps that row and its review sub-state; any
    other entry starts pending review.
    """
    reusable: dict[tuple, OfferedSkill] = {
        (e.skill.lower(), e.description, e.level): e for e in existing
    }
    result: list[OfferedSkill] = []
    for position, raw in enumerate(entries):
        fields = _skill_fields(raw, default_level)
        key = (fields["skill"].lower(), fields["description"], fields["level"])
        entry = reusable.pop(key, None)
        if entry is None:
            entry = OfferedSkill(**fields)
        entry.position = position
        result.append(entry)
    return result


def _build_wanted(
    entries: Sequence[Mapping[str, Any]], default_level: str
) -> list[WantedSkill]:
    return [
        WantedSkill(position=position, **_skill_fields(raw, default_level))
        for position, raw in enumerate(entries)
    ]


def register_member(
    engine: Engine,
    *,
    name: str,
    email: str,
    location: str | None = None,
    role: MemberRole = MemberRole.MEMBER,
    skills_offered: Sequence[Mapping[str, Any]] = (),
    skills_wanted: Sequence[Mapping[str, Any]] = (),
    config: SkillSwapConfig | None = None,
) -> Member:
    """Create a member: rating 0/0, no completed swaps, no ban state."""
    cfg = config or SkillSwapConfig()
    email = _clean_email(email)
    name = _clean_name(name)

    with Session(engine, expire_on_commit=False) as session:
        taken = session.scalar(select(Member.id).where(func.lower(Member.email) == email))
        if taken is not None:
            raise ValidationError("A member already exists with this email")

        member = Member(
            name=name,
            email=email,
            location=location.strip() if location else None,
            role=MemberRole(role).value,
        )
        member.skills_offered = _build_offered((), skills_offered, cfg.default_offered_level)
        member.skills_wanted = _build_wanted(skills_wanted, cfg.default_wanted_level)
        session.add(member)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise ValidationError("A member already exists with this email") from exc

        session.refresh(member)
        session.expunge(member)
        logger.info("Registered member %s (%s)", member.id, member.role)
        return member


def update_profile(
    engine: Engine,
    member_id: str,
    *,
    name: str | None = None,
    location: str | None = None,
    skills_offered: Sequence[Mapping[str, Any]] | None = None,
    skills_wanted: Sequence[Mapping[str, Any]] | None = None,
    availability: Mapping[str, bool] | None = None,
    is_public: bool | None = None,
    config: SkillSwapConfig | None = None,
) -> Member:
    """Self-profile edit.  ``None`` leaves a field untouched.

    Open swaps are unaffected: they hold snapshots of the skills, not
    references to these rows.
    """
    cfg = config or SkillSwapConfig()
    with Session(engine, expire_on_commit=False) as session:
        member = load_member(session, member_id)

        if name is not None:
            member.name = _clean_name(name)
        if location is not None:
            member.location = location.strip() or None
        if skills_offered is not None:
            member.skills_offered = _build_offered(
                member.skills_offered, skills_offered, cfg.default_offered_level
            )
        if skills_wanted is not None:
            member.skills_wanted = _build_wanted(skills_wanted, cfg.default_wanted_level)
        if availability is not None:
            unknown = set(availability) - set(AVAILABILITY_SLOTS)
            if unknown:
                raise ValidationError(f"Unknown availability slots: {', '.join(sorted(unknown))}")
            for slot, value in availability.items():
                setattr(member, f"available_{slot}", bool(value))
        if is_public is not None:
            member.is_public = bool(is_public)

        session.commit()
        session.refresh(member)
        session.expunge(member)
        return member
