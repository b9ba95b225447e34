"""
skillswap.engine.moderation — Ban & Skill-Review Decisions
===========================================================

Pure decision logic for the two moderation sub-machines that live on a
member record.  Each helper returns the column values to write, so the
moderation service can issue column-scoped UPDATEs that never touch the
rating, counters or the other sub-machine.

Ban::

    active ──ban(duration | permanent)──▶ banned ──unban / expiry──▶ active

Skill review (per offered entry)::

    pending ──approve──▶ approved      (terminal)
    pending ──reject(reason)──▶ rejected   (terminal)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from skillswap.constants import MAX_BAN_DAYS
from skillswap.datetime_utils import as_utc
from skillswap.errors import InvalidState, ValidationError

# ---------------------------------------------------------------------------
# Ban sub-machine
# ---------------------------------------------------------------------------
CLEARED_BAN: dict[str, Any] = {
    "is_banned": False,
    "ban_reason": None,
    "ban_expiry": None,
    "banned_at": None,
    "banned_by": None,
}


def ban_expiry_for(now: datetime, duration_days: int | None) -> datetime | None:
    """``now + duration_days``, or ``None`` for a permanent ban."""
    if duration_days is None:
        return None
    if isinstance(duration_days, bool) or not isinstance(duration_days, int) or duration_days <= 0:
        raise ValidationError("Ban duration must be a positive number of days")
    if duration_days > MAX_BAN_DAYS:
        raise ValidationError(
            f"Ban duration is too long (at most {MAX_BAN_DAYS} days; omit it for a permanent ban)"
        )
    return now + timedelta(days=duration_days)


def ban_fields(
    *,
    reason: str | None,
    duration_days: int | None,
    moderator_id: str,
    now: datetime,
) -> dict[str, Any]:
    return {
        "is_banned": True,
        "ban_reason": reason,
        "ban_expiry": ban_expiry_for(now, duration_days),
        "banned_at": now,
        "banned_by": moderator_id,
    }


def ban_has_expired(is_banned: bool, ban_expiry: datetime | None, now: datetime) -> bool:
    """True only for a time-limited ban whose expiry is in the past.

    Permanent bans (``ban_expiry is None``) never expire.
    """
    if not is_banned or ban_expiry is None:
        return False
    return now > as_utc(ban_expiry)


# ---------------------------------------------------------------------------
# Skill-review sub-machine
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Approve:
    """Mark a pending skill entry as approved."""


@dataclass(frozen=True, slots=True)
class Reject:
    """Mark a pending skill entry as rejected; *reason* is required."""

    reason: str


SkillDecision = Approve | Reject


def review_state(is_approved: bool, is_rejected: bool) -> str:
    if is_approved:
        return "approved"
    if is_rejected:
        return "rejected"
    return "pending"


def review_fields(
    decision: SkillDecision,
    *,
    is_approved: bool,
    is_rejected: bool,
    moderator_id: str,
    now: datetime,
) -> dict[str, Any]:
    """Column values for applying *decision* to an entry.

    Raises
    ------
    InvalidState
        The entry has already been reviewed.
    ValidationError
        A rejection without a reason.
    """
    current = review_state(is_approved, is_rejected)
    if current != "pending":
        raise InvalidState(f"Skill has already been {current}", current_status=current)

    match decision:
        case Approve():
            return {
                "is_approved": True,
                "is_rejected": False,
                "rejection_reason": None,
                "reviewed_at": now,
                "reviewed_by": moderator_id,
            }
        case Reject(reason=reason):
            if not reason or not reason.strip():
                raise ValidationError("A rejection reason is required")
            return {
                "is_approved": False,
                "is_rejected": True,
                "rejection_reason": reason.strip(),
                "reviewed_at": now,
                "reviewed_by": moderator_id,
            }
    raise ValidationError(f"Unknown review decision: {decision!r}")
