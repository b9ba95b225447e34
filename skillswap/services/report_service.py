"""
skillswap.services.report_service — Moderator Reports
======================================================

Four read-only reports over an optional creation-date window:

* ``users``:    every member who joined in the window
* ``swaps``:    every swap created in the window, with both parties
* ``feedback``: swaps in the window carrying at least one rating
* ``activity``: counts plus the completion rate (percent, 2 decimals)

Either bound may be omitted.  Naive datetimes are read as UTC.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import Engine, func, or_, select
from sqlalchemy.orm import Session, aliased

from skillswap.constants import REPORT_TYPES, SwapStatus
from skillswap.database.models import Member, Swap
from skillswap.datetime_utils import as_utc, isoformat_or_none, utc_now
from skillswap.errors import ValidationError
from skillswap.services.audit_service import row_to_dict

logger = logging.getLogger(__name__)

_MEMBER_COLUMNS = (
    "id", "name", "email", "joined_at", "is_active", "is_banned",
    "completed_swaps", "rating_average", "rating_count",
)


def _window(column, start: datetime | None, end: datetime | None) -> list:
    criteria = []
    if start is not None:
        criteria.append(column >= start)
    if end is not None:
        criteria.append(column <= end)
    return criteria


def _party(member_id: str, name: str, email: str) -> dict:
    return {"id": member_id, "name": name, "email": email}


def _swaps_with_parties(session: Session, *criteria) -> list[tuple[Swap, dict, dict]]:
    requester = aliased(Member)
    provider = aliased(Member)
    rows = session.execute(
        select(Swap, requester.name, requester.email, provider.name, provider.email)
        .join(requester, requester.id == Swap.requester_id)
        .join(provider, provider.id == Swap.provider_id)
        .where(*criteria)
        .order_by(Swap.created_at.desc(), Swap.id)
    ).all()
    return [
        (swap, _party(swap.requester_id, r_name, r_email), _party(swap.provider_id, p_name, p_email))
        for swap, r_name, r_email, p_name, p_email in rows
    ]


def _users(session: Session, start, end) -> list[dict]:
    members = session.scalars(
        select(Member)
        .where(*_window(Member.joined_at, start, end))
        .order_by(Member.joined_at.desc(), Member.id)
    ).all()
    return [row_to_dict(m, _MEMBER_COLUMNS) for m in members]


def _swaps(session: Session, start, end) -> list[dict]:
    return [
        {
            "id": swap.id,
            "status": swap.status,
            "requester": requester,
            "provider": provider,
            "skill_offered": swap.offered_skill,
            "skill_requested": swap.requested_skill,
            "created_at": isoformat_or_none(swap.created_at),
            "completed_at": isoformat_or_none(swap.completed_at),
            "admin_cancelled": swap.admin_cancelled,
        }
        for swap, requester, provider in _swaps_with_parties(
            session, *_window(Swap.created_at, start, end)
        )
    ]


def _slot(swap: Swap, slot: str) -> dict | None:
    rating = getattr(swap, f"{slot}_rating")
    if rating is None:
        return None
    return {"rating": rating, "comment": getattr(swap, f"{slot}_comment")}


def _feedback(session: Session, start, end) -> list[dict]:
    rated = or_(Swap.requester_rating.is_not(None), Swap.provider_rating.is_not(None))
    return [
        {
            "id": swap.id,
            "requester": requester,
            "provider": provider,
            "requester_feedback": _slot(swap, "requester"),
            "provider_feedback": _slot(swap, "provider"),
            "created_at": isoformat_or_none(swap.created_at),
            "completed_at": isoformat_or_none(swap.completed_at),
        }
        for swap, requester, provider in _swaps_with_parties(
            session, rated, *_window(Swap.created_at, start, end)
        )
    ]


def _activity(session: Session, start, end) -> dict:
    in_window = _window(Swap.created_at, start, end)
    new_members = session.scalar(
        select(func.count(Member.id)).where(*_window(Member.joined_at, start, end))
    )
    total = session.scalar(select(func.count(Swap.id)).where(*in_window))
    completed = session.scalar(
        select(func.count(Swap.id)).where(
            Swap.status == SwapStatus.COMPLETED.value, *in_window
        )
    )
    return {
        "new_members": new_members,
        "total_swaps": total,
        "completed_swaps": completed,
        "completion_rate": round(completed / total * 100, 2) if total else 0.0,
    }


_BUILDERS = {
    "users": _users,
    "swaps": _swaps,
    "feedback": _feedback,
    "activity": _activity,
}


def build_report(
    engine: Engine,
    report_type: str,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    now: datetime | None = None,
) -> dict:
    """Build one of :data:`REPORT_TYPES` over ``[start, end]``.

    Raises
    ------
    ValidationError
        Unknown report type, or *start* after *end*.
    """
    if report_type not in REPORT_TYPES:
        raise ValidationError(
            f"Unknown report type {report_type!r}; expected one of {', '.join(REPORT_TYPES)}"
        )
    start, end = as_utc(start), as_utc(end)
    if start is not None and end is not None and start > end:
        raise ValidationError("Report start date must not be after the end date")

    with Session(engine) as session:
        data = _BUILDERS[report_type](session, start, end)

    logger.info("Built %s report (%s → %s)", report_type, start, end)
    return {
        "report_type": report_type,
        "generated_at": isoformat_or_none(now or utc_now()),
        "period": {"start": isoformat_or_none(start), "end": isoformat_or_none(end)},
        "data": data,
    }
