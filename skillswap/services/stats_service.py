"""
skillswap.services.stats_service — Member & Dashboard Statistics
=================================================================

Read-only aggregates.  Nothing here takes a lock or writes a row.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import Engine, func, or_, select
from sqlalchemy.orm import Session

from skillswap.config import SkillSwapConfig
from skillswap.constants import SwapStatus
from skillswap.database.models import Member, OfferedSkill, Swap, WantedSkill
from skillswap.datetime_utils import isoformat_or_none, utc_now
from skillswap.services.member_service import load_member

HISTORY_LIMIT = 10
POPULAR_LIMIT = 20


def _count_by_status(session: Session, *criteria) -> dict[str, int]:
    rows = session.execute(
        select(Swap.status, func.count()).where(*criteria).group_by(Swap.status)
    ).all()
    return {status: count for status, count in rows}


def member_stats(engine: Engine, member_id: str) -> dict:
    """Personal statistics for the member's own dashboard."""
    with Session(engine) as session:
        member = load_member(session, member_id)
        by_status = _count_by_status(
            session,
            or_(Swap.requester_id == member_id, Swap.provider_id == member_id),
        )
        return {
            "completed_swaps": member.completed_swaps,
            "rating": {"average": member.rating_average, "count": member.rating_count},
            "skills_offered": len(member.skills_offered),
            "skills_wanted": len(member.skills_wanted),
            "joined_at": isoformat_or_none(member.joined_at),
            "swaps_by_status": by_status,
        }


def dashboard_stats(
    engine: Engine,
    *,
    config: SkillSwapConfig | None = None,
    now: datetime | None = None,
) -> dict:
    """Community-wide totals for the moderator dashboard.

    "Recent" covers the last ``config.recent_window_days`` days.
    """
    cfg = config or SkillSwapConfig()
    since = (now or utc_now()) - timedelta(days=cfg.recent_window_days)

    with Session(engine) as session:
        def members(*criteria) -> int:
            return session.scalar(select(func.count(Member.id)).where(*criteria))

        by_status = _count_by_status(session)
        swaps = {status.value: by_status.get(status.value, 0) for status in SwapStatus}
        swaps["total"] = sum(by_status.values())
        swaps["recent"] = session.scalar(
            select(func.count(Swap.id)).where(Swap.created_at >= since)
        )

        return {
            "members": {
                "total": members(),
                "active": members(Member.is_active.is_(True)),
                "banned": members(Member.is_banned.is_(True)),
                "recent": members(Member.joined_at >= since),
            },
            "swaps": swaps,
        }


def member_detail(
    engine: Engine, member_id: str, *, history_limit: int = HISTORY_LIMIT
) -> tuple[Member, list[Swap]]:
    """A member and their most recent swaps (either side), for moderators."""
    with Session(engine) as session:
        member = load_member(session, member_id)
        history = session.scalars(
            select(Swap)
            .where(or_(Swap.requester_id == member_id, Swap.provider_id == member_id))
            .order_by(Swap.created_at.desc(), Swap.id)
            .limit(history_limit)
        ).all()
        session.expunge_all()
        return member, list(history)


def popular_skills(engine: Engine, *, limit: int = POPULAR_LIMIT) -> dict:
    """Most offered and most wanted skills among visible members.

    Only public, active, unbanned members count.  Rejected offered
    entries are left out, as they are on the public profile.
    """
    visible = (
        Member.is_public.is_(True),
        Member.is_active.is_(True),
        Member.is_banned.is_(False),
    )

    with Session(engine) as session:
        def ranked(model, *criteria) -> list[dict]:
            count = func.count(model.id).label("count")
            rows = session.execute(
                select(model.skill, count)
                .join(Member, Member.id == model.member_id)
                .where(*visible, *criteria)
                .group_by(model.skill)
                .order_by(count.desc(), model.skill)
                .limit(limit)
            ).all()
            return [{"skill": skill, "count": n} for skill, n in rows]

        return {
            "offered": ranked(OfferedSkill, OfferedSkill.is_rejected.is_(False)),
            "wanted": ranked(WantedSkill),
        }
