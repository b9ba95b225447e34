"""
skillswap.api.routes.admin — Moderator endpoints
=================================================

Every route requires a member whose stored role is ``moderator``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from skillswap.api.deps import get_config, get_current_moderator, get_engine
from skillswap.api.routes.members import member_to_dict
from skillswap.api.routes.swaps import swap_to_dict
from skillswap.config import SkillSwapConfig
from skillswap.database.models import Member
from skillswap.datetime_utils import isoformat_or_none
from skillswap.engine.moderation import Approve, Reject, review_state
from skillswap.services import (
    audit_service,
    moderation_service,
    report_service,
    stats_service,
    swap_service,
)
from skillswap.services.log_buffer import get_logs

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class BanBody(BaseModel):
    reason: str | None = None
    duration_days: int | None = Field(None, description="Omit for a permanent ban")


class ApproveBody(BaseModel):
    action: Literal["approve"]


class RejectBody(BaseModel):
    action: Literal["reject"]
    reason: str = ""


class ReviewBody(BaseModel):
    decision: Annotated[ApproveBody | RejectBody, Field(discriminator="action")]


class ForceCancelBody(BaseModel):
    reason: str | None = None


# ---------------------------------------------------------------------------
# Dashboard & members
# ---------------------------------------------------------------------------
@router.get("/dashboard")
def dashboard(
    moderator: Member = Depends(get_current_moderator),
    engine: Engine = Depends(get_engine),
    config: SkillSwapConfig = Depends(get_config),
):
    return stats_service.dashboard_stats(engine, config=config)


@router.get("/members/{member_id}")
def member_detail(
    member_id: str,
    moderator: Member = Depends(get_current_moderator),
    engine: Engine = Depends(get_engine),
):
    """Full profile plus the ten most recent swaps on either side."""
    member, history = stats_service.member_detail(engine, member_id)
    data = member_to_dict(member, private=True)
    data["swap_history"] = [swap_to_dict(s) for s in history]
    return data


@router.patch("/members/{member_id}/ban")
def ban_member(
    member_id: str,
    body: BanBody,
    moderator: Member = Depends(get_current_moderator),
    engine: Engine = Depends(get_engine),
):
    member = moderation_service.ban_member(
        engine,
        member_id,
        reason=body.reason,
        duration_days=body.duration_days,
        moderator_id=moderator.id,
    )
    return member_to_dict(member, private=True)


@router.patch("/members/{member_id}/unban")
def unban_member(
    member_id: str,
    moderator: Member = Depends(get_current_moderator),
    engine: Engine = Depends(get_engine),
):
    member = moderation_service.unban_member(engine, member_id, moderator_id=moderator.id)
    return member_to_dict(member, private=True)


# ---------------------------------------------------------------------------
# Skill review
# ---------------------------------------------------------------------------
@router.patch("/members/{member_id}/skills/{skill_id}/review")
def review_skill(
    member_id: str,
    skill_id: int,
    body: ReviewBody,
    moderator: Member = Depends(get_current_moderator),
    engine: Engine = Depends(get_engine),
):
    match body.decision:
        case ApproveBody():
            decision = Approve()
        case RejectBody(reason=reason):
            decision = Reject(reason)

    entry = moderation_service.review_skill(
        engine, member_id, skill_id, decision, moderator_id=moderator.id
    )
    return {
        "id": entry.id,
        "member_id": entry.member_id,
        "skill": entry.skill,
        "review": review_state(entry.is_approved, entry.is_rejected),
        "rejection_reason": entry.rejection_reason,
        "reviewed_at": isoformat_or_none(entry.reviewed_at),
        "reviewed_by": entry.reviewed_by,
    }


@router.get("/skills/pending")
def pending_skills(
    moderator: Member = Depends(get_current_moderator),
    engine: Engine = Depends(get_engine),
):
    members = moderation_service.pending_skills(engine)
    return {"members": members, "total": sum(len(m["skills"]) for m in members)}


# ---------------------------------------------------------------------------
# Swaps
# ---------------------------------------------------------------------------
@router.get("/swaps")
def all_swaps(
    status: str | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    moderator: Member = Depends(get_current_moderator),
    engine: Engine = Depends(get_engine),
):
    swaps = swap_service.list_all_swaps(engine, status=status, limit=limit)
    return {"swaps": [swap_to_dict(s) for s in swaps], "total": len(swaps)}


@router.patch("/swaps/{swap_id}/force-cancel")
def force_cancel_swap(
    swap_id: str,
    body: ForceCancelBody | None = None,
    moderator: Member = Depends(get_current_moderator),
    engine: Engine = Depends(get_engine),
):
    swap = swap_service.force_cancel_swap(
        engine, swap_id, moderator_id=moderator.id, reason=body.reason if body else None
    )
    return swap_to_dict(swap)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------
@router.get("/reports/{report_type}")
def report(
    report_type: str,
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    moderator: Member = Depends(get_current_moderator),
    engine: Engine = Depends(get_engine),
):
    return report_service.build_report(engine, report_type, start=start, end=end)


# ---------------------------------------------------------------------------
# Audit trail & live logs
# ---------------------------------------------------------------------------
@router.get("/audit")
def audit_log(
    limit: int = Query(50, ge=1, le=500),
    actor_id: str | None = Query(None),
    moderator: Member = Depends(get_current_moderator),
    engine: Engine = Depends(get_engine),
):
    entries = audit_service.recent_audit(engine, limit=limit, actor_id=actor_id)
    return {"entries": entries, "total": len(entries)}


@router.get("/logs")
def activity_logs(
    tail: int = Query(100, ge=1, le=1000),
    level: str | None = Query(None),
    logger_prefix: str | None = Query(None, alias="logger"),
    moderator: Member = Depends(get_current_moderator),
):
    """Recent log entries from the in-memory buffer."""
    try:
        entries = get_logs(tail=tail, level=level, logger_prefix=logger_prefix)
    except ValueError as exc:
        raise HTTPException(400, detail=str(exc))
    return {"entries": entries, "total": len(entries)}
