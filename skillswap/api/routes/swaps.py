"""
skillswap.api.routes.swaps — Swap lifecycle endpoints
======================================================

Thin wrappers: every rule lives in
:mod:`skillswap.services.swap_service`.  Errors raised there are rendered
by the application's ``SkillSwapError`` handler.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from sqlalchemy import Engine

from skillswap.api.deps import get_config, get_current_member, get_engine
from skillswap.config import SkillSwapConfig
from skillswap.database.models import Member, Swap
from skillswap.datetime_utils import isoformat_or_none
from skillswap.engine.lifecycle import make_snapshot
from skillswap.services import swap_service

router = APIRouter(prefix="/swaps", tags=["swaps"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class SkillRef(BaseModel):
    skill: str
    description: str | None = None
    level: str | None = None


class SwapCreate(BaseModel):
    provider_id: str
    skill_offered: SkillRef
    skill_requested: SkillRef
    message: str | None = None
    scheduled_date: datetime | None = None
    duration: int | None = None
    meeting_type: str | None = None
    meeting_details: str | None = None


class SwapDetailsUpdate(BaseModel):
    scheduled_date: datetime | None = None
    duration: int | None = None
    meeting_type: str | None = None
    meeting_details: str | None = None


class RejectBody(BaseModel):
    reason: str | None = None


class FeedbackBody(BaseModel):
    # Left loose so that non-integer ratings reach the domain check (400)
    rating: int | float | str
    comment: str | None = None


# ---------------------------------------------------------------------------
# Serializer
# ---------------------------------------------------------------------------
def _feedback(swap: Swap, slot: str) -> dict | None:
    rating = getattr(swap, f"{slot}_rating")
    if rating is None:
        return None
    return {
        "rating": rating,
        "comment": getattr(swap, f"{slot}_comment"),
        "submitted_at": isoformat_or_none(getattr(swap, f"{slot}_feedback_at")),
    }


def swap_to_dict(swap: Swap) -> dict:
    return {
        "id": swap.id,
        "requester_id": swap.requester_id,
        "provider_id": swap.provider_id,
        "skill_offered": {
            "skill": swap.offered_skill,
            "description": swap.offered_description,
            "level": swap.offered_level,
        },
        "skill_requested": {
            "skill": swap.requested_skill,
            "description": swap.requested_description,
            "level": swap.requested_level,
        },
        "status": swap.status,
        "message": swap.message,
        "scheduled_date": isoformat_or_none(swap.scheduled_date),
        "duration": swap.duration,
        "meeting_type": swap.meeting_type,
        "meeting_details": swap.meeting_details,
        "requester_feedback": _feedback(swap, "requester"),
        "provider_feedback": _feedback(swap, "provider"),
        "rejected_at": isoformat_or_none(swap.rejected_at),
        "rejection_reason": swap.rejection_reason,
        "completed_at": isoformat_or_none(swap.completed_at),
        "admin_cancelled": swap.admin_cancelled,
        "admin_cancel_reason": swap.admin_cancel_reason,
        "created_at": isoformat_or_none(swap.created_at),
        "updated_at": isoformat_or_none(swap.updated_at),
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.post("", status_code=201)
def create_swap(
    body: SwapCreate,
    member: Member = Depends(get_current_member),
    engine: Engine = Depends(get_engine),
    config: SkillSwapConfig = Depends(get_config),
):
    swap = swap_service.create_swap(
        engine,
        requester_id=member.id,
        provider_id=body.provider_id,
        skill_offered=make_snapshot(
            body.skill_offered.skill, body.skill_offered.description,
            body.skill_offered.level, field_name="skill_offered",
        ),
        skill_requested=make_snapshot(
            body.skill_requested.skill, body.skill_requested.description,
            body.skill_requested.level, field_name="skill_requested",
        ),
        message=body.message,
        scheduled_date=body.scheduled_date,
        duration=body.duration,
        meeting_type=body.meeting_type,
        meeting_details=body.meeting_details,
        config=config,
    )
    return swap_to_dict(swap)


@router.get("")
def list_swaps(
    status: str | None = Query(None),
    direction: str = Query("all"),
    member: Member = Depends(get_current_member),
    engine: Engine = Depends(get_engine),
):
    swaps = swap_service.list_swaps(engine, member.id, status=status, direction=direction)
    return {"swaps": [swap_to_dict(s) for s in swaps], "total": len(swaps)}


@router.get("/{swap_id}")
def get_swap(
    swap_id: str,
    member: Member = Depends(get_current_member),
    engine: Engine = Depends(get_engine),
):
    swap = swap_service.get_swap(
        engine, swap_id, viewer_id=member.id, viewer_is_moderator=member.is_moderator
    )
    return swap_to_dict(swap)


@router.patch("/{swap_id}/accept")
def accept_swap(
    swap_id: str,
    member: Member = Depends(get_current_member),
    engine: Engine = Depends(get_engine),
):
    return swap_to_dict(swap_service.accept_swap(engine, swap_id, actor_id=member.id))


@router.patch("/{swap_id}/reject")
def reject_swap(
    swap_id: str,
    body: RejectBody | None = None,
    member: Member = Depends(get_current_member),
    engine: Engine = Depends(get_engine),
):
    reason = body.reason if body else None
    return swap_to_dict(
        swap_service.reject_swap(engine, swap_id, actor_id=member.id, reason=reason)
    )


@router.patch("/{swap_id}/complete")
def complete_swap(
    swap_id: str,
    member: Member = Depends(get_current_member),
    engine: Engine = Depends(get_engine),
):
    return swap_to_dict(swap_service.complete_swap(engine, swap_id, actor_id=member.id))


@router.patch("/{swap_id}/cancel")
def cancel_swap(
    swap_id: str,
    member: Member = Depends(get_current_member),
    engine: Engine = Depends(get_engine),
):
    return swap_to_dict(swap_service.cancel_swap(engine, swap_id, actor_id=member.id))


@router.patch("/{swap_id}")
def update_swap_details(
    swap_id: str,
    body: SwapDetailsUpdate,
    member: Member = Depends(get_current_member),
    engine: Engine = Depends(get_engine),
):
    swap = swap_service.update_swap_details(
        engine,
        swap_id,
        actor_id=member.id,
        scheduled_date=body.scheduled_date,
        duration=body.duration,
        meeting_type=body.meeting_type,
        meeting_details=body.meeting_details,
    )
    return swap_to_dict(swap)


@router.delete("/{swap_id}", status_code=204)
def delete_swap(
    swap_id: str,
    member: Member = Depends(get_current_member),
    engine: Engine = Depends(get_engine),
):
    swap_service.delete_swap(engine, swap_id, actor_id=member.id)
    return Response(status_code=204)


@router.post("/{swap_id}/feedback")
def submit_feedback(
    swap_id: str,
    body: FeedbackBody,
    member: Member = Depends(get_current_member),
    engine: Engine = Depends(get_engine),
):
    swap = swap_service.submit_feedback(
        engine, swap_id, actor_id=member.id, rating=body.rating, comment=body.comment
    )
    return swap_to_dict(swap)
