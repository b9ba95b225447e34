"""
skillswap.api.routes.members — Registration, profiles & personal stats
=======================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from skillswap.api.deps import (
    get_config,
    get_current_member,
    get_engine,
    get_optional_member,
)
from skillswap.config import SkillSwapConfig
from skillswap.constants import AVAILABILITY_SLOTS
from skillswap.database.models import Member, OfferedSkill, WantedSkill
from skillswap.datetime_utils import isoformat_or_none
from skillswap.engine.moderation import review_state
from skillswap.errors import NotFound
from skillswap.services import member_service, stats_service

router = APIRouter(prefix="/members", tags=["members"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class SkillEntry(BaseModel):
    skill: str
    description: str | None = None
    level: str | None = None


class MemberRegister(BaseModel):
    name: str
    email: str
    location: str | None = None
    skills_offered: list[SkillEntry] = Field(default_factory=list)
    skills_wanted: list[SkillEntry] = Field(default_factory=list)


class ProfileUpdate(BaseModel):
    name: str | None = None
    location: str | None = None
    skills_offered: list[SkillEntry] | None = None
    skills_wanted: list[SkillEntry] | None = None
    availability: dict[str, bool] | None = None
    is_public: bool | None = None


# ---------------------------------------------------------------------------
# Serializers
# ---------------------------------------------------------------------------
def _offered_dict(entry: OfferedSkill, *, with_review: bool) -> dict:
    data = {
        "id": entry.id,
        "skill": entry.skill,
        "description": entry.description,
        "level": entry.level,
    }
    if with_review:
        data["review"] = review_state(entry.is_approved, entry.is_rejected)
        data["rejection_reason"] = entry.rejection_reason
    return data


def _wanted_dict(entry: WantedSkill) -> dict:
    return {"skill": entry.skill, "description": entry.description, "level": entry.level}


def member_to_dict(member: Member, *, private: bool = False) -> dict:
    """Public view by default; *private* adds email, ban and review state.

    Rejected offered entries are hidden from the public view.
    """
    offered = [
        _offered_dict(e, with_review=private)
        for e in member.skills_offered
        if private or not e.is_rejected
    ]
    data = {
        "id": member.id,
        "name": member.name,
        "location": member.location,
        "skills_offered": offered,
        "skills_wanted": [_wanted_dict(e) for e in member.skills_wanted],
        "availability": {
            slot: getattr(member, f"available_{slot}") for slot in AVAILABILITY_SLOTS
        },
        "rating": {"average": member.rating_average, "count": member.rating_count},
        "completed_swaps": member.completed_swaps,
        "joined_at": isoformat_or_none(member.joined_at),
    }
    if private:
        data.update({
            "email": member.email,
            "role": member.role,
            "is_public": member.is_public,
            "is_active": member.is_active,
            "is_banned": member.is_banned,
            "ban_reason": member.ban_reason,
            "ban_expiry": isoformat_or_none(member.ban_expiry),
            "last_active": isoformat_or_none(member.last_active),
        })
    return data


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.post("", status_code=201)
def register(
    body: MemberRegister,
    engine: Engine = Depends(get_engine),
    config: SkillSwapConfig = Depends(get_config),
):
    member = member_service.register_member(
        engine,
        name=body.name,
        email=body.email,
        location=body.location,
        skills_offered=[s.model_dump() for s in body.skills_offered],
        skills_wanted=[s.model_dump() for s in body.skills_wanted],
        config=config,
    )
    return member_to_dict(member, private=True)


@router.get("/me")
def my_profile(member: Member = Depends(get_current_member)):
    return member_to_dict(member, private=True)


@router.put("/me")
def edit_profile(
    body: ProfileUpdate,
    member: Member = Depends(get_current_member),
    engine: Engine = Depends(get_engine),
    config: SkillSwapConfig = Depends(get_config),
):
    """Replace any supplied profile fields; omitted fields stay as they are."""
    updated = member_service.update_profile(
        engine,
        member.id,
        name=body.name,
        location=body.location,
        skills_offered=(
            [s.model_dump() for s in body.skills_offered]
            if body.skills_offered is not None else None
        ),
        skills_wanted=(
            [s.model_dump() for s in body.skills_wanted]
            if body.skills_wanted is not None else None
        ),
        availability=body.availability,
        is_public=body.is_public,
        config=config,
    )
    return member_to_dict(updated, private=True)


@router.get("/me/stats")
def my_stats(
    member: Member = Depends(get_current_member),
    engine: Engine = Depends(get_engine),
):
    return stats_service.member_stats(engine, member.id)


@router.get("/popular/skills")
def popular_skills(
    limit: int = Query(20, ge=1, le=100),
    engine: Engine = Depends(get_engine),
):
    return stats_service.popular_skills(engine, limit=limit)


@router.get("/{member_id}")
def public_profile(
    member_id: str,
    viewer: Member | None = Depends(get_optional_member),
    engine: Engine = Depends(get_engine),
):
    """Public profile.  Private, banned or deactivated members are hidden
    from everyone except themselves and moderators."""
    member = member_service.get_member(engine, member_id)
    privileged = viewer is not None and (viewer.id == member.id or viewer.is_moderator)
    hidden = not member.is_public or member.is_banned or not member.is_active
    if hidden and not privileged:
        raise NotFound("Member not found", {"member_id": member_id})
    return member_to_dict(member, private=privileged)
