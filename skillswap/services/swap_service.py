"""
skillswap.services.swap_service — Swap Lifecycle Persistence
=============================================================

Every transition follows the same pattern:
  1. Load the swap (``SELECT … FOR UPDATE`` where the backend supports it)
  2. Classify the caller and check the guard (:mod:`skillswap.engine.lifecycle`)
  3. Apply the mutation and any side effects (counters, rating)
  4. Commit; the ``version`` column turns a lost race into ``StaleDataError``

A stale write becomes :class:`ConcurrencyConflict`.  The transition is
then retried once from a fresh read.  The retry normally fails its guard
with :class:`InvalidState` because the winner already moved the status.
A second conflict is reported as :class:`InvalidState` directly.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

from sqlalchemy import Engine, func, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from skillswap.config import SkillSwapConfig
from skillswap.constants import SwapStatus
from skillswap.database.models import Swap
from skillswap.datetime_utils import utc_now
from skillswap.engine.lifecycle import (
    Party,
    SkillSnapshot,
    SwapAction,
    check_transition,
    counterpart,
    parse_meeting_type,
    resolve_party,
    validate_duration,
)
from skillswap.engine.rating import validate_rating
from skillswap.errors import (
    AlreadySubmitted,
    ConcurrencyConflict,
    Forbidden,
    InvalidState,
    NotFound,
    ValidationError,
)
from skillswap.services import audit_service, member_service, rating_service

logger = logging.getLogger(__name__)

T = TypeVar("T")

Mutation = Callable[[Session, Swap, Party, datetime], None]

_DIRECTIONS = ("all", "sent", "received")


# ---------------------------------------------------------------------------
# Transition plumbing
# ---------------------------------------------------------------------------
def _load_swap(session: Session, swap_id: str, *, lock: bool = False) -> Swap:
    stmt = select(Swap).where(Swap.id == swap_id)
    if lock:
        stmt = stmt.with_for_update()
    swap = session.scalar(stmt)
    if swap is None:
        raise NotFound("Swap not found", {"swap_id": swap_id})
    return swap


def _with_conflict_retry(operation: Callable[..., T], *args, **kwargs) -> T:
    """Run *operation*; on a concurrency conflict re-run it once from scratch."""
    try:
        return operation(*args, **kwargs)
    except ConcurrencyConflict as exc:
        logger.info("Retrying after concurrent write: %s", exc.reason)

    try:
        return operation(*args, **kwargs)
    except ConcurrencyConflict as exc:
        raise InvalidState("Swap was modified by another request") from exc


def _transition(
    engine: Engine,
    swap_id: str,
    actor_id: str,
    action: SwapAction,
    mutate: Mutation | None = None,
    *,
    as_moderator: bool = False,
) -> Swap | None:
    """One guarded, version-checked transition.  Returns the fresh swap, or
    ``None`` when the mutation deleted it.

    *mutate* runs before the status is moved, so it still sees the status
    the guard was checked against.
    """
    now = utc_now()
    with Session(engine, expire_on_commit=False) as session:
        swap = _load_swap(session, swap_id, lock=True)
        party = resolve_party(
            swap.requester_id, swap.provider_id, actor_id, as_moderator=as_moderator
        )
        old_status = swap.status
        target = check_transition(action, swap.status, party)

        try:
            if mutate is not None:
                mutate(session, swap, party, now)
            if target is not None:
                swap.status = target.value
            session.commit()
        except StaleDataError as exc:
            session.rollback()
            raise ConcurrencyConflict(
                f"Swap {swap_id} changed while applying {action}"
            ) from exc

        logger.info(
            "Swap %s: %s by %s (%s → %s)",
            swap_id, action, party, old_status, target or old_status,
        )
        if swap in session.deleted or swap not in session:
            return None
        session.refresh(swap)
        session.expunge(swap)
        return swap


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_swap(
    engine: Engine,
    swap_id: str,
    *,
    viewer_id: str,
    viewer_is_moderator: bool = False,
) -> Swap:
    """Fetch a swap visible to *viewer_id* (a participant or a moderator)."""
    with Session(engine) as session:
        swap = _load_swap(session, swap_id)
        if not viewer_is_moderator and viewer_id not in (swap.requester_id, swap.provider_id):
            raise Forbidden("Access denied")
        session.expunge(swap)
        return swap


def list_swaps(
    engine: Engine,
    member_id: str,
    *,
    status: str | None = None,
    direction: str = "all",
) -> list[Swap]:
    """Swaps *member_id* takes part in, newest first.

    *direction* is ``sent`` (as requester), ``received`` (as provider) or
    ``all``.
    """
    if direction not in _DIRECTIONS:
        raise ValidationError(f"direction must be one of {', '.join(_DIRECTIONS)}")

    stmt = select(Swap)
    if direction == "sent":
        stmt = stmt.where(Swap.requester_id == member_id)
    elif direction == "received":
        stmt = stmt.where(Swap.provider_id == member_id)
    else:
        stmt = stmt.where(or_(Swap.requester_id == member_id, Swap.provider_id == member_id))

    if status is not None:
        stmt = stmt.where(Swap.status == _status_value(status))
    return _detached_swaps(engine, stmt.order_by(Swap.created_at.desc(), Swap.id))


def list_all_swaps(
    engine: Engine, *, status: str | None = None, limit: int = 100
) -> list[Swap]:
    """Every swap in the community, newest first, for moderator oversight."""
    stmt = select(Swap)
    if status is not None:
        stmt = stmt.where(Swap.status == _status_value(status))
    return _detached_swaps(
        engine, stmt.order_by(Swap.created_at.desc(), Swap.id).limit(limit)
    )


def _status_value(status: str) -> str:
    try:
        return SwapStatus(status).value
    except ValueError:
        raise ValidationError(f"Unknown swap status {status!r}") from None


def _detached_swaps(engine: Engine, stmt) -> list[Swap]:
    with Session(engine) as session:
        swaps = session.scalars(stmt).all()
        for swap in swaps:
            session.expunge(swap)
        return list(swaps)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------
def create_swap(
    engine: Engine,
    *,
    requester_id: str,
    provider_id: str,
    skill_offered: SkillSnapshot,
    skill_requested: SkillSnapshot,
    message: str | None = None,
    scheduled_date: datetime | None = None,
    duration: int | None = None,
    meeting_type: str | None = None,
    meeting_details: str | None = None,
    config: SkillSwapConfig | None = None,
) -> Swap:
    """Open a new pending swap request from *requester_id* to *provider_id*.

    The provider must currently offer ``skill_requested.skill`` and there
    must be no pending swap between the same pair for the same two skills.
    """
    cfg = config or SkillSwapConfig()
    if requester_id == provider_id:
        raise ValidationError("Cannot create swap with yourself")

    duration = validate_duration(duration) if duration is not None else cfg.default_swap_duration_minutes
    meeting = parse_meeting_type(meeting_type) if meeting_type else cfg.default_meeting_type

    with Session(engine, expire_on_commit=False) as session:
        member_service.load_member(session, requester_id)
        try:
            member_service.load_member(session, provider_id)
        except NotFound:
            raise NotFound("Provider not found", {"member_id": provider_id}) from None

        if not member_service.provider_advertises(session, provider_id, skill_requested.skill):
            raise ValidationError("Provider does not offer this skill")

        duplicate = session.scalar(
            select(Swap.id).where(
                Swap.requester_id == requester_id,
                Swap.provider_id == provider_id,
                func.lower(Swap.offered_skill) == skill_offered.skill.lower(),
                func.lower(Swap.requested_skill) == skill_requested.skill.lower(),
                Swap.status == SwapStatus.PENDING.value,
            ).limit(1)
        )
        if duplicate is not None:
            raise InvalidState(
                "A pending swap request already exists for these skills",
                current_status=SwapStatus.PENDING.value,
            )

        swap = Swap(
            requester_id=requester_id,
            provider_id=provider_id,
            offered_skill=skill_offered.skill,
            offered_description=skill_offered.description,
            offered_level=skill_offered.level.value if skill_offered.level else None,
            requested_skill=skill_requested.skill,
            requested_description=skill_requested.description,
            requested_level=skill_requested.level.value if skill_requested.level else None,
            status=SwapStatus.PENDING.value,
            message=message.strip() if message else None,
            scheduled_date=scheduled_date,
            duration=duration,
            meeting_type=meeting.value,
            meeting_details=meeting_details.strip() if meeting_details else None,
        )
        session.add(swap)
        session.commit()
        session.refresh(swap)
        session.expunge(swap)

    logger.info(
        "Swap %s created: %s offers %r for %r from %s",
        swap.id, requester_id, swap.offered_skill, swap.requested_skill, provider_id,
    )
    return swap


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------
def accept_swap(engine: Engine, swap_id: str, *, actor_id: str) -> Swap:
    return _with_conflict_retry(_transition, engine, swap_id, actor_id, SwapAction.ACCEPT)


def reject_swap(
    engine: Engine, swap_id: str, *, actor_id: str, reason: str | None = None
) -> Swap:
    def mutate(session: Session, swap: Swap, party: Party, now: datetime) -> None:
        swap.rejected_at = now
        swap.rejection_reason = reason.strip() if reason else None

    return _with_conflict_retry(
        _transition, engine, swap_id, actor_id, SwapAction.REJECT, mutate
    )


def complete_swap(engine: Engine, swap_id: str, *, actor_id: str) -> Swap:
    """Mark an accepted swap completed and bump both members' counters.

    The counter UPDATE triggers an autoflush of the swap first, so the
    version check runs before either member row is touched.
    """
    def mutate(session: Session, swap: Swap, party: Party, now: datetime) -> None:
        swap.completed_at = now
        member_service.increment_completed_swaps(
            session, swap.requester_id, swap.provider_id
        )

    return _with_conflict_retry(
        _transition, engine, swap_id, actor_id, SwapAction.COMPLETE, mutate
    )


def cancel_swap(engine: Engine, swap_id: str, *, actor_id: str) -> Swap:
    return _with_conflict_retry(_transition, engine, swap_id, actor_id, SwapAction.CANCEL)


def force_cancel_swap(
    engine: Engine, swap_id: str, *, moderator_id: str, reason: str | None = None
) -> Swap:
    """Moderator cancel; records admin-cancel metadata and an audit row.

    The caller's moderator privilege is checked by the request layer.
    """
    def mutate(session: Session, swap: Swap, party: Party, now: datetime) -> None:
        columns = ("status", "admin_cancelled", "admin_cancel_reason")
        before = audit_service.row_to_dict(swap, columns)
        swap.admin_cancelled = True
        swap.admin_cancel_reason = reason.strip() if reason else None
        swap.admin_cancelled_by = moderator_id
        swap.admin_cancelled_at = now
        swap.status = SwapStatus.CANCELLED.value
        audit_service.log_admin_action(
            session,
            actor_id=moderator_id,
            action_type="FORCE_CANCEL",
            target_table="swaps",
            target_id=swap.id,
            before=before,
            after=audit_service.row_to_dict(swap, columns),
            reason=swap.admin_cancel_reason,
        )

    return _with_conflict_retry(
        _transition, engine, swap_id, moderator_id, SwapAction.FORCE_CANCEL, mutate,
        as_moderator=True,
    )


def update_swap_details(
    engine: Engine,
    swap_id: str,
    *,
    actor_id: str,
    scheduled_date: datetime | None = None,
    duration: int | None = None,
    meeting_type: str | None = None,
    meeting_details: str | None = None,
) -> Swap:
    """Change scheduling fields of an accepted swap.  ``None`` = unchanged."""
    if duration is not None:
        validate_duration(duration)
    meeting = parse_meeting_type(meeting_type) if meeting_type else None

    def mutate(session: Session, swap: Swap, party: Party, now: datetime) -> None:
        if scheduled_date is not None:
            swap.scheduled_date = scheduled_date
        if duration is not None:
            swap.duration = duration
        if meeting is not None:
            swap.meeting_type = meeting.value
        if meeting_details is not None:
            swap.meeting_details = meeting_details.strip() or None

    return _with_conflict_retry(
        _transition, engine, swap_id, actor_id, SwapAction.UPDATE_DETAILS, mutate
    )


def delete_swap(engine: Engine, swap_id: str, *, actor_id: str) -> None:
    """Physically remove a pending request.  Requester only."""
    def mutate(session: Session, swap: Swap, party: Party, now: datetime) -> None:
        session.delete(swap)

    _with_conflict_retry(_transition, engine, swap_id, actor_id, SwapAction.DELETE, mutate)


def submit_feedback(
    engine: Engine,
    swap_id: str,
    *,
    actor_id: str,
    rating: int,
    comment: str | None = None,
) -> Swap:
    """Fill the caller's feedback slot and rate the other participant.

    The slot write is flushed (and version-checked) before the rating
    UPDATE, so two racing submissions from the same participant cannot
    both reach the aggregator.
    """
    rating = validate_rating(rating)

    def mutate(session: Session, swap: Swap, party: Party, now: datetime) -> None:
        slot = party.value
        if getattr(swap, f"{slot}_rating") is not None:
            raise AlreadySubmitted(
                "You have already provided feedback for this swap",
                current_status=swap.status,
            )
        setattr(swap, f"{slot}_rating", rating)
        setattr(swap, f"{slot}_comment", comment.strip() if comment else None)
        setattr(swap, f"{slot}_feedback_at", now)
        session.flush()

        other = counterpart(party)
        rated_id = swap.requester_id if other == Party.REQUESTER else swap.provider_id
        rating_service.fold_rating(session, rated_id, rating)

    return _with_conflict_retry(
        _transition, engine, swap_id, actor_id, SwapAction.SUBMIT_FEEDBACK, mutate
    )
