"""
skillswap.engine.lifecycle — Swap State Machine Guards
=======================================================

Pure rules: no DB I/O.  The swap service loads a record, asks this module
whether the caller may move it, applies the mutation and persists it.

State machine::

    pending ──accept──▶ accepted ──complete──▶ completed
       │                   │
       ├──reject──▶ rejected
       └──cancel / force-cancel (also from accepted)──▶ cancelled

``completed`` only accepts feedback; ``rejected`` and ``cancelled`` accept
nothing.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from skillswap.constants import MeetingType, SkillLevel, SwapStatus
from skillswap.errors import Forbidden, InvalidState, ValidationError

logger = logging.getLogger(__name__)


class SwapAction(enum.StrEnum):
    ACCEPT = "accept"
    REJECT = "reject"
    COMPLETE = "complete"
    CANCEL = "cancel"
    FORCE_CANCEL = "force_cancel"
    UPDATE_DETAILS = "update_details"
    DELETE = "delete"
    SUBMIT_FEEDBACK = "submit_feedback"


class Party(enum.StrEnum):
    """How the caller relates to a particular swap."""
    REQUESTER = "requester"
    PROVIDER = "provider"
    MODERATOR = "moderator"
    OUTSIDER = "outsider"


PARTICIPANTS = frozenset({Party.REQUESTER, Party.PROVIDER})
_OPEN = frozenset({SwapStatus.PENDING, SwapStatus.ACCEPTED})


@dataclass(frozen=True, slots=True)
class TransitionRule:
    parties: frozenset[Party]
    from_statuses: frozenset[SwapStatus]
    to_status: SwapStatus | None  # None = status unchanged (or row deleted)
    forbidden_reason: str
    state_reason: str


RULES: dict[SwapAction, TransitionRule] = {
    SwapAction.ACCEPT: TransitionRule(
        frozenset({Party.PROVIDER}),
        frozenset({SwapStatus.PENDING}),
        SwapStatus.ACCEPTED,
        "Only the provider can accept this swap",
        "Swap is not pending",
    ),
    SwapAction.REJECT: TransitionRule(
        frozenset({Party.PROVIDER}),
        frozenset({SwapStatus.PENDING}),
        SwapStatus.REJECTED,
        "Only the provider can reject this swap",
        "Swap is not pending",
    ),
    SwapAction.COMPLETE: TransitionRule(
        PARTICIPANTS,
        frozenset({SwapStatus.ACCEPTED}),
        SwapStatus.COMPLETED,
        "Only swap participants can complete this swap",
        "Swap must be accepted first",
    ),
    SwapAction.CANCEL: TransitionRule(
        PARTICIPANTS,
        _OPEN,
        SwapStatus.CANCELLED,
        "Only swap participants can cancel this swap",
        "Only pending or accepted swaps can be cancelled",
    ),
    SwapAction.FORCE_CANCEL: TransitionRule(
        frozenset({Party.MODERATOR}),
        _OPEN,
        SwapStatus.CANCELLED,
        "Only moderators can force-cancel a swap",
        "Only pending or accepted swaps can be cancelled",
    ),
    SwapAction.UPDATE_DETAILS: TransitionRule(
        PARTICIPANTS,
        frozenset({SwapStatus.ACCEPTED}),
        None,
        "Only swap participants can update this swap",
        "Can only update accepted swaps",
    ),
    SwapAction.DELETE: TransitionRule(
        frozenset({Party.REQUESTER}),
        frozenset({SwapStatus.PENDING}),
        None,
        "Only the requester can delete this swap",
        "Can only delete pending swap requests",
    ),
    SwapAction.SUBMIT_FEEDBACK: TransitionRule(
        PARTICIPANTS,
        frozenset({SwapStatus.COMPLETED}),
        None,
        "Only swap participants can leave feedback",
        "Can only rate completed swaps",
    ),
}


def resolve_party(
    requester_id: str,
    provider_id: str,
    actor_id: str,
    *,
    as_moderator: bool = False,
) -> Party:
    """Classify *actor_id* against a swap's two fixed roles."""
    if as_moderator:
        return Party.MODERATOR
    if actor_id == requester_id:
        return Party.REQUESTER
    if actor_id == provider_id:
        return Party.PROVIDER
    return Party.OUTSIDER


def check_transition(action: SwapAction, status: str, party: Party) -> SwapStatus | None:
    """Validate *action* for *party* on a swap currently in *status*.

    The actor is checked before the status.  Returns the target status.

    Raises
    ------
    Forbidden
        *party* may not perform *action*.
    InvalidState
        *action* is not legal from *status*.
    """
    rule = RULES[action]
    if party not in rule.parties:
        logger.warning("Rejected %s by %s on %s swap", action, party, status)
        raise Forbidden(rule.forbidden_reason)
    if SwapStatus(status) not in rule.from_statuses:
        raise InvalidState(rule.state_reason, current_status=str(status))
    return rule.to_status


def counterpart(party: Party) -> Party:
    """The other participant, the one who receives *party*'s rating."""
    if party == Party.REQUESTER:
        return Party.PROVIDER
    if party == Party.PROVIDER:
        return Party.REQUESTER
    raise ValueError(f"{party} is not a swap participant")


# ---------------------------------------------------------------------------
# Input normalisation for new swaps and detail updates
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class SkillSnapshot:
    """Copy of a skill taken when a swap is created."""

    skill: str
    description: str | None = None
    level: SkillLevel | None = None


def make_snapshot(
    skill: str | None,
    description: str | None = None,
    level: str | None = None,
    *,
    field_name: str = "skill",
) -> SkillSnapshot:
    name = (skill or "").strip()
    if not name:
        raise ValidationError(f"{field_name} is required")
    return SkillSnapshot(
        skill=name,
        description=description.strip() if description else None,
        level=parse_level(level) if level else None,
    )


def parse_level(value: str) -> SkillLevel:
    try:
        return SkillLevel(value)
    except ValueError:
        raise ValidationError(
            f"Unknown skill level {value!r}; expected one of "
            f"{', '.join(lvl.value for lvl in SkillLevel)}"
        ) from None


def parse_meeting_type(value: str) -> MeetingType:
    try:
        return MeetingType(value)
    except ValueError:
        raise ValidationError(
            f"Unknown meeting type {value!r}; expected one of "
            f"{', '.join(mt.value for mt in MeetingType)}"
        ) from None


def validate_duration(minutes: int) -> int:
    if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
        raise ValidationError("duration must be a positive number of minutes")
    return minutes
