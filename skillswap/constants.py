"""
skillswap.constants — Shared Enums & Defaults
==============================================

Single source of truth for the closed vocabularies (roles, skill levels,
swap statuses, meeting types) and the built-in defaults that
:class:`~skillswap.config.SkillSwapConfig` falls back to.
"""

from __future__ import annotations

import enum


class MemberRole(enum.StrEnum):
    MEMBER = "member"
    MODERATOR = "moderator"


class SkillLevel(enum.StrEnum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    EXPERT = "Expert"


class SwapStatus(enum.StrEnum):
    """Lifecycle states of a swap.  Terminal: rejected, completed, cancelled."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MeetingType(enum.StrEnum):
    ONLINE = "online"
    IN_PERSON = "in-person"
    HYBRID = "hybrid"


TERMINAL_STATUSES: frozenset[SwapStatus] = frozenset({
    SwapStatus.REJECTED,
    SwapStatus.COMPLETED,
    SwapStatus.CANCELLED,
})

# ---------------------------------------------------------------------------
# Defaults (overridable via config.yaml)
# ---------------------------------------------------------------------------
DEFAULT_SWAP_DURATION_MINUTES = 60
DEFAULT_MEETING_TYPE = MeetingType.ONLINE
DEFAULT_OFFERED_LEVEL = SkillLevel.INTERMEDIATE
DEFAULT_WANTED_LEVEL = SkillLevel.BEGINNER

# ---------------------------------------------------------------------------
# Rating bounds
# ---------------------------------------------------------------------------
MIN_RATING = 1
MAX_RATING = 5

# ---------------------------------------------------------------------------
# Moderation bounds
# ---------------------------------------------------------------------------
MAX_BAN_DAYS = 36500

AVAILABILITY_SLOTS: tuple[str, ...] = (
    "weekdays", "weekends", "mornings", "afternoons", "evenings",
)

REPORT_TYPES: tuple[str, ...] = ("users", "swaps", "feedback", "activity")
