"""
tests/test_lifecycle_rules.py — Swap State Machine Guards
==========================================================
Pure tests for skillswap.engine.lifecycle: no database.
"""

from __future__ import annotations

import pytest

from skillswap.constants import MeetingType, SkillLevel, SwapStatus
from skillswap.engine.lifecycle import (
    Party,
    SwapAction,
    check_transition,
    counterpart,
    make_snapshot,
    parse_meeting_type,
    resolve_party,
    validate_duration,
)
from skillswap.errors import Forbidden, InvalidState, ValidationError


class TestResolveParty:
    def test_requester(self):
        assert resolve_party("r", "p", "r") == Party.REQUESTER

    def test_provider(self):
        assert resolve_party("r", "p", "p") == Party.PROVIDER

    def test_outsider(self):
        assert resolve_party("r", "p", "x") == Party.OUTSIDER

    def test_moderator_flag_wins(self):
        assert resolve_party("r", "p", "r", as_moderator=True) == Party.MODERATOR


class TestCheckTransition:
    @pytest.mark.parametrize("action, party, status, target", [
        (SwapAction.ACCEPT, Party.PROVIDER, "pending", SwapStatus.ACCEPTED),
        (SwapAction.REJECT, Party.PROVIDER, "pending", SwapStatus.REJECTED),
        (SwapAction.COMPLETE, Party.REQUESTER, "accepted", SwapStatus.COMPLETED),
        (SwapAction.COMPLETE, Party.PROVIDER, "accepted", SwapStatus.COMPLETED),
        (SwapAction.CANCEL, Party.REQUESTER, "pending", SwapStatus.CANCELLED),
        (SwapAction.CANCEL, Party.PROVIDER, "accepted", SwapStatus.CANCELLED),
        (SwapAction.FORCE_CANCEL, Party.MODERATOR, "accepted", SwapStatus.CANCELLED),
        (SwapAction.UPDATE_DETAILS, Party.PROVIDER, "accepted", None),
        (SwapAction.DELETE, Party.REQUESTER, "pending", None),
        (SwapAction.SUBMIT_FEEDBACK, Party.REQUESTER, "completed", None),
    ])
    def test_legal_moves(self, action, party, status, target):
        assert check_transition(action, status, party) == target

    def test_requester_cannot_accept(self):
        with pytest.raises(Forbidden):
            check_transition(SwapAction.ACCEPT, "pending", Party.REQUESTER)

    def test_actor_checked_before_status(self):
        # Wrong actor AND wrong status: the actor error wins.
        with pytest.raises(Forbidden):
            check_transition(SwapAction.ACCEPT, "completed", Party.OUTSIDER)

    def test_provider_cannot_delete(self):
        with pytest.raises(Forbidden):
            check_transition(SwapAction.DELETE, "pending", Party.PROVIDER)

    def test_moderator_cannot_use_participant_cancel(self):
        with pytest.raises(Forbidden):
            check_transition(SwapAction.CANCEL, "pending", Party.MODERATOR)

    def test_invalid_state_carries_current_status(self):
        with pytest.raises(InvalidState) as exc_info:
            check_transition(SwapAction.ACCEPT, "accepted", Party.PROVIDER)
        assert exc_info.value.current_status == "accepted"
        assert exc_info.value.status_code == 409

    @pytest.mark.parametrize("status", ["rejected", "completed", "cancelled"])
    def test_terminal_statuses_cannot_be_cancelled(self, status):
        with pytest.raises(InvalidState):
            check_transition(SwapAction.CANCEL, status, Party.REQUESTER)

    @pytest.mark.parametrize("action", [
        SwapAction.ACCEPT, SwapAction.REJECT, SwapAction.COMPLETE,
        SwapAction.UPDATE_DETAILS, SwapAction.DELETE,
    ])
    def test_completed_only_accepts_feedback(self, action):
        party = Party.REQUESTER if action == SwapAction.DELETE else Party.PROVIDER
        with pytest.raises(InvalidState):
            check_transition(action, "completed", party)

    def test_feedback_requires_completed(self):
        with pytest.raises(InvalidState):
            check_transition(SwapAction.SUBMIT_FEEDBACK, "accepted", Party.PROVIDER)


class TestCounterpart:
    def test_participants_swap(self):
        assert counterpart(Party.REQUESTER) == Party.PROVIDER
        assert counterpart(Party.PROVIDER) == Party.REQUESTER

    def test_non_participant(self):
        with pytest.raises(ValueError):
            counterpart(Party.MODERATOR)


class TestInputNormalisation:
    def test_snapshot_strips_and_parses_level(self):
        snap = make_snapshot("  Guitar ", " chords ", "Advanced")
        assert snap.skill == "Guitar"
        assert snap.description == "chords"
        assert snap.level == SkillLevel.ADVANCED

    def test_blank_skill_rejected(self):
        with pytest.raises(ValidationError, match="skill_offered"):
            make_snapshot("   ", field_name="skill_offered")

    def test_unknown_level_rejected(self):
        with pytest.raises(ValidationError):
            make_snapshot("Guitar", level="Wizard")

    def test_meeting_type(self):
        assert parse_meeting_type("in-person") == MeetingType.IN_PERSON
        with pytest.raises(ValidationError):
            parse_meeting_type("telepathy")

    @pytest.mark.parametrize("bad", [0, -5, 1.5, True, "60"])
    def test_duration_must_be_positive_int(self, bad):
        with pytest.raises(ValidationError):
            validate_duration(bad)

    def test_duration_ok(self):
        assert validate_duration(90) == 90
