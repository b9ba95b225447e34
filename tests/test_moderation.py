"""
tests/test_moderation.py — Bans, Lazy Expiry & Skill Review
============================================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from skillswap.constants import MAX_BAN_DAYS
from skillswap.database.models import AdminLog
from skillswap.engine.moderation import (
    Approve,
    Reject,
    ban_expiry_for,
    ban_has_expired,
    review_fields,
)
from skillswap.errors import Forbidden, InvalidState, NotFound, ValidationError
from skillswap.services import (
    audit_service,
    member_service,
    moderation_service,
    rating_service,
)

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)


@pytest.fixture
def engine(db_engine):
    return db_engine


# ===========================================================================
# Pure decisions
# ===========================================================================
class TestBanRules:
    def test_permanent_ban_has_no_expiry(self):
        assert ban_expiry_for(NOW, None) is None

    def test_duration_in_days(self):
        assert ban_expiry_for(NOW, 7) == NOW + timedelta(days=7)

    @pytest.mark.parametrize("days", [0, -1, 2.5, True])
    def test_bad_duration(self, days):
        with pytest.raises(ValidationError):
            ban_expiry_for(NOW, days)

    def test_longest_allowed_duration(self):
        assert ban_expiry_for(NOW, MAX_BAN_DAYS) == NOW + timedelta(days=MAX_BAN_DAYS)

    @pytest.mark.parametrize("days", [MAX_BAN_DAYS + 1, 10**9])
    def test_overlong_duration(self, days):
        with pytest.raises(ValidationError, match="too long"):
            ban_expiry_for(NOW, days)

    def test_permanent_ban_never_expires(self):
        far_future = NOW + timedelta(days=365 * 100)
        assert ban_has_expired(True, None, far_future) is False

    def test_expiry_is_strictly_after(self):
        expiry = NOW + timedelta(days=1)
        assert ban_has_expired(True, expiry, expiry) is False
        assert ban_has_expired(True, expiry, expiry + timedelta(seconds=1)) is True

    def test_naive_expiry_treated_as_utc(self):
        naive = (NOW - timedelta(hours=1)).replace(tzinfo=None)
        assert ban_has_expired(True, naive, NOW) is True


class TestReviewRules:
    def test_approve_pending(self):
        fields = review_fields(
            Approve(), is_approved=False, is_rejected=False, moderator_id="m", now=NOW
        )
        assert fields["is_approved"] is True
        assert fields["reviewed_by"] == "m"

    def test_reject_needs_reason(self):
        with pytest.raises(ValidationError):
            review_fields(
                Reject("   "), is_approved=False, is_rejected=False, moderator_id="m", now=NOW
            )

    def test_rejected_cannot_be_approved(self):
        with pytest.raises(InvalidState) as exc_info:
            review_fields(
                Approve(), is_approved=False, is_rejected=True, moderator_id="m", now=NOW
            )
        assert exc_info.value.current_status == "rejected"


# ===========================================================================
# Bans against the database
# ===========================================================================
class TestBanMember:
    def test_timed_ban_blocks_authentication(self, engine, members):
        alice = members["alice"]
        banned = moderation_service.ban_member(
            engine, alice.id, reason="Harassment", duration_days=7,
            moderator_id=members["mod"].id, now=NOW,
        )
        assert banned.is_banned is True
        assert banned.banned_by == members["mod"].id

        with pytest.raises(Forbidden) as exc_info:
            member_service.authenticate_member(engine, alice.id, now=NOW + timedelta(days=1))
        assert exc_info.value.details["ban_reason"] == "Harassment"
        assert exc_info.value.details["ban_expiry"].startswith("2026-10-24")

    def test_expired_ban_clears_on_authentication(self, engine, members):
        alice = members["alice"]
        moderation_service.ban_member(
            engine, alice.id, reason="Spam", duration_days=1,
            moderator_id=members["mod"].id, now=NOW,
        )
        member = member_service.authenticate_member(
            engine, alice.id, now=NOW + timedelta(days=2)
        )
        assert member.is_banned is False
        assert member.ban_reason is None
        assert member.ban_expiry is None
        assert member.banned_by is None

    def test_permanent_ban_never_self_clears(self, engine, members):
        alice = members["alice"]
        moderation_service.ban_member(
            engine, alice.id, reason="Fraud", duration_days=None,
            moderator_id=members["mod"].id, now=NOW,
        )
        with pytest.raises(Forbidden):
            member_service.authenticate_member(
                engine, alice.id, now=NOW + timedelta(days=3650)
            )

    def test_cannot_ban_moderator(self, engine, members):
        with pytest.raises(Forbidden):
            moderation_service.ban_member(
                engine, members["mod"].id, reason="x", duration_days=None,
                moderator_id=members["mod"].id,
            )

    def test_unknown_member(self, engine, members):
        with pytest.raises(NotFound):
            moderation_service.ban_member(
                engine, "missing", reason=None, duration_days=None,
                moderator_id=members["mod"].id,
            )

    def test_unban_clears_everything(self, engine, members):
        alice = members["alice"]
        moderation_service.ban_member(
            engine, alice.id, reason="Spam", duration_days=None,
            moderator_id=members["mod"].id,
        )
        member = moderation_service.unban_member(engine, alice.id, moderator_id=members["mod"].id)
        assert member.is_banned is False
        assert member.banned_at is None
        member_service.authenticate_member(engine, alice.id)

    def test_ban_leaves_rating_alone(self, engine, members):
        alice = members["alice"]
        rating_service.apply_rating(engine, alice.id, 4)
        moderation_service.ban_member(
            engine, alice.id, reason="Spam", duration_days=3,
            moderator_id=members["mod"].id,
        )
        member = member_service.get_member(engine, alice.id)
        assert member.rating_count == 1
        assert member.rating_average == 4.0

    def test_ban_and_unban_are_audited(self, engine, members):
        alice, mod = members["alice"], members["mod"]
        moderation_service.ban_member(
            engine, alice.id, reason="Spam", duration_days=3, moderator_id=mod.id, now=NOW
        )
        moderation_service.unban_member(engine, alice.id, moderator_id=mod.id)

        entries = audit_service.recent_audit(engine, actor_id=mod.id)
        assert {e["action_type"] for e in entries} == {"BAN", "UNBAN"}
        ban = next(e for e in entries if e["action_type"] == "BAN")
        assert ban["before"]["is_banned"] is False
        assert ban["after"]["is_banned"] is True
        assert ban["reason"] == "Spam"


# ===========================================================================
# Skill review against the database
# ===========================================================================
class TestReviewSkill:
    def _first_skill_id(self, engine, member):
        return member_service.get_member(engine, member.id).skills_offered[0].id

    def test_new_skills_are_pending(self, engine, members):
        pending = moderation_service.pending_skills(engine)
        names = {m["name"] for m in pending}
        assert {"Alice", "Bob", "Carol"} <= names

    def test_approve(self, engine, members):
        alice, mod = members["alice"], members["mod"]
        entry = moderation_service.review_skill(
            engine, alice.id, self._first_skill_id(engine, alice), Approve(), moderator_id=mod.id
        )
        assert entry.is_approved is True
        assert entry.reviewed_by == mod.id
        assert "Alice" not in {m["name"] for m in moderation_service.pending_skills(engine)}

    def test_reject_then_approve_is_invalid(self, engine, members):
        alice, mod = members["alice"], members["mod"]
        skill_id = self._first_skill_id(engine, alice)
        entry = moderation_service.review_skill(
            engine, alice.id, skill_id, Reject("Not a real skill"), moderator_id=mod.id
        )
        assert entry.is_rejected is True
        assert entry.rejection_reason == "Not a real skill"

        with pytest.raises(InvalidState):
            moderation_service.review_skill(engine, alice.id, skill_id, Approve(), moderator_id=mod.id)

    def test_skill_of_another_member(self, engine, members):
        bob_skill = self._first_skill_id(engine, members["bob"])
        with pytest.raises(NotFound):
            moderation_service.review_skill(
                engine, members["alice"].id, bob_skill, Approve(), moderator_id=members["mod"].id
            )

    def test_rejected_skill_cannot_be_requested(self, engine, members):
        from skillswap.engine.lifecycle import SkillSnapshot
        from skillswap.services import swap_service

        bob, mod = members["bob"], members["mod"]
        moderation_service.review_skill(
            engine, bob.id, self._first_skill_id(engine, bob), Reject("Spam"), moderator_id=mod.id
        )
        with pytest.raises(ValidationError):
            swap_service.create_swap(
                engine,
                requester_id=members["alice"].id,
                provider_id=bob.id,
                skill_offered=SkillSnapshot("Guitar"),
                skill_requested=SkillSnapshot("Photography"),
            )

    def test_review_is_audited(self, engine, members):
        alice, mod = members["alice"], members["mod"]
        moderation_service.review_skill(
            engine, alice.id, self._first_skill_id(engine, alice), Reject("Vague"), moderator_id=mod.id
        )
        with Session(engine) as session:
            log = session.scalars(select(AdminLog)).one()
        assert log.action_type == "REJECT_SKILL"
        assert log.target_table == "offered_skills"
        assert log.after_snapshot["is_rejected"] is True
