"""
tests/test_member_service.py — Registration, Profiles & Statistics
===================================================================
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import make_member
from skillswap.config import SkillSwapConfig
from skillswap.constants import SkillLevel
from skillswap.datetime_utils import utc_now
from skillswap.engine.lifecycle import SkillSnapshot
from skillswap.engine.moderation import Reject
from skillswap.errors import NotFound, ValidationError
from skillswap.services import member_service, moderation_service, stats_service, swap_service


@pytest.fixture
def engine(db_engine):
    return db_engine


class TestRegister:
    def test_new_member_defaults(self, engine):
        member = member_service.register_member(
            engine,
            name="  Ada ",
            email="Ada@Example.com",
            skills_offered=[{"skill": "Math", "level": "Expert"}],
            skills_wanted=[{"skill": "Poetry"}],
        )
        assert member.name == "Ada"
        assert member.email == "ada@example.com"
        assert member.role == "member"
        assert member.rating_average == 0.0
        assert member.rating_count == 0
        assert member.completed_swaps == 0
        assert member.is_banned is False
        assert member.skills_offered[0].level == "Expert"
        assert member.skills_offered[0].is_pending
        assert member.skills_wanted[0].level == SkillLevel.BEGINNER.value

    def test_default_levels_come_from_config(self, engine):
        cfg = SkillSwapConfig(default_offered_level=SkillLevel.ADVANCED)
        member = member_service.register_member(
            engine, name="Ada", email="ada@example.com",
            skills_offered=[{"skill": "Math"}], config=cfg,
        )
        assert member.skills_offered[0].level == "Advanced"

    def test_duplicate_email_case_insensitive(self, engine):
        make_member(engine, "Ada")
        with pytest.raises(ValidationError, match="already exists"):
            member_service.register_member(engine, name="Other", email="ADA@example.com")

    @pytest.mark.parametrize("email", ["", "not-an-email", "a@b"])
    def test_bad_email(self, engine, email):
        with pytest.raises(ValidationError):
            member_service.register_member(engine, name="Ada", email=email)

    def test_blank_name(self, engine):
        with pytest.raises(ValidationError):
            member_service.register_member(engine, name="  ", email="ada@example.com")

    def test_unknown_level(self, engine):
        with pytest.raises(ValidationError):
            member_service.register_member(
                engine, name="Ada", email="ada@example.com",
                skills_offered=[{"skill": "Math", "level": "Godlike"}],
            )


class TestUpdateProfile:
    def test_partial_update(self, engine, members):
        alice = members["alice"]
        updated = member_service.update_profile(
            engine, alice.id, location="Lisbon",
            availability={"weekends": True, "evenings": True}, is_public=False,
        )
        assert updated.location == "Lisbon"
        assert updated.name == "Alice"
        assert updated.available_weekends is True
        assert updated.available_weekdays is False
        assert updated.is_public is False
        assert [s.skill for s in updated.skills_offered] == ["Guitar"]

    def test_unknown_availability_slot(self, engine, members):
        with pytest.raises(ValidationError):
            member_service.update_profile(engine, members["alice"].id, availability={"midnight": True})

    def test_unchanged_entry_keeps_review_state(self, engine, members):
        alice, mod = members["alice"], members["mod"]
        guitar = alice.skills_offered[0]
        moderation_service.review_skill(
            engine, alice.id, guitar.id, Reject("Too vague"), moderator_id=mod.id
        )

        updated = member_service.update_profile(
            engine, alice.id,
            skills_offered=[
                {"skill": "guitar", "level": "Intermediate"},
                {"skill": "Piano"},
            ],
        )
        kept, added = updated.skills_offered
        assert kept.id == guitar.id
        assert kept.is_rejected is True
        assert added.skill == "Piano"
        assert added.is_pending

    def test_edited_entry_starts_pending(self, engine, members):
        alice, mod = members["alice"], members["mod"]
        guitar = alice.skills_offered[0]
        moderation_service.review_skill(
            engine, alice.id, guitar.id, Reject("Too vague"), moderator_id=mod.id
        )
        updated = member_service.update_profile(
            engine, alice.id,
            skills_offered=[{"skill": "Guitar", "description": "Fingerstyle and chords"}],
        )
        assert updated.skills_offered[0].is_pending

    def test_missing_member(self, engine):
        with pytest.raises(NotFound):
            member_service.update_profile(engine, "missing", name="X")


class TestAuthenticate:
    def test_stamps_last_active(self, engine, members):
        before = utc_now() - timedelta(seconds=1)
        member = member_service.authenticate_member(engine, members["alice"].id)
        assert member.last_active.replace(tzinfo=before.tzinfo) >= before

    def test_unknown_member(self, engine):
        with pytest.raises(NotFound):
            member_service.authenticate_member(engine, "missing")


class TestStats:
    def test_member_stats(self, engine, members):
        alice, bob = members["alice"], members["bob"]
        swap = swap_service.create_swap(
            engine, requester_id=alice.id, provider_id=bob.id,
            skill_offered=SkillSnapshot("Guitar"), skill_requested=SkillSnapshot("Photography"),
        )
        swap_service.accept_swap(engine, swap.id, actor_id=bob.id)
        swap_service.complete_swap(engine, swap.id, actor_id=bob.id)
        swap_service.create_swap(
            engine, requester_id=alice.id, provider_id=members["carol"].id,
            skill_offered=SkillSnapshot("Guitar"), skill_requested=SkillSnapshot("Cooking"),
        )

        stats = stats_service.member_stats(engine, alice.id)
        assert stats["completed_swaps"] == 1
        assert stats["skills_offered"] == 1
        assert stats["skills_wanted"] == 1
        assert stats["swaps_by_status"] == {"completed": 1, "pending": 1}
        assert stats["rating"] == {"average": 0.0, "count": 0}

    def test_dashboard_stats(self, engine, members):
        alice, bob, mod = members["alice"], members["bob"], members["mod"]
        swap_service.create_swap(
            engine, requester_id=alice.id, provider_id=bob.id,
            skill_offered=SkillSnapshot("Guitar"), skill_requested=SkillSnapshot("Photography"),
        )
        moderation_service.ban_member(
            engine, members["carol"].id, reason="Spam", duration_days=None, moderator_id=mod.id
        )

        stats = stats_service.dashboard_stats(engine)
        assert stats["members"]["total"] == 4
        assert stats["members"]["active"] == 4
        assert stats["members"]["banned"] == 1
        assert stats["swaps"]["total"] == 1
        assert stats["swaps"]["pending"] == 1
        assert stats["swaps"]["completed"] == 0

    def test_recent_window(self, engine, members):
        far_future = utc_now() + timedelta(days=365)
        stats = stats_service.dashboard_stats(engine, now=far_future)
        assert stats["members"]["recent"] == 0
        assert stats["swaps"]["recent"] == 0

