"""Unit tests for MembershipService (circle lifecycle, joins, recommendations)."""

import pytest

from circle_engine.models import MatchPreference, MembershipRole, PrivacyLevel
from common.utils.exceptions import (
    CapacityExceededException,
    InvalidArgumentException,
    NotMemberException,
)


@pytest.fixture
def memberships(engine):
    return engine.memberships


# ─────────────────────────────────────────────────────────────────
# create_circle
# ─────────────────────────────────────────────────────────────────


class TestCreateCircle:
    @pytest.mark.asyncio
    async def test_creator_becomes_admin_member(self, memberships, repository, alice):
        circle = await memberships.create_circle(alice, "  Evening Wind-down ", 6, tags=["sleep", "sleep"])

        assert circle.name == "Evening Wind-down"
        assert circle.currentMembers == 1
        assert circle.tags == ["sleep"]

        membership = await repository.get_membership(circle.id, alice.id)
        assert membership.role == MembershipRole.ADMIN
        assert membership.isActive is True

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, memberships, alice):
        with pytest.raises(InvalidArgumentException) as exc_info:
            await memberships.create_circle(alice, "   ", 6)
        assert exc_info.value.code == "EMPTY_CIRCLE_NAME"

    @pytest.mark.asyncio
    async def test_zero_capacity_rejected(self, memberships, alice):
        with pytest.raises(InvalidArgumentException) as exc_info:
            await memberships.create_circle(alice, "Tiny", 0)
        assert exc_info.value.code == "INVALID_CAPACITY"


# ─────────────────────────────────────────────────────────────────
# join_circle / leave_circle
# ─────────────────────────────────────────────────────────────────


class TestJoinCircle:
    @pytest.mark.asyncio
    async def test_join_adds_member_and_posts_welcome(
        self, memberships, repository, events, circle, carol,
    ):
        membership = await memberships.join_circle(circle.id, carol)

        assert membership.isActive is True
        assert membership.role == MembershipRole.MEMBER
        assert (await repository.get_circle(circle.id)).currentMembers == 3

        welcomes = [p for topic, p in events if topic == "message"]
        assert len(welcomes) == 1
        assert welcomes[0]["isAutomated"] is True
        assert welcomes[0]["content"].startswith("Welcome to our Support Circle, Carol!")

    @pytest.mark.asyncio
    async def test_joining_again_is_noop(self, memberships, repository, events, circle, alice):
        await memberships.join_circle(circle.id, alice)

        assert (await repository.get_circle(circle.id)).currentMembers == 2
        assert events == []

    @pytest.mark.asyncio
    async def test_full_circle_rejected(self, memberships, repository, make_circle, alice, bob, carol):
        full = await make_circle("circle_full", members=[alice.id, bob.id], max_members=2)

        with pytest.raises(CapacityExceededException) as exc_info:
            await memberships.join_circle(full.id, carol)

        assert exc_info.value.code == "CIRCLE_FULL"
        assert exc_info.value.status_code == 409
        assert await repository.get_membership(full.id, carol.id) is None
        assert (await repository.get_circle(full.id)).currentMembers == 2

    @pytest.mark.asyncio
    async def test_unknown_circle_rejected(self, memberships, carol):
        with pytest.raises(InvalidArgumentException) as exc_info:
            await memberships.join_circle("circle_missing", carol)
        assert exc_info.value.code == "CIRCLE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_no_welcome_without_facilitator(self, memberships, events, make_circle, alice, carol):
        quiet = await make_circle("circle_quiet", members=[alice.id], ai_enabled=False)

        await memberships.join_circle(quiet.id, carol)

        assert [t for t, _ in events if t == "message"] == []


class TestLeaveCircle:
    @pytest.mark.asyncio
    async def test_leave_deactivates_and_frees_a_seat(self, engine, memberships, repository, circle, bob):
        engine.presence.set_online(circle.id, bob.id, True)

        membership = await memberships.leave_circle(circle.id, bob.id)

        assert membership.isActive is False
        assert (await repository.get_circle(circle.id)).currentMembers == 1
        assert [m.userId for m in await memberships.list_members(circle.id)] == ["user_alice"]
        assert engine.presence.list_online(circle.id) == []

    @pytest.mark.asyncio
    async def test_rejoin_reactivates_original_membership(
        self, memberships, repository, circle, bob, clock,
    ):
        original = await repository.get_membership(circle.id, bob.id)
        await memberships.leave_circle(circle.id, bob.id)
        clock.advance(days=2)

        rejoined = await memberships.join_circle(circle.id, bob)

        assert rejoined.isActive is True
        assert rejoined.joinedAt == original.joinedAt
        assert rejoined.lastActiveAt == clock.now()
        assert (await repository.get_circle(circle.id)).currentMembers == 2

    @pytest.mark.asyncio
    async def test_last_member_leaving_clears_circle_state(
        self, engine, memberships, repository, circle, alice, bob,
    ):
        await engine.pipeline.send(circle.id, alice, "@facilitator hello")
        engine.presence.set_online(circle.id, alice.id, True)
        engine.presence.set_typing(circle.id, alice.id, True)
        assert engine.facilitator.pending_count() == 1

        await memberships.leave_circle(circle.id, bob.id)
        await memberships.leave_circle(circle.id, alice.id)

        assert (await repository.get_circle(circle.id)).currentMembers == 0
        assert engine.presence.list_online(circle.id) == []
        assert engine.presence.list_typing(circle.id) == []
        assert engine.facilitator.pending_count() == 0

    @pytest.mark.asyncio
    async def test_leaving_with_members_left_keeps_pending_replies(
        self, engine, memberships, circle, alice, bob,
    ):
        await engine.pipeline.send(circle.id, alice, "@facilitator hello")

        await memberships.leave_circle(circle.id, bob.id)

        assert engine.facilitator.pending_count() == 1

    @pytest.mark.asyncio
    async def test_non_member_cannot_leave(self, memberships, circle, carol):
        with pytest.raises(NotMemberException):
            await memberships.leave_circle(circle.id, carol.id)


# ─────────────────────────────────────────────────────────────────
# Preferences and recommendations
# ─────────────────────────────────────────────────────────────────


class TestRecommendations:
    @pytest.mark.asyncio
    async def test_default_preferences(self, memberships, alice):
        assert await memberships.get_preferences(alice.id) == MatchPreference()

    @pytest.mark.asyncio
    async def test_preferences_round_trip(self, memberships, alice):
        prefs = MatchPreference(interests=["sleep"], privacyLevel=PrivacyLevel.PRIVATE)

        await memberships.update_preferences(alice.id, prefs)

        assert await memberships.get_preferences(alice.id) == prefs

    @pytest.mark.asyncio
    async def test_recommendations_skip_own_and_full_circles(
        self, memberships, make_circle, circle, alice, bob, carol,
    ):
        await make_circle("circle_sleep", members=[bob.id], tags=["sleep"])
        await make_circle("circle_focus", members=[bob.id], tags=["focus"])
        await make_circle("circle_packed", members=[bob.id, carol.id], tags=["sleep"], max_members=2)
        await memberships.update_preferences(alice.id, MatchPreference(interests=["sleep"]))

        matches = await memberships.recommend_circles(alice.id)

        assert [m.circle.id for m in matches] == ["circle_sleep", "circle_focus"]

    @pytest.mark.asyncio
    async def test_list_user_circles(self, memberships, make_circle, circle, alice, bob):
        await make_circle("circle_other", members=[bob.id])

        circles = await memberships.list_user_circles(alice.id)

        assert [c.id for c in circles] == [circle.id]
