"""
Circle membership management service.

Handles circle creation, joining and leaving, matching preferences and
circle recommendations.
"""

import asyncio
import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Dict, List, Optional

from circle_engine.models import (
    Circle,
    CurrentUser,
    MatchPreference,
    Membership,
    MembershipRole,
    new_id,
)
from circle_engine.repository import Repository
from circle_engine.scheduler import Clock
from circle_engine.services.facilitator_responder import FacilitatorResponder
from circle_engine.services.guards import ensure_active_member, require_circle
from circle_engine.services.matching_engine import CircleMatch, MatchingEngine
from circle_engine.services.presence_tracker import PresenceTracker
from common.utils.exceptions import CapacityExceededException, InvalidArgumentException

if TYPE_CHECKING:
    from circle_engine.pipelines.message_pipeline import MessagePipeline

logger = logging.getLogger(__name__)


class MembershipService:
    """
    Handles circle creation, membership lifecycle and recommendations.
    """

    def __init__(
        self,
        repository: Repository,
        pipeline: "MessagePipeline",
        presence: PresenceTracker,
        facilitator: FacilitatorResponder,
        matching: MatchingEngine,
        clock: Clock,
    ):
        """
        Initialize MembershipService.

        Args:
            repository: Storage collaborator
            pipeline: Used to post facilitator welcome messages
            presence: Presence state to clean up on leave
            facilitator: Source of welcome texts
            matching: Scoring engine for recommendations
            clock: Time source
        """
        self._repository = repository
        self._pipeline = pipeline
        self._presence = presence
        self._facilitator = facilitator
        self._matching = matching
        self._clock = clock
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def create_circle(
        self,
        creator: CurrentUser,
        name: str,
        max_members: int,
        tags: Optional[List[str]] = None,
        is_public: bool = True,
        ai_enabled: bool = True,
    ) -> Circle:
        """
        Create a new circle with the creator as its first (admin) member.

        Raises:
            InvalidArgumentException: Blank name or max_members below 1
        """
        name = name.strip() if name else ""
        if not name:
            raise InvalidArgumentException(
                message="Circle name cannot be empty",
                code="EMPTY_CIRCLE_NAME",
            )
        if max_members < 1:
            raise InvalidArgumentException(
                message="A circle needs room for at least one member",
                code="INVALID_CAPACITY",
            )

        now = self._clock.now()
        circle = Circle(
            id=new_id("circle"),
            name=name,
            tags=tags or [],
            maxMembers=max_members,
            currentMembers=1,
            isPublic=is_public,
            aiEnabled=ai_enabled,
            createdAt=now,
        )
        await self._repository.save_circle(circle)
        await self._repository.save_membership(Membership(
            userId=creator.id,
            circleId=circle.id,
            role=MembershipRole.ADMIN,
            joinedAt=now,
            lastActiveAt=now,
        ))

        logger.info(f"Circle created: {circle.id} by user {creator.id}")
        return circle

    async def join_circle(self, circle_id: str, user: CurrentUser) -> Membership:
        """
        Join a circle, reactivating an earlier membership if one exists.

        Joining a circle the user is already active in is a no-op.

        Raises:
            InvalidArgumentException: Unknown circle
            CapacityExceededException: Circle is full
        """
        async with self._locks[circle_id]:
            circle = await require_circle(self._repository, circle_id)
            membership = await self._repository.get_membership(circle_id, user.id)

            if membership is not None and membership.isActive:
                return membership

            if circle.is_full:
                raise CapacityExceededException(
                    details={"circleId": circle_id, "maxMembers": circle.maxMembers},
                )

            now = self._clock.now()
            if membership is not None:
                membership.isActive = True
                membership.lastActiveAt = now
            else:
                membership = Membership(
                    userId=user.id,
                    circleId=circle_id,
                    joinedAt=now,
                    lastActiveAt=now,
                )

            circle.currentMembers += 1
            await self._repository.save_membership(membership)
            await self._repository.save_circle(circle)

        logger.info(f"User {user.id} joined circle {circle_id}")

        if circle.aiEnabled:
            await self._pipeline.send_automated(
                circle_id,
                self._facilitator.compose_welcome(user.displayName or "friend", circle_id),
            )

        return membership

    async def leave_circle(self, circle_id: str, user_id: str) -> Membership:
        """
        Deactivate a membership. Memberships are never deleted.

        Raises:
            InvalidArgumentException: Unknown circle
            NotMemberException: User has no active membership
        """
        async with self._locks[circle_id]:
            circle = await require_circle(self._repository, circle_id)
            membership = await ensure_active_member(self._repository, circle_id, user_id)

            membership.isActive = False
            circle.currentMembers = max(0, circle.currentMembers - 1)
            await self._repository.save_membership(membership)
            await self._repository.save_circle(circle)

        self._presence.forget_user(circle_id, user_id)
        logger.info(f"User {user_id} left circle {circle_id}")

        if circle.currentMembers == 0:
            self._presence.clear_circle(circle_id)
            cancelled = self._pipeline.cancel_pending_replies(circle_id)
            logger.info(f"Circle {circle_id} is empty, cleared state and {cancelled} pending reply(ies)")
        return membership

    async def list_members(self, circle_id: str) -> List[Membership]:
        await require_circle(self._repository, circle_id)
        return await self._repository.list_memberships(circle_id=circle_id)

    async def list_user_circles(self, user_id: str) -> List[Circle]:
        memberships = await self._repository.list_memberships(user_id=user_id)
        circles = []
        for membership in memberships:
            circle = await self._repository.get_circle(membership.circleId)
            if circle is not None:
                circles.append(circle)
        return circles

    # ─────────────────────────────────────────────────────────────
    # Preferences and recommendations
    # ─────────────────────────────────────────────────────────────

    async def update_preferences(
        self, user_id: str, preferences: MatchPreference
    ) -> MatchPreference:
        await self._repository.save_match_preference(user_id, preferences)
        logger.info(f"Match preferences updated for user {user_id}")
        return preferences

    async def get_preferences(self, user_id: str) -> MatchPreference:
        stored = await self._repository.get_match_preference(user_id)
        return stored or MatchPreference()

    async def recommend_circles(
        self,
        user_id: str,
        preferences: Optional[MatchPreference] = None,
        limit: int = 3,
    ) -> List[CircleMatch]:
        """Best matching circles the user is not already part of."""
        if preferences is None:
            preferences = await self.get_preferences(user_id)

        circles = await self._repository.list_circles()
        memberships = await self._repository.list_memberships(user_id=user_id)

        return self._matching.rank(
            preferences,
            circles,
            limit=limit,
            member_circle_ids=[m.circleId for m in memberships],
        )
