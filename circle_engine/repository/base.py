"""
Abstract repository interface.

Defines the storage contract the circle engine relies on. Any document or row
store can back the engine by implementing these coroutines with "last write
wins" semantics; no transactions are required.

The backend is chosen from settings by
``circle_engine.dependencies.build_repository``.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import List, Optional

from circle_engine.models import (
    CheckIn,
    Circle,
    Goal,
    GoalStatus,
    MatchPreference,
    Membership,
    Message,
    Prompt,
)


class Repository(ABC):
    """Storage collaborator for circles, memberships, messages and goals."""

    # ─────────────────────────────────────────────────────────────
    # Circles and memberships
    # ─────────────────────────────────────────────────────────────

    @abstractmethod
    async def get_circle(self, circle_id: str) -> Optional[Circle]:
        pass

    @abstractmethod
    async def list_circles(self) -> List[Circle]:
        pass

    @abstractmethod
    async def save_circle(self, circle: Circle) -> None:
        pass

    @abstractmethod
    async def get_membership(self, circle_id: str, user_id: str) -> Optional[Membership]:
        pass

    @abstractmethod
    async def save_membership(self, membership: Membership) -> None:
        """Insert or replace the membership for (userId, circleId)."""
        pass

    @abstractmethod
    async def list_memberships(
        self,
        circle_id: Optional[str] = None,
        user_id: Optional[str] = None,
        active_only: bool = True,
    ) -> List[Membership]:
        pass

    # ─────────────────────────────────────────────────────────────
    # Messages and prompts
    # ─────────────────────────────────────────────────────────────

    @abstractmethod
    async def save_message(self, message: Message) -> None:
        """Insert or replace a message by id."""
        pass

    @abstractmethod
    async def get_message(self, message_id: str) -> Optional[Message]:
        pass

    @abstractmethod
    async def get_messages_since(
        self,
        circle_id: str,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Message]:
        """
        Messages of a circle sent strictly after ``since``.

        Returns:
            Oldest first, ordered by (sentAt, sequence). With ``limit``,
            only the most recent ``limit`` messages.
        """
        pass

    @abstractmethod
    async def get_prompt_for_day(self, circle_id: str, day: date) -> Optional[Prompt]:
        pass

    @abstractmethod
    async def save_prompt(self, prompt: Prompt) -> None:
        pass

    # ─────────────────────────────────────────────────────────────
    # Goals and check-ins
    # ─────────────────────────────────────────────────────────────

    @abstractmethod
    async def get_goal(self, goal_id: str) -> Optional[Goal]:
        pass

    @abstractmethod
    async def save_goal(self, goal: Goal) -> None:
        pass

    @abstractmethod
    async def list_goals(
        self,
        circle_id: Optional[str] = None,
        owner_user_id: Optional[str] = None,
    ) -> List[Goal]:
        pass

    @abstractmethod
    async def update_goal_progress(
        self, goal_id: str, progress: int, status: GoalStatus
    ) -> None:
        pass

    @abstractmethod
    async def get_check_in(self, goal_id: str, user_id: str, day: date) -> Optional[CheckIn]:
        pass

    @abstractmethod
    async def save_check_in(self, check_in: CheckIn) -> None:
        """Upsert keyed on (goalId, userId, date)."""
        pass

    @abstractmethod
    async def list_check_ins(
        self,
        goal_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[CheckIn]:
        """Check-ins ordered by date, oldest first."""
        pass

    # ─────────────────────────────────────────────────────────────
    # Matching preferences
    # ─────────────────────────────────────────────────────────────

    @abstractmethod
    async def get_match_preference(self, user_id: str) -> Optional[MatchPreference]:
        pass

    @abstractmethod
    async def save_match_preference(self, user_id: str, preference: MatchPreference) -> None:
        pass
