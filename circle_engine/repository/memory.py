"""
In-process repository.

Keeps every entity in dictionaries. Models are copied on the way in and on
the way out so callers can never mutate stored state by accident.
"""

from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

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
from circle_engine.repository.base import Repository


def _copy(model):
    return model.model_copy(deep=True) if model is not None else None


class InMemoryRepository(Repository):
    """Dictionary-backed repository for tests and single-process use."""

    def __init__(self):
        self._circles: Dict[str, Circle] = {}
        self._memberships: Dict[Tuple[str, str], Membership] = {}
        self._messages: Dict[str, Message] = {}
        self._prompts: Dict[str, Prompt] = {}
        self._goals: Dict[str, Goal] = {}
        self._check_ins: Dict[Tuple[str, str, date], CheckIn] = {}
        self._preferences: Dict[str, MatchPreference] = {}

    # Circles and memberships

    async def get_circle(self, circle_id: str) -> Optional[Circle]:
        return _copy(self._circles.get(circle_id))

    async def list_circles(self) -> List[Circle]:
        return [_copy(circle) for circle in self._circles.values()]

    async def save_circle(self, circle: Circle) -> None:
        self._circles[circle.id] = _copy(circle)

    async def get_membership(self, circle_id: str, user_id: str) -> Optional[Membership]:
        return _copy(self._memberships.get((user_id, circle_id)))

    async def save_membership(self, membership: Membership) -> None:
        self._memberships[(membership.userId, membership.circleId)] = _copy(membership)

    async def list_memberships(
        self,
        circle_id: Optional[str] = None,
        user_id: Optional[str] = None,
        active_only: bool = True,
    ) -> List[Membership]:
        return [
            _copy(m)
            for m in self._memberships.values()
            if (circle_id is None or m.circleId == circle_id)
            and (user_id is None or m.userId == user_id)
            and (m.isActive or not active_only)
        ]

    # Messages and prompts

    async def save_message(self, message: Message) -> None:
        self._messages[message.id] = _copy(message)

    async def get_message(self, message_id: str) -> Optional[Message]:
        return _copy(self._messages.get(message_id))

    async def get_messages_since(
        self,
        circle_id: str,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Message]:
        messages = sorted(
            (
                m for m in self._messages.values()
                if m.circleId == circle_id and (since is None or m.sentAt > since)
            ),
            key=lambda m: (m.sentAt, m.sequence),
        )
        if limit is not None:
            messages = messages[-limit:] if limit > 0 else []
        return [_copy(m) for m in messages]

    async def get_prompt_for_day(self, circle_id: str, day: date) -> Optional[Prompt]:
        for prompt in self._prompts.values():
            if prompt.circleId == circle_id and prompt.scheduledFor == day:
                return _copy(prompt)
        return None

    async def save_prompt(self, prompt: Prompt) -> None:
        self._prompts[prompt.id] = _copy(prompt)

    # Goals and check-ins

    async def get_goal(self, goal_id: str) -> Optional[Goal]:
        return _copy(self._goals.get(goal_id))

    async def save_goal(self, goal: Goal) -> None:
        self._goals[goal.id] = _copy(goal)

    async def list_goals(
        self,
        circle_id: Optional[str] = None,
        owner_user_id: Optional[str] = None,
    ) -> List[Goal]:
        return [
            _copy(g)
            for g in self._goals.values()
            if (circle_id is None or g.circleId == circle_id)
            and (owner_user_id is None or g.ownerUserId == owner_user_id)
        ]

    async def update_goal_progress(
        self, goal_id: str, progress: int, status: GoalStatus
    ) -> None:
        goal = self._goals.get(goal_id)
        if goal is not None:
            self._goals[goal_id] = goal.model_copy(update={"progress": progress, "status": status})

    async def get_check_in(self, goal_id: str, user_id: str, day: date) -> Optional[CheckIn]:
        return _copy(self._check_ins.get((goal_id, user_id, day)))

    async def save_check_in(self, check_in: CheckIn) -> None:
        self._check_ins[(check_in.goalId, check_in.userId, check_in.date)] = _copy(check_in)

    async def list_check_ins(
        self,
        goal_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[CheckIn]:
        check_ins = [
            c for c in self._check_ins.values()
            if (goal_id is None or c.goalId == goal_id)
            and (user_id is None or c.userId == user_id)
        ]
        return [_copy(c) for c in sorted(check_ins, key=lambda c: c.date)]

    # Matching preferences

    async def get_match_preference(self, user_id: str) -> Optional[MatchPreference]:
        return _copy(self._preferences.get(user_id))

    async def save_match_preference(self, user_id: str, preference: MatchPreference) -> None:
        self._preferences[user_id] = _copy(preference)
