"""
Circle and member statistics.

Read-only aggregates over goals, check-ins and messages.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List

from circle_engine.models import CheckIn, Goal, GoalStatus
from circle_engine.repository import Repository
from circle_engine.scheduler import Clock
from circle_engine.services.guards import require_circle

logger = logging.getLogger(__name__)

MAX_STREAK_DAYS = 30


def _completion_rate(check_ins: List[CheckIn]) -> float:
    if not check_ins:
        return 0.0
    return sum(1 for c in check_ins if c.isCompleted) / len(check_ins)


def _average_progress(goals: List[Goal]) -> float:
    if not goals:
        return 0.0
    return sum(g.progress for g in goals) / len(goals)


class CircleStatsService:
    """Computes circle-level and user-level progress statistics."""

    def __init__(self, repository: Repository, clock: Clock):
        self._repository = repository
        self._clock = clock

    async def circle_stats(self, circle_id: str) -> Dict[str, Any]:
        await require_circle(self._repository, circle_id)

        goals = await self._repository.list_goals(circle_id=circle_id)
        check_ins: List[CheckIn] = []
        for goal in goals:
            check_ins.extend(await self._repository.list_check_ins(goal_id=goal.id))

        messages = await self._repository.get_messages_since(circle_id)
        automated = sum(1 for m in messages if m.isAutomated)

        return {
            "totalGoals": len(goals),
            "completedGoals": sum(1 for g in goals if g.status == GoalStatus.COMPLETED),
            "checkInCompletionRate": _completion_rate(check_ins),
            "totalMessages": len(messages),
            "automatedMessages": automated,
            "memberMessages": len(messages) - automated,
            "averageProgress": _average_progress(goals),
        }

    async def user_stats(self, user_id: str) -> Dict[str, Any]:
        goals = await self._repository.list_goals(owner_user_id=user_id)
        check_ins = await self._repository.list_check_ins(user_id=user_id)

        return {
            "totalGoals": len(goals),
            "completedGoals": sum(1 for g in goals if g.status == GoalStatus.COMPLETED),
            "inProgressGoals": sum(1 for g in goals if g.status == GoalStatus.IN_PROGRESS),
            "checkInCompletionRate": _completion_rate(check_ins),
            "currentStreak": self.current_streak(check_ins),
            "averageProgress": _average_progress(goals),
        }

    def current_streak(self, check_ins: List[CheckIn]) -> int:
        """Consecutive days, ending today, with at least one completed check-in."""
        completed_days = {c.date for c in check_ins if c.isCompleted}
        day = self._clock.today()
        streak = 0

        while streak < MAX_STREAK_DAYS and day in completed_days:
            streak += 1
            day -= timedelta(days=1)

        return streak
