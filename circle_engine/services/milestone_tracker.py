"""
Goal check-ins and milestone detection.

Goal progress is never set directly: it is recomputed from the check-in
history after every check-in. Celebrations are crossing-triggered, so a goal
that stays above a threshold while being recomputed is celebrated once.
"""

import asyncio
import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Dict, Iterable, Optional, Union

from circle_engine.events import EventBus, Topic
from circle_engine.models import CheckIn, Goal, GoalStatus, Message, new_id
from circle_engine.repository import Repository
from circle_engine.scheduler import Clock
from circle_engine.services.facilitator_responder import FacilitatorResponder
from circle_engine.services.guards import ensure_active_member, require_goal
from common.utils.exceptions import InvalidArgumentException

if TYPE_CHECKING:
    from circle_engine.pipelines.message_pipeline import MessagePipeline

logger = logging.getLogger(__name__)

MILESTONES = (25, 50, 75, 100)
DEFAULT_MEMBER_NAME = "Circle Member"

DateInput = Union[date, datetime, str, None]


@dataclass
class CheckInResult:
    """Outcome of a single check-in."""
    checkIn: Optional[CheckIn]
    goal: Goal
    previousProgress: int
    progress: int
    milestone: Optional[int] = None
    celebration: Optional[Message] = None


# ─────────────────────────────────────────────────────────────────
# Pure progress functions
# ─────────────────────────────────────────────────────────────────


def planned_days(goal: Goal) -> int:
    """Whole days between goal creation and target date, never less than 1."""
    target = datetime.combine(goal.targetDate, time.min, tzinfo=goal.createdAt.tzinfo)
    days = math.ceil((target - goal.createdAt) / timedelta(days=1))
    return max(1, days)


def compute_progress(goal: Goal, check_ins: Iterable[CheckIn]) -> int:
    completed_days = len({c.date for c in check_ins if c.isCompleted})
    percent = 100 * completed_days / planned_days(goal)
    # Half-up rounding, not banker's rounding
    return min(100, max(0, int(math.floor(percent + 0.5))))


def highest_crossed_milestone(previous: int, current: int) -> Optional[int]:
    crossed = [m for m in MILESTONES if previous < m <= current]
    return crossed[-1] if crossed else None


def parse_check_in_date(value: DateInput, today: date) -> date:
    if value is None:
        return today
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidArgumentException(
        message=f"Invalid check-in date: {value!r}",
        code="INVALID_DATE",
    )


class MilestoneTracker:
    """Records check-ins, recomputes goal progress and celebrates milestones."""

    def __init__(
        self,
        repository: Repository,
        event_bus: EventBus,
        pipeline: "MessagePipeline",
        facilitator: FacilitatorResponder,
        clock: Clock,
    ):
        self._repository = repository
        self._bus = event_bus
        self._pipeline = pipeline
        self._facilitator = facilitator
        self._clock = clock
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def record_check_in(
        self,
        goal_id: str,
        user_id: str,
        is_completed: bool,
        notes: Optional[str] = None,
        date: DateInput = None,
        display_name: Optional[str] = None,
    ) -> CheckInResult:
        """
        Upsert the check-in for (goal, user, date) and recompute progress.

        A second check-in on the same date overwrites the first. If the new
        progress crosses one or more milestones, only the highest one is
        celebrated.

        Raises:
            InvalidArgumentException: Unknown goal or malformed date
            NotMemberException: User has no active membership in the goal's circle
        """
        day = parse_check_in_date(date, self._clock.today())
        goal = await require_goal(self._repository, goal_id)
        await ensure_active_member(self._repository, goal.circleId, user_id)

        async with self._locks[goal_id]:
            check_in = await self._upsert_check_in(goal_id, user_id, day, is_completed, notes)

            self._bus.publish(Topic.CHECK_IN, {
                "goalId": goal_id,
                "userId": user_id,
                "circleId": goal.circleId,
                "date": day.isoformat(),
                "isCompleted": is_completed,
                "notes": notes,
            })

            result = await self._recompute(goal_id, display_name or DEFAULT_MEMBER_NAME)
            result.checkIn = check_in
            return result

    async def recompute_progress(self, goal_id: str) -> CheckInResult:
        """Recompute progress without a new check-in, e.g. after a target date change."""
        await require_goal(self._repository, goal_id)
        async with self._locks[goal_id]:
            return await self._recompute(goal_id, DEFAULT_MEMBER_NAME)

    async def _upsert_check_in(
        self,
        goal_id: str,
        user_id: str,
        day: date,
        is_completed: bool,
        notes: Optional[str],
    ) -> CheckIn:
        now = self._clock.now()
        existing = await self._repository.get_check_in(goal_id, user_id, day)

        if existing is not None:
            check_in = existing.model_copy(
                update={"isCompleted": is_completed, "notes": notes, "updatedAt": now}
            )
        else:
            check_in = CheckIn(
                id=new_id("checkin"),
                goalId=goal_id,
                userId=user_id,
                date=day,
                isCompleted=is_completed,
                notes=notes,
                createdAt=now,
                updatedAt=now,
            )

        await self._repository.save_check_in(check_in)
        return check_in

    async def _recompute(self, goal_id: str, display_name: str) -> CheckInResult:
        goal = await require_goal(self._repository, goal_id)
        check_ins = await self._repository.list_check_ins(goal_id=goal_id)

        previous = goal.progress
        progress = compute_progress(goal, check_ins)
        status = GoalStatus.COMPLETED if progress >= 100 else GoalStatus.IN_PROGRESS
        milestone = highest_crossed_milestone(previous, progress)

        if progress != previous or status != goal.status:
            await self._repository.update_goal_progress(goal_id, progress, status)
        goal = goal.model_copy(update={"progress": progress, "status": status})

        self._bus.publish(Topic.GOAL_UPDATE, {
            "goalId": goal_id,
            "circleId": goal.circleId,
            "previousProgress": previous,
            "progress": progress,
            "status": status.value,
            "milestone": milestone,
        })

        celebration = None
        if milestone is not None:
            logger.info(f"Goal {goal_id} reached {milestone}% milestone")
            celebration = await self._pipeline.send_automated(
                goal.circleId,
                self._facilitator.compose_milestone_celebration(display_name, milestone),
            )

        # The caller fills in the check-in it just wrote
        return CheckInResult(
            checkIn=check_ins[-1] if check_ins else None,
            goal=goal,
            previousProgress=previous,
            progress=progress,
            milestone=milestone,
            celebration=celebration,
        )
