"""
Lookup-or-raise helpers shared by the pipeline and services.

Every check here runs before any state mutation so that a rejected call
leaves no trace.
"""

from circle_engine.models import Circle, Goal, Membership
from circle_engine.repository import Repository
from common.utils.exceptions import InvalidArgumentException, NotMemberException


async def require_circle(repository: Repository, circle_id: str) -> Circle:
    circle = await repository.get_circle(circle_id) if circle_id else None
    if circle is None:
        raise InvalidArgumentException(
            message=f"Unknown circle: {circle_id}",
            code="CIRCLE_NOT_FOUND",
        )
    return circle


async def require_goal(repository: Repository, goal_id: str) -> Goal:
    goal = await repository.get_goal(goal_id) if goal_id else None
    if goal is None:
        raise InvalidArgumentException(
            message=f"Unknown goal: {goal_id}",
            code="GOAL_NOT_FOUND",
        )
    return goal


async def ensure_active_member(
    repository: Repository, circle_id: str, user_id: str
) -> Membership:
    membership = await repository.get_membership(circle_id, user_id)
    if membership is None or not membership.isActive:
        raise NotMemberException(details={"circleId": circle_id, "userId": user_id})
    return membership
