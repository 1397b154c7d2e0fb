"""
MongoDB repository using Motor.

One collection per entity. Entity ids are stored as ``_id``; calendar dates
are stored as ``YYYY-MM-DD`` strings because BSON has no date-only type.
"""

import logging
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

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

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _to_bson(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _to_bson(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_bson(v) for v in value]
    return value


def _restore(value: Any) -> Any:
    # Motor returns naive datetimes; everything the engine writes is UTC
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    if isinstance(value, dict):
        return {k: _restore(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_restore(v) for v in value]
    return value


def _to_doc(model: BaseModel, with_id: bool = True) -> Dict[str, Any]:
    doc = _to_bson(model.model_dump())
    if with_id and "id" in doc:
        doc["_id"] = doc.pop("id")
    return doc


def _from_doc(model_cls: Type[ModelT], doc: Optional[dict]) -> Optional[ModelT]:
    if not doc:
        return None
    data = _restore(dict(doc))
    _id = data.pop("_id", None)
    if "id" in model_cls.model_fields and "id" not in data:
        data["id"] = _id
    return model_cls.model_validate(data)


class MongoRepository(Repository):
    """Repository backed by MongoDB collections."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self._db = db
        self._circles = db["circles"]
        self._memberships = db["circlememberships"]
        self._messages = db["circlemessages"]
        self._prompts = db["circleprompts"]
        self._goals = db["circlegoals"]
        self._check_ins = db["goalcheckins"]
        self._preferences = db["matchpreferences"]

    # ─────────────────────────────────────────────────────────────
    # Circles and memberships
    # ─────────────────────────────────────────────────────────────

    async def get_circle(self, circle_id: str) -> Optional[Circle]:
        return _from_doc(Circle, await self._circles.find_one({"_id": circle_id}))

    async def list_circles(self) -> List[Circle]:
        docs = await self._circles.find({}).sort("createdAt", 1).to_list(length=None)
        return [_from_doc(Circle, doc) for doc in docs]

    async def save_circle(self, circle: Circle) -> None:
        await self._circles.replace_one({"_id": circle.id}, _to_doc(circle), upsert=True)

    async def get_membership(self, circle_id: str, user_id: str) -> Optional[Membership]:
        doc = await self._memberships.find_one({"circleId": circle_id, "userId": user_id})
        return _from_doc(Membership, doc)

    async def save_membership(self, membership: Membership) -> None:
        await self._memberships.update_one(
            {"circleId": membership.circleId, "userId": membership.userId},
            {"$set": _to_doc(membership, with_id=False)},
            upsert=True,
        )

    async def list_memberships(
        self,
        circle_id: Optional[str] = None,
        user_id: Optional[str] = None,
        active_only: bool = True,
    ) -> List[Membership]:
        query: Dict[str, Any] = {}
        if circle_id is not None:
            query["circleId"] = circle_id
        if user_id is not None:
            query["userId"] = user_id
        if active_only:
            query["isActive"] = True

        docs = await self._memberships.find(query).sort("joinedAt", 1).to_list(length=None)
        return [_from_doc(Membership, doc) for doc in docs]

    # ─────────────────────────────────────────────────────────────
    # Messages and prompts
    # ─────────────────────────────────────────────────────────────

    async def save_message(self, message: Message) -> None:
        await self._messages.replace_one({"_id": message.id}, _to_doc(message), upsert=True)

    async def get_message(self, message_id: str) -> Optional[Message]:
        return _from_doc(Message, await self._messages.find_one({"_id": message_id}))

    async def get_messages_since(
        self,
        circle_id: str,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Message]:
        query: Dict[str, Any] = {"circleId": circle_id}
        if since is not None:
            query["sentAt"] = {"$gt": since}

        if limit is None:
            cursor = self._messages.find(query).sort([("sentAt", 1), ("sequence", 1)])
            docs = await cursor.to_list(length=None)
        elif limit <= 0:
            return []
        else:
            # Newest first so the limit keeps the latest messages, then flip
            cursor = (
                self._messages.find(query)
                .sort([("sentAt", -1), ("sequence", -1)])
                .limit(limit)
            )
            docs = list(reversed(await cursor.to_list(length=limit)))

        return [_from_doc(Message, doc) for doc in docs]

    async def get_prompt_for_day(self, circle_id: str, day: date) -> Optional[Prompt]:
        doc = await self._prompts.find_one(
            {"circleId": circle_id, "scheduledFor": day.isoformat()}
        )
        return _from_doc(Prompt, doc)

    async def save_prompt(self, prompt: Prompt) -> None:
        await self._prompts.replace_one({"_id": prompt.id}, _to_doc(prompt), upsert=True)

    # ─────────────────────────────────────────────────────────────
    # Goals and check-ins
    # ─────────────────────────────────────────────────────────────

    async def get_goal(self, goal_id: str) -> Optional[Goal]:
        return _from_doc(Goal, await self._goals.find_one({"_id": goal_id}))

    async def save_goal(self, goal: Goal) -> None:
        await self._goals.replace_one({"_id": goal.id}, _to_doc(goal), upsert=True)

    async def list_goals(
        self,
        circle_id: Optional[str] = None,
        owner_user_id: Optional[str] = None,
    ) -> List[Goal]:
        query: Dict[str, Any] = {}
        if circle_id is not None:
            query["circleId"] = circle_id
        if owner_user_id is not None:
            query["ownerUserId"] = owner_user_id

        docs = await self._goals.find(query).to_list(length=None)
        return [_from_doc(Goal, doc) for doc in docs]

    async def update_goal_progress(
        self, goal_id: str, progress: int, status: GoalStatus
    ) -> None:
        await self._goals.update_one(
            {"_id": goal_id},
            {"$set": {"progress": progress, "status": status.value}},
        )

    async def get_check_in(self, goal_id: str, user_id: str, day: date) -> Optional[CheckIn]:
        doc = await self._check_ins.find_one(
            {"goalId": goal_id, "userId": user_id, "date": day.isoformat()}
        )
        return _from_doc(CheckIn, doc)

    async def save_check_in(self, check_in: CheckIn) -> None:
        doc = _to_doc(check_in)
        check_in_id = doc.pop("_id")
        await self._check_ins.update_one(
            {
                "goalId": check_in.goalId,
                "userId": check_in.userId,
                "date": check_in.date.isoformat(),
            },
            {"$set": doc, "$setOnInsert": {"_id": check_in_id}},
            upsert=True,
        )

    async def list_check_ins(
        self,
        goal_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[CheckIn]:
        query: Dict[str, Any] = {}
        if goal_id is not None:
            query["goalId"] = goal_id
        if user_id is not None:
            query["userId"] = user_id

        docs = await self._check_ins.find(query).sort("date", 1).to_list(length=None)
        return [_from_doc(CheckIn, doc) for doc in docs]

    # ─────────────────────────────────────────────────────────────
    # Matching preferences
    # ─────────────────────────────────────────────────────────────

    async def get_match_preference(self, user_id: str) -> Optional[MatchPreference]:
        doc = await self._preferences.find_one({"userId": user_id})
        if not doc:
            return None
        data = {k: v for k, v in doc.items() if k not in ("_id", "userId", "updatedAt")}
        return MatchPreference.model_validate(data)

    async def save_match_preference(self, user_id: str, preference: MatchPreference) -> None:
        doc = _to_bson(preference.model_dump())
        doc["userId"] = user_id
        doc["updatedAt"] = datetime.now(timezone.utc)
        await self._preferences.update_one({"userId": user_id}, {"$set": doc}, upsert=True)
        logger.debug(f"Saved match preferences for user {user_id}")
