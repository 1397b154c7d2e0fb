"""Shared test fixtures for circle engine tests."""

import itertools
import random
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from circle_engine.config import Settings
from circle_engine.engine import CircleEngine
from circle_engine.models import CheckIn, Circle, CurrentUser, Goal, Membership, new_id
from circle_engine.repository import InMemoryRepository
from circle_engine.scheduler import Clock, ScheduledHandle, Scheduler, run_guarded


START = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


# ─────────────────────────────────────────────────────────────────
# Time doubles
# ─────────────────────────────────────────────────────────────────


class FakeClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float = 0, days: int = 0) -> None:
        self.current += timedelta(seconds=seconds, days=days)


class ManualScheduler(Scheduler):
    """
    Scheduler whose timers fire only from ``advance()``.

    Due timers fire in due-time order, moving the fake clock to each
    timer's due time before running it.
    """

    def __init__(self, clock: FakeClock):
        self._clock = clock
        self._timers: List[dict] = []
        self._order = itertools.count()

    def after(self, delay, callback) -> ScheduledHandle:
        seconds = delay() if callable(delay) else delay
        return self._add(seconds, callback, None)

    def every(self, interval, callback) -> ScheduledHandle:
        return self._add(interval, callback, interval)

    def _add(self, seconds, callback, interval) -> ScheduledHandle:
        timer = {
            "due": self._clock.now() + timedelta(seconds=seconds),
            "order": next(self._order),
            "callback": callback,
            "interval": interval,
        }
        self._timers.append(timer)

        def cancel() -> None:
            if timer in self._timers:
                self._timers.remove(timer)

        return ScheduledHandle(cancel)

    @property
    def pending(self) -> List[dict]:
        return list(self._timers)

    async def advance(self, seconds: float) -> None:
        target = self._clock.now() + timedelta(seconds=seconds)

        while True:
            due = [t for t in self._timers if t["due"] <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t["due"], t["order"]))

            self._clock.current = max(self._clock.current, timer["due"])
            if timer["interval"] is None:
                self._timers.remove(timer)
            else:
                timer["due"] += timedelta(seconds=timer["interval"])
                timer["order"] = next(self._order)

            await run_guarded(timer["callback"])

        self._clock.current = max(self._clock.current, target)


# ─────────────────────────────────────────────────────────────────
# Seeding helpers
# ─────────────────────────────────────────────────────────────────


async def seed_circle(
    repository,
    clock,
    circle_id: str = "circle_1",
    members: Iterable[str] = (),
    max_members: int = 8,
    tags=None,
    is_public: bool = True,
    ai_enabled: bool = True,
) -> Circle:
    members = list(members)
    circle = Circle(
        id=circle_id,
        name=f"Circle {circle_id}",
        tags=tags or ["mindfulness"],
        maxMembers=max_members,
        currentMembers=len(members),
        isPublic=is_public,
        aiEnabled=ai_enabled,
        createdAt=clock.now(),
    )
    await repository.save_circle(circle)
    for user_id in members:
        await repository.save_membership(Membership(
            userId=user_id,
            circleId=circle_id,
            joinedAt=clock.now(),
            lastActiveAt=clock.now(),
        ))
    return circle


async def seed_goal(
    repository,
    clock,
    circle_id: str = "circle_1",
    owner_user_id: str = "user_alice",
    target_date: date = date(2026, 3, 20),
    progress: int = 0,
    completed_days: Iterable[date] = (),
) -> Goal:
    goal = Goal(
        id=new_id("goal"),
        circleId=circle_id,
        ownerUserId=owner_user_id,
        title="Meditate every morning",
        targetDate=target_date,
        createdAt=clock.now(),
        progress=progress,
    )
    await repository.save_goal(goal)
    for day in completed_days:
        await repository.save_check_in(CheckIn(
            id=new_id("checkin"),
            goalId=goal.id,
            userId=owner_user_id,
            date=day,
            isCompleted=True,
            createdAt=clock.now(),
            updatedAt=clock.now(),
        ))
    return goal


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture
def repository():
    return InMemoryRepository()


@pytest.fixture
def settings():
    return Settings(CIRCLE_TOPICS={"circle_calm": "mindfulness"})


@pytest.fixture
def rng():
    return random.Random(7)


@pytest.fixture
def engine(repository, settings, clock, scheduler, rng):
    return CircleEngine(repository, settings=settings, clock=clock, scheduler=scheduler, rng=rng)


@pytest.fixture
def events(engine):
    """Every event published on the engine bus, as (topic, payload) pairs."""
    received = []
    for topic in ("message", "presence", "typing", "reaction", "checkIn", "goalUpdate"):
        engine.event_bus.subscribe(topic, lambda payload, topic=topic: received.append((topic, payload)))
    return received


@pytest.fixture
def alice():
    return CurrentUser(id="user_alice", displayName="Alice")


@pytest.fixture
def bob():
    return CurrentUser(id="user_bob", displayName="Bob")


@pytest.fixture
def carol():
    return CurrentUser(id="user_carol", displayName="Carol")


@pytest_asyncio.fixture
async def circle(repository, clock, alice, bob):
    return await seed_circle(repository, clock, members=[alice.id, bob.id])


@pytest.fixture
def mock_collection():
    collection = AsyncMock()
    # Motor's find() returns a cursor synchronously (not a coroutine),
    # so use MagicMock for it. Async methods like find_one, replace_one,
    # update_one etc. stay as AsyncMock.
    collection.find = MagicMock()
    return collection


@pytest.fixture
def mock_db(mock_collection):
    db = MagicMock()
    db.__getitem__ = MagicMock(return_value=mock_collection)
    return db


@pytest.fixture
def make_circle(repository, clock):
    async def _make(circle_id: str = "circle_1", **kwargs) -> Circle:
        return await seed_circle(repository, clock, circle_id, **kwargs)
    return _make


@pytest.fixture
def make_goal(repository, clock):
    async def _make(**kwargs) -> Goal:
        return await seed_goal(repository, clock, **kwargs)
    return _make
