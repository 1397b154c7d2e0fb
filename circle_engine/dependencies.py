"""
FastAPI dependencies for the circle engine.

Holds the process-wide engine instance built at application startup.
"""

import random
from typing import Annotated, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from circle_engine.config import Settings, settings as default_settings
from circle_engine.engine import CircleEngine
from circle_engine.pipelines.message_pipeline import MessagePipeline
from circle_engine.repository import InMemoryRepository, MongoRepository, Repository
from circle_engine.scheduler import Clock, Scheduler
from circle_engine.services import MembershipService, MilestoneTracker, PresenceTracker
from common.database import get_main_database


_circle_engine: Optional[CircleEngine] = None


def build_repository(
    settings: Settings,
    db: Optional[AsyncIOMotorDatabase] = None,
) -> Repository:
    """
    Pick the storage backend named by ``REPOSITORY_BACKEND``.

    The mongo backend uses ``db`` or, if omitted, the main database singleton.
    """
    if settings.REPOSITORY_BACKEND == "mongo":
        if db is None:
            db = get_main_database().db
        return MongoRepository(db)
    return InMemoryRepository()


def init_circle_engine(
    db: Optional[AsyncIOMotorDatabase] = None,
    repository: Optional[Repository] = None,
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
    scheduler: Optional[Scheduler] = None,
    rng: Optional[random.Random] = None,
) -> CircleEngine:
    """
    Initialize the circle engine.

    Called once at application startup. The caller still has to ``start()``
    the engine from inside the running event loop.

    Args:
        db: MongoDB database, required for the mongo backend
        repository: Explicit repository, overrides the configured backend
        settings: Engine settings (module settings if omitted)
        clock: Time source
        scheduler: Timer source
        rng: Random source for the facilitator
    """
    global _circle_engine

    settings = settings or default_settings
    if repository is None:
        repository = build_repository(settings, db)

    _circle_engine = CircleEngine(
        repository,
        settings=settings,
        clock=clock,
        scheduler=scheduler,
        rng=rng,
    )
    return _circle_engine


def reset_circle_engine() -> None:
    global _circle_engine
    _circle_engine = None


# ─────────────────────────────────────────────────────────────────
# Getters
# ─────────────────────────────────────────────────────────────────

def get_circle_engine() -> CircleEngine:
    """Get circle engine instance."""
    if _circle_engine is None:
        raise RuntimeError("Circle engine not initialized.")
    return _circle_engine


def get_message_pipeline(
    engine: Annotated[CircleEngine, Depends(get_circle_engine)]
) -> MessagePipeline:
    return engine.pipeline


def get_presence_tracker(
    engine: Annotated[CircleEngine, Depends(get_circle_engine)]
) -> PresenceTracker:
    return engine.presence


def get_milestone_tracker(
    engine: Annotated[CircleEngine, Depends(get_circle_engine)]
) -> MilestoneTracker:
    return engine.milestones


def get_membership_service(
    engine: Annotated[CircleEngine, Depends(get_circle_engine)]
) -> MembershipService:
    return engine.memberships
