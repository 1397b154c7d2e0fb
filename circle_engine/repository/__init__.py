"""Storage collaborators for the circle engine."""

from circle_engine.repository.base import Repository
from circle_engine.repository.memory import InMemoryRepository
from circle_engine.repository.mongo import MongoRepository

__all__ = [
    "Repository",
    "InMemoryRepository",
    "MongoRepository",
]
