"""
Pydantic models for the circle engine domain.

Field names are camelCase so that models map one-to-one onto the stored
documents and onto the event payloads consumed by the UI layer.
"""

import secrets
from datetime import date, datetime
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator, model_validator


def new_id(prefix: str) -> str:
    """Generate a prefixed random identifier, e.g. ``msg_3f9a...``."""
    return f"{prefix}_{secrets.token_hex(8)}"


# ─────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────


class MembershipRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"


class GoalStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class GoalAlignment(str, Enum):
    SIMILAR = "similar"
    DIVERSE = "diverse"
    ANY = "any"


class ActivityLevel(str, Enum):
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"


class PrivacyLevel(str, Enum):
    OPEN = "open"
    BALANCED = "balanced"
    PRIVATE = "private"


class CircleSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


# ─────────────────────────────────────────────────────────────────
# Entities
# ─────────────────────────────────────────────────────────────────


class CurrentUser(BaseModel):
    """The authenticated caller, as handed to the engine."""
    id: str = Field(..., min_length=1)
    displayName: str = ""


class Circle(BaseModel):
    """A bounded peer-support group."""
    id: str
    name: str
    tags: List[str] = Field(default_factory=list)
    maxMembers: int = Field(..., ge=1)
    currentMembers: int = Field(default=0, ge=0)
    isPublic: bool = True
    aiEnabled: bool = True
    createdAt: datetime

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, tags: List[str]) -> List[str]:
        return list(dict.fromkeys(tags))

    @model_validator(mode="after")
    def _check_capacity(self) -> "Circle":
        if self.currentMembers > self.maxMembers:
            raise ValueError("currentMembers cannot exceed maxMembers")
        return self

    @property
    def is_full(self) -> bool:
        return self.currentMembers >= self.maxMembers


class Membership(BaseModel):
    userId: str
    circleId: str
    role: MembershipRole = MembershipRole.MEMBER
    isActive: bool = True
    joinedAt: datetime
    lastActiveAt: datetime


class Reaction(BaseModel):
    userId: str
    reaction: str
    createdAt: datetime


class Message(BaseModel):
    """A circle message. Only the reaction list changes after creation."""
    id: str
    circleId: str
    senderId: str
    senderDisplayName: str
    isAutomated: bool = False
    content: str
    sentAt: datetime
    sequence: int = 0
    reactions: List[Reaction] = Field(default_factory=list)


class Prompt(BaseModel):
    id: str
    circleId: str
    content: str
    scheduledFor: date
    isConsumed: bool = False
    createdAt: datetime


class Goal(BaseModel):
    """A member goal. ``progress`` is derived from check-ins."""
    id: str
    circleId: str
    ownerUserId: str
    title: str
    targetDate: date
    createdAt: datetime
    status: GoalStatus = GoalStatus.IN_PROGRESS
    progress: int = Field(default=0, ge=0, le=100)
    isPrivate: bool = False


class CheckIn(BaseModel):
    """One check-in per user per goal per calendar day."""
    id: str
    goalId: str
    userId: str
    date: date
    isCompleted: bool
    notes: Optional[str] = None
    createdAt: datetime
    updatedAt: datetime


class MatchPreference(BaseModel):
    """A user's stated circle matching preferences."""
    interests: List[str] = Field(default_factory=list)
    goalAlignment: GoalAlignment = GoalAlignment.ANY
    activityLevel: ActivityLevel = ActivityLevel.MODERATE
    privacyLevel: PrivacyLevel = PrivacyLevel.BALANCED
    circleSize: CircleSize = CircleSize.MEDIUM
