"""
Circle Interaction Engine

Drives real-time peer-support circles: presence and typing indicators,
message dispatch with template-based facilitator replies, goal check-in
milestones and circle recommendations.
"""

from circle_engine.engine import CircleEngine
from circle_engine.events import EventBus, Topic
from circle_engine.pipelines.message_pipeline import MessagePipeline
from circle_engine.services import (
    CircleStatsService,
    FacilitatorResponder,
    MatchingEngine,
    MembershipService,
    MilestoneTracker,
    PresenceTracker,
)

__all__ = [
    "CircleEngine",
    "EventBus",
    "Topic",
    "MessagePipeline",
    "PresenceTracker",
    "FacilitatorResponder",
    "MatchingEngine",
    "MilestoneTracker",
    "MembershipService",
    "CircleStatsService",
]
