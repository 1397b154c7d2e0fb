"""Circle engine services."""

from circle_engine.services.presence_tracker import PresenceTracker
from circle_engine.services.facilitator_responder import FacilitatorResponder, ResponseCategory
from circle_engine.services.matching_engine import MatchingEngine, CircleMatch
from circle_engine.services.milestone_tracker import MilestoneTracker, CheckInResult
from circle_engine.services.membership_service import MembershipService
from circle_engine.services.stats_service import CircleStatsService

__all__ = [
    "PresenceTracker",
    "FacilitatorResponder",
    "ResponseCategory",
    "MatchingEngine",
    "CircleMatch",
    "MilestoneTracker",
    "CheckInResult",
    "MembershipService",
    "CircleStatsService",
]
