"""
Circle matching and recommendation scoring.

Ranks candidate circles against a user's stated preferences with a weighted
sum of five independent sub-scores, each in [0, 1]:

    interest        3.0   share of the user's interests found in the circle tags
    goalAlignment   2.0   similar/diverse preference vs. tag count proxy
    activityLevel   1.5   preferred activity vs. member count bucket
    privacy         1.0   open/private preference vs. circle visibility
    size            1.0   preferred size vs. capacity bucket

Scoring is a pure function of its inputs; nothing here touches storage.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel

from circle_engine.models import (
    ActivityLevel,
    Circle,
    CircleSize,
    GoalAlignment,
    MatchPreference,
    PrivacyLevel,
)
from common.utils.exceptions import InvalidArgumentException

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS = {
    "interest": 3.0,
    "goalAlignment": 2.0,
    "activityLevel": 1.5,
    "privacy": 1.0,
    "size": 1.0,
}

# Circles with at least this many tags count as "diverse"
DIVERSE_TAG_COUNT = 3

NOTABLE_INTEREST_SCORE = 0.5


class CircleMatch(BaseModel):
    """A ranked candidate with its total score and per-factor breakdown."""
    circle: Circle
    score: float
    breakdown: Dict[str, float]


def activity_bucket(current_members: int) -> ActivityLevel:
    if current_members <= 3:
        return ActivityLevel.LIGHT
    if current_members <= 7:
        return ActivityLevel.MODERATE
    return ActivityLevel.ACTIVE


def size_bucket(max_members: int) -> CircleSize:
    if max_members <= 5:
        return CircleSize.SMALL
    if max_members <= 10:
        return CircleSize.MEDIUM
    return CircleSize.LARGE


def _ladder_score(preferred, actual, middle, far_score: float) -> float:
    """1.0 exact, 0.6 one step apart (either side is the middle bucket), else ``far_score``."""
    if preferred == actual:
        return 1.0
    if preferred == middle or actual == middle:
        return 0.6
    return far_score


def _normalize(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(v.strip().lower() for v in values if v and v.strip()))


class MatchingEngine:
    """Scores and ranks circles for a user's preferences."""

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        self._weights = {**DEFAULT_WEIGHTS, **(weights or {})}

    # ─────────────────────────────────────────────────────────────
    # Sub-scores
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def interest_score(preferences: MatchPreference, circle: Circle) -> float:
        interests = _normalize(preferences.interests)
        tags = set(_normalize(circle.tags))
        if not interests or not tags:
            return 0.0
        shared = sum(1 for interest in interests if interest in tags)
        return shared / max(len(interests), 1)

    @staticmethod
    def goal_alignment_score(preferences: MatchPreference, circle: Circle) -> float:
        is_diverse = len(circle.tags) >= DIVERSE_TAG_COUNT
        if preferences.goalAlignment == GoalAlignment.SIMILAR:
            return 0.3 if is_diverse else 1.0
        if preferences.goalAlignment == GoalAlignment.DIVERSE:
            return 1.0 if is_diverse else 0.3
        return 0.7

    @staticmethod
    def activity_score(preferences: MatchPreference, circle: Circle) -> float:
        return _ladder_score(
            preferences.activityLevel,
            activity_bucket(circle.currentMembers),
            ActivityLevel.MODERATE,
            far_score=0.2,
        )

    @staticmethod
    def privacy_score(preferences: MatchPreference, circle: Circle) -> float:
        if preferences.privacyLevel == PrivacyLevel.OPEN:
            return 1.0 if circle.isPublic else 0.2
        if preferences.privacyLevel == PrivacyLevel.PRIVATE:
            return 0.2 if circle.isPublic else 1.0
        return 0.7

    @staticmethod
    def size_score(preferences: MatchPreference, circle: Circle) -> float:
        return _ladder_score(
            preferences.circleSize,
            size_bucket(circle.maxMembers),
            CircleSize.MEDIUM,
            far_score=0.3,
        )

    def score_breakdown(self, preferences: MatchPreference, circle: Circle) -> Dict[str, float]:
        return {
            "interest": self.interest_score(preferences, circle),
            "goalAlignment": self.goal_alignment_score(preferences, circle),
            "activityLevel": self.activity_score(preferences, circle),
            "privacy": self.privacy_score(preferences, circle),
            "size": self.size_score(preferences, circle),
        }

    def score(self, preferences: MatchPreference, circle: Circle) -> float:
        breakdown = self.score_breakdown(preferences, circle)
        return sum(value * self._weights[factor] for factor, value in breakdown.items())

    # ─────────────────────────────────────────────────────────────
    # Ranking
    # ─────────────────────────────────────────────────────────────

    def rank(
        self,
        preferences: MatchPreference,
        candidates: Sequence[Circle],
        limit: int = 3,
        member_circle_ids: Iterable[str] = (),
    ) -> List[CircleMatch]:
        """
        Rank candidate circles, best first.

        Circles the user already belongs to and full circles are dropped
        before scoring. Equal scores keep their input order.

        Args:
            preferences: The user's matching preferences
            candidates: Circles to consider
            limit: Maximum number of results
            member_circle_ids: Circles the user is an active member of
        """
        if limit < 0:
            raise InvalidArgumentException(
                message="limit cannot be negative",
                code="INVALID_LIMIT",
            )

        excluded = set(member_circle_ids)
        matches = []
        for circle in candidates:
            if circle.id in excluded or circle.is_full:
                continue
            breakdown = self.score_breakdown(preferences, circle)
            total = sum(value * self._weights[factor] for factor, value in breakdown.items())
            matches.append(CircleMatch(circle=circle, score=round(total, 6), breakdown=breakdown))

        # sorted() is stable, so ties keep input order
        ranked = sorted(matches, key=lambda match: match.score, reverse=True)
        logger.debug(f"Ranked {len(ranked)} of {len(candidates)} candidate circles")
        return ranked[:limit]

    def explain(self, preferences: MatchPreference, circle: Circle) -> List[str]:
        """
        Human-readable reasons for a match, strongest contribution first.

        Only notable factors are reported: a majority interest overlap and
        exact matches on the categorical preferences.
        """
        breakdown = self.score_breakdown(preferences, circle)
        reasons = []

        if breakdown["interest"] > NOTABLE_INTEREST_SCORE:
            tags = set(_normalize(circle.tags))
            shared = [i for i in _normalize(preferences.interests) if i in tags]
            reasons.append((
                breakdown["interest"] * self._weights["interest"],
                f"Shares {len(shared)} of your interests: {', '.join(shared)}",
            ))

        if (
            preferences.goalAlignment != GoalAlignment.ANY
            and breakdown["goalAlignment"] >= 1.0
        ):
            reasons.append((
                self._weights["goalAlignment"],
                f"Members pursue {preferences.goalAlignment.value} goals, as you prefer",
            ))

        if breakdown["activityLevel"] >= 1.0:
            reasons.append((
                self._weights["activityLevel"],
                f"Has {preferences.activityLevel.value} activity level, matching your preference",
            ))

        if breakdown["privacy"] >= 1.0:
            reasons.append((self._weights["privacy"], "Aligns with your privacy preferences"))

        if breakdown["size"] >= 1.0:
            reasons.append((
                self._weights["size"],
                f"Matches your preference for {preferences.circleSize.value} circles",
            ))

        if not reasons:
            return ["Seems like a good overall match for your preferences"]

        reasons.sort(key=lambda item: item[0], reverse=True)
        return [text for _, text in reasons]
