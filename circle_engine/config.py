"""
Circle engine settings.

Extends the base settings with presence, facilitator and sweep configuration.
"""

from typing import Dict
from common.config import BaseAppSettings


class Settings(BaseAppSettings):
    """Circle engine specific settings."""

    # ==========================================================================
    # Presence
    # ==========================================================================
    # Typing indicators older than this are considered stale
    TYPING_TTL_SECONDS: float = 5.0
    TYPING_SWEEP_INTERVAL_SECONDS: float = 5.0

    # ==========================================================================
    # Messages
    # ==========================================================================
    MAX_MESSAGE_LENGTH: int = 500

    # ==========================================================================
    # Facilitator
    # ==========================================================================
    FACILITATOR_USER_ID: str = "facilitator"
    FACILITATOR_DISPLAY_NAME: str = "AI Facilitator"

    # Reply delay window, drawn uniformly
    FACILITATOR_MIN_DELAY_SECONDS: float = 5.0
    FACILITATOR_MAX_DELAY_SECONDS: float = 15.0

    # Number of most recent messages the reply rule looks at
    FACILITATOR_CONTEXT_WINDOW: int = 5

    FACILITATOR_SUMMARY_PROBABILITY: float = 0.3
    FACILITATOR_SUMMARY_MIN_MESSAGES: int = 5

    # circleId -> prompt topic (mindfulness, gratitude, anxiety, general)
    # e.g. CIRCLE_TOPICS='{"circle-1": "mindfulness"}'
    CIRCLE_TOPICS: Dict[str, str] = {}

    # ==========================================================================
    # Daily prompts
    # ==========================================================================
    DAILY_PROMPT_SWEEP_INTERVAL_SECONDS: float = 30.0


settings = Settings()
