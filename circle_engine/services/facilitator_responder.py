"""
Automated circle facilitator.

Decides whether, when and with what template the facilitator replies to a
member message, and produces the deterministic daily prompt for a circle.
Replies are not generated text: they are drawn from fixed template pools.
"""

import logging
import random
from datetime import date, timedelta
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Set

from circle_engine.models import Message, Prompt, new_id
from circle_engine.scheduler import Clock, ScheduledHandle, Scheduler
from circle_engine.services.facilitator_templates import (
    CELEBRATION_TEMPLATES,
    PROMPT_TEMPLATES,
    RESPONSE_TEMPLATES,
    WELCOME_TEMPLATES,
)

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "general"
DIRECT_ADDRESS_TOKEN = "@facilitator"
QUESTION_KEYWORDS = ("wonder", "curious")
NEGATIVE_AFFECT_KEYWORDS = ("sad", "anxious", "worried", "stressed")

# Reply on every third member message in the recent window
REPLY_EVERY_N_MESSAGES = 3

Deliver = Callable[[str, str], Awaitable[object]]


class ResponseCategory(str, Enum):
    ENCOURAGEMENT = "encouragement"
    QUESTIONS = "questions"
    VALIDATION = "validation"
    SUMMARY = "summary"


class FacilitatorResponder:
    """
    Template-driven facilitator.

    Reply delivery goes through the injected scheduler so that replies arrive
    at a human pace and tests can fire them without waiting.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        clock: Clock,
        rng: Optional[random.Random] = None,
        min_delay_seconds: float = 5.0,
        max_delay_seconds: float = 15.0,
        summary_probability: float = 0.3,
        summary_min_messages: int = 5,
        circle_topics: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize FacilitatorResponder.

        Args:
            scheduler: Timer used to delay replies
            clock: Time source for prompt dates
            rng: Random source for template choice and delays
            min_delay_seconds: Lower bound of the reply delay
            max_delay_seconds: Upper bound of the reply delay
            summary_probability: Chance of a summary reply in a busy window
            summary_min_messages: Window size that makes summaries possible
            circle_topics: circleId -> prompt topic
        """
        self._scheduler = scheduler
        self._clock = clock
        self._rng = rng or random.Random()
        self._min_delay = min_delay_seconds
        self._max_delay = max(min_delay_seconds, max_delay_seconds)
        self._summary_probability = summary_probability
        self._summary_min_messages = summary_min_messages
        self._circle_topics = dict(circle_topics or {})
        self._pending: Dict[str, Set[ScheduledHandle]] = {}

    # ─────────────────────────────────────────────────────────────
    # Reply policy
    # ─────────────────────────────────────────────────────────────

    def should_respond(self, message: Message, recent_messages: Sequence[Message]) -> bool:
        """Pure decision over the message and its recent window."""
        if message.isAutomated:
            return False

        member_messages = sum(1 for m in recent_messages if not m.isAutomated)
        if member_messages % REPLY_EVERY_N_MESSAGES == 0:
            return True

        content = message.content.lower()
        return "ai" in content or DIRECT_ADDRESS_TOKEN in content

    def classify(self, content: str, recent_messages: Sequence[Message]) -> ResponseCategory:
        text = content.lower()

        if "?" in text or any(word in text for word in QUESTION_KEYWORDS):
            return ResponseCategory.QUESTIONS
        if any(word in text for word in NEGATIVE_AFFECT_KEYWORDS):
            return ResponseCategory.VALIDATION
        if (
            len(recent_messages) >= self._summary_min_messages
            and self._rng.random() < self._summary_probability
        ):
            return ResponseCategory.SUMMARY
        return ResponseCategory.ENCOURAGEMENT

    def compose_response(self, message: Message, recent_messages: Sequence[Message]) -> str:
        category = self.classify(message.content, recent_messages)
        return self._rng.choice(RESPONSE_TEMPLATES[category.value])

    def next_delay(self) -> float:
        return self._rng.uniform(self._min_delay, self._max_delay)

    def maybe_respond(
        self,
        message: Message,
        recent_messages: Sequence[Message],
        deliver: Deliver,
    ) -> Optional[ScheduledHandle]:
        """
        Schedule a facilitator reply if the policy calls for one.

        Args:
            message: The message just sent
            recent_messages: Recent window of the circle, including ``message``
            deliver: Coroutine ``(circle_id, content)`` that persists and
                broadcasts the automated reply

        Returns:
            Handle of the scheduled reply, or None when not responding
        """
        if not self.should_respond(message, recent_messages):
            logger.debug(f"Facilitator skipping message {message.id}")
            return None

        circle_id = message.circleId
        content = self.compose_response(message, recent_messages)
        pending = self._pending.setdefault(circle_id, set())
        handle: Optional[ScheduledHandle] = None

        async def send_reply() -> None:
            try:
                await deliver(circle_id, content)
            finally:
                pending.discard(handle)
                if not pending and self._pending.get(circle_id) is pending:
                    del self._pending[circle_id]

        handle = self._scheduler.after(self.next_delay, send_reply)
        pending.add(handle)
        logger.info(f"Facilitator reply scheduled for circle {circle_id} (message {message.id})")
        return handle

    # ─────────────────────────────────────────────────────────────
    # Pending replies
    # ─────────────────────────────────────────────────────────────

    def pending_count(self, circle_id: Optional[str] = None) -> int:
        if circle_id is not None:
            return len(self._pending.get(circle_id, ()))
        return sum(len(handles) for handles in self._pending.values())

    def cancel_pending(self, circle_id: str) -> int:
        """Cancel all scheduled replies for a circle. Returns how many were cancelled."""
        handles = self._pending.pop(circle_id, set())
        for handle in handles:
            handle.cancel()
        if handles:
            logger.info(f"Cancelled {len(handles)} facilitator repl(ies) for circle {circle_id}")
        return len(handles)

    def cancel_all(self) -> int:
        return sum(self.cancel_pending(circle_id) for circle_id in list(self._pending))

    # ─────────────────────────────────────────────────────────────
    # Prompts and announcements
    # ─────────────────────────────────────────────────────────────

    def topic_for(self, circle_id: str) -> str:
        topic = self._circle_topics.get(circle_id, DEFAULT_TOPIC)
        return topic if topic in PROMPT_TEMPLATES else DEFAULT_TOPIC

    def prompt_content(self, circle_id: str, day: date) -> str:
        """Same circle and day always give the same prompt."""
        templates = PROMPT_TEMPLATES[self.topic_for(circle_id)]
        return templates[day.timetuple().tm_yday % len(templates)]

    def generate_daily_prompt(self, circle_id: str, on: Optional[date] = None) -> Prompt:
        day = on or self._clock.today()
        return Prompt(
            id=new_id("prompt"),
            circleId=circle_id,
            content=self.prompt_content(circle_id, day),
            scheduledFor=day,
            createdAt=self._clock.now(),
        )

    def generate_upcoming_prompts(self, circle_id: str, days: int = 5) -> List[Prompt]:
        today = self._clock.today()
        return [
            self.generate_daily_prompt(circle_id, on=today + timedelta(days=offset))
            for offset in range(days)
        ]

    def compose_milestone_celebration(self, user_name: str, milestone: int) -> str:
        template = self._rng.choice(CELEBRATION_TEMPLATES)
        return template.format(name=user_name, milestone=milestone)

    def compose_welcome(self, user_name: str, circle_id: str) -> str:
        return WELCOME_TEMPLATES[self.topic_for(circle_id)].format(name=user_name)
