"""
Circle engine composition root.

Wires the event bus, presence tracking, message pipeline, facilitator,
milestone tracking, matching and membership services around one repository,
and owns the periodic sweeps (typing TTL and daily prompts).
"""

import logging
import random
from datetime import timedelta
from typing import List, Optional

from circle_engine.config import Settings, settings as default_settings
from circle_engine.events import EventBus
from circle_engine.models import Prompt
from circle_engine.pipelines.message_pipeline import MessagePipeline
from circle_engine.repository import Repository
from circle_engine.scheduler import AsyncioScheduler, Clock, ScheduledHandle, Scheduler
from circle_engine.services import (
    CircleStatsService,
    FacilitatorResponder,
    MatchingEngine,
    MembershipService,
    MilestoneTracker,
    PresenceTracker,
)

logger = logging.getLogger(__name__)


class CircleEngine:
    """
    All circle components sharing one bus, clock and scheduler.

    Example:
        engine = CircleEngine(InMemoryRepository())
        engine.start()
        engine.event_bus.subscribe(Topic.MESSAGE, on_message)
        await engine.pipeline.send(circle_id, user, "Hello circle")
        await engine.stop()
    """

    def __init__(
        self,
        repository: Repository,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize CircleEngine.

        Args:
            repository: Storage collaborator
            settings: Engine settings (module settings if omitted)
            clock: Time source (wall clock if omitted)
            scheduler: Timer source (asyncio timers if omitted)
            rng: Random source for the facilitator
        """
        self.settings = settings or default_settings
        self.repository = repository
        self.clock = clock or Clock()
        self.scheduler = scheduler or AsyncioScheduler()

        self.event_bus = EventBus()
        self.presence = PresenceTracker(
            self.event_bus,
            self.clock,
            typing_ttl=timedelta(seconds=self.settings.TYPING_TTL_SECONDS),
        )
        self.facilitator = FacilitatorResponder(
            self.scheduler,
            self.clock,
            rng=rng,
            min_delay_seconds=self.settings.FACILITATOR_MIN_DELAY_SECONDS,
            max_delay_seconds=self.settings.FACILITATOR_MAX_DELAY_SECONDS,
            summary_probability=self.settings.FACILITATOR_SUMMARY_PROBABILITY,
            summary_min_messages=self.settings.FACILITATOR_SUMMARY_MIN_MESSAGES,
            circle_topics=self.settings.CIRCLE_TOPICS,
        )
        self.pipeline = MessagePipeline(
            repository,
            self.event_bus,
            self.presence,
            self.facilitator,
            self.clock,
            context_window=self.settings.FACILITATOR_CONTEXT_WINDOW,
            max_message_length=self.settings.MAX_MESSAGE_LENGTH,
            facilitator_user_id=self.settings.FACILITATOR_USER_ID,
            facilitator_display_name=self.settings.FACILITATOR_DISPLAY_NAME,
        )
        self.milestones = MilestoneTracker(
            repository, self.event_bus, self.pipeline, self.facilitator, self.clock
        )
        self.matching = MatchingEngine()
        self.memberships = MembershipService(
            repository,
            self.pipeline,
            self.presence,
            self.facilitator,
            self.matching,
            self.clock,
        )
        self.stats = CircleStatsService(repository, self.clock)

        self._sweeps: List[ScheduledHandle] = []

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return bool(self._sweeps)

    def start(self) -> None:
        """Arm the typing sweep and the daily prompt sweep. Calling twice is a no-op."""
        if self._sweeps:
            return

        self._sweeps = [
            self.scheduler.every(
                self.settings.TYPING_SWEEP_INTERVAL_SECONDS, self._sweep_typing
            ),
            self.scheduler.every(
                self.settings.DAILY_PROMPT_SWEEP_INTERVAL_SECONDS, self.run_daily_prompt_sweep
            ),
        ]
        logger.info("Circle engine started")

    async def stop(self) -> None:
        """Cancel the sweeps and every pending facilitator reply."""
        for handle in self._sweeps:
            handle.cancel()
        self._sweeps = []

        cancelled = self.facilitator.cancel_all()
        logger.info(f"Circle engine stopped ({cancelled} pending repl(ies) cancelled)")

    async def _sweep_typing(self) -> None:
        self.presence.sweep_typing()

    # ─────────────────────────────────────────────────────────────
    # Daily prompts
    # ─────────────────────────────────────────────────────────────

    async def ensure_daily_prompt(self, circle_id: str) -> Optional[Prompt]:
        """
        Post today's prompt to a circle unless it already has one.

        Returns:
            The new prompt, or None if the circle is missing, has the
            facilitator disabled or already has a prompt for today
        """
        circle = await self.repository.get_circle(circle_id)
        if circle is None or not circle.aiEnabled:
            return None

        today = self.clock.today()
        if await self.repository.get_prompt_for_day(circle_id, today) is not None:
            return None

        prompt = self.facilitator.generate_daily_prompt(circle_id, on=today)
        # A day counts as covered only once its prompt has been posted
        await self.pipeline.send_automated(circle_id, prompt.content)
        await self.repository.save_prompt(prompt)

        logger.info(f"Daily prompt {prompt.id} posted to circle {circle_id}")
        return prompt

    async def run_daily_prompt_sweep(self) -> List[Prompt]:
        """Ensure every circle has today's prompt. One failing circle does not stop the rest."""
        created = []

        for circle in await self.repository.list_circles():
            try:
                prompt = await self.ensure_daily_prompt(circle.id)
            except Exception:
                logger.exception(f"Failed to post daily prompt for circle {circle.id}")
                continue
            if prompt is not None:
                created.append(prompt)

        if created:
            logger.info(f"Daily prompt sweep posted {len(created)} prompt(s)")
        return created
