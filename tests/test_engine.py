"""Tests for CircleEngine wiring, sweeps and daily prompts."""

from unittest.mock import MagicMock

import pytest

from circle_engine import dependencies
from circle_engine.config import Settings
from circle_engine.engine import CircleEngine
from circle_engine.repository import InMemoryRepository, MongoRepository
from circle_engine.services.facilitator_templates import PROMPT_TEMPLATES
from common.database import set_main_database


def automated_messages(events):
    return [p for topic, p in events if topic == "message" and p["isAutomated"]]


# ─────────────────────────────────────────────────────────────────
# Daily prompts
# ─────────────────────────────────────────────────────────────────


class TestDailyPrompt:
    @pytest.mark.asyncio
    async def test_posts_prompt_once_per_day(self, engine, repository, events, circle, clock):
        prompt = await engine.ensure_daily_prompt(circle.id)

        assert prompt is not None
        assert prompt.scheduledFor == clock.today()
        assert prompt.content == engine.facilitator.prompt_content(circle.id, clock.today())
        assert await repository.get_prompt_for_day(circle.id, clock.today()) == prompt

        assert await engine.ensure_daily_prompt(circle.id) is None

        posted = automated_messages(events)
        assert [p["content"] for p in posted] == [prompt.content]

    @pytest.mark.asyncio
    async def test_new_day_gets_new_prompt(self, engine, circle, clock):
        first = await engine.ensure_daily_prompt(circle.id)
        clock.advance(days=1)

        second = await engine.ensure_daily_prompt(circle.id)

        assert second is not None
        assert second.scheduledFor != first.scheduledFor

    @pytest.mark.asyncio
    async def test_skips_circle_without_facilitator(self, engine, make_circle, alice):
        quiet = await make_circle("circle_quiet", members=[alice.id], ai_enabled=False)

        assert await engine.ensure_daily_prompt(quiet.id) is None

    @pytest.mark.asyncio
    async def test_unknown_circle_is_skipped(self, engine):
        assert await engine.ensure_daily_prompt("circle_missing") is None

    @pytest.mark.asyncio
    async def test_failed_post_is_retried(self, engine, repository, events, circle, clock, monkeypatch):
        original = engine.pipeline.send_automated

        async def broken(circle_id, content):
            raise RuntimeError("write timeout")

        monkeypatch.setattr(engine.pipeline, "send_automated", broken)
        with pytest.raises(RuntimeError):
            await engine.ensure_daily_prompt(circle.id)

        assert await repository.get_prompt_for_day(circle.id, clock.today()) is None

        monkeypatch.setattr(engine.pipeline, "send_automated", original)
        prompt = await engine.ensure_daily_prompt(circle.id)

        assert prompt is not None
        assert [p["content"] for p in automated_messages(events)] == [prompt.content]

    @pytest.mark.asyncio
    async def test_prompt_uses_circle_topic(self, engine, make_circle, alice):
        calm = await make_circle("circle_calm", members=[alice.id])

        prompt = await engine.ensure_daily_prompt(calm.id)

        assert prompt.content in PROMPT_TEMPLATES["mindfulness"]


class TestDailyPromptSweep:
    @pytest.mark.asyncio
    async def test_sweep_covers_every_enabled_circle(self, engine, make_circle, circle, alice):
        await make_circle("circle_calm", members=[alice.id])
        await make_circle("circle_quiet", members=[alice.id], ai_enabled=False)

        created = await engine.run_daily_prompt_sweep()

        assert sorted(p.circleId for p in created) == ["circle_1", "circle_calm"]
        assert await engine.run_daily_prompt_sweep() == []

    @pytest.mark.asyncio
    async def test_failing_circle_does_not_stop_sweep(
        self, engine, repository, make_circle, circle, alice, monkeypatch,
    ):
        await make_circle("circle_calm", members=[alice.id])
        original = repository.get_prompt_for_day

        async def flaky(circle_id, day):
            if circle_id == circle.id:
                raise RuntimeError("read timeout")
            return await original(circle_id, day)

        monkeypatch.setattr(repository, "get_prompt_for_day", flaky)

        created = await engine.run_daily_prompt_sweep()

        assert [p.circleId for p in created] == ["circle_calm"]


# ─────────────────────────────────────────────────────────────────
# Lifecycle
# ─────────────────────────────────────────────────────────────────


class TestLifecycle:
    def test_start_arms_both_sweeps_once(self, engine, scheduler):
        engine.start()
        engine.start()

        assert engine.is_running is True
        assert len(scheduler.pending) == 2

    @pytest.mark.asyncio
    async def test_typing_sweep_runs_on_interval(self, engine, scheduler, events, circle, alice):
        engine.start()
        engine.presence.set_typing(circle.id, alice.id, True)
        events.clear()

        await scheduler.advance(5)

        assert events == [("typing", {"circleId": circle.id, "typingUsers": []})]

    @pytest.mark.asyncio
    async def test_prompt_sweep_runs_on_interval(self, engine, scheduler, repository, circle, clock):
        engine.start()

        await scheduler.advance(30)

        assert await repository.get_prompt_for_day(circle.id, clock.today()) is not None

    @pytest.mark.asyncio
    async def test_stop_cancels_sweeps_and_pending_replies(self, engine, scheduler, circle, alice):
        engine.start()
        await engine.pipeline.send(circle.id, alice, "@facilitator hello")
        assert len(scheduler.pending) == 3

        await engine.stop()

        assert engine.is_running is False
        assert scheduler.pending == []
        assert engine.facilitator.pending_count() == 0


# ─────────────────────────────────────────────────────────────────
# dependencies
# ─────────────────────────────────────────────────────────────────


class TestDependencies:
    @pytest.fixture(autouse=True)
    def reset_engine(self, monkeypatch):
        monkeypatch.setattr("common.database.mongodb._main_database", None)
        dependencies.reset_circle_engine()
        yield
        dependencies.reset_circle_engine()

    def test_get_before_init_raises(self):
        with pytest.raises(RuntimeError):
            dependencies.get_circle_engine()

    def test_init_with_explicit_repository(self, repository, clock, scheduler):
        engine = dependencies.init_circle_engine(repository=repository, clock=clock, scheduler=scheduler)

        assert isinstance(engine, CircleEngine)
        assert dependencies.get_circle_engine() is engine
        assert engine.repository is repository
        assert dependencies.get_message_pipeline(engine) is engine.pipeline

    def test_build_repository_memory_backend(self):
        repository = dependencies.build_repository(Settings(REPOSITORY_BACKEND="memory"))
        assert isinstance(repository, InMemoryRepository)

    def test_build_repository_mongo_backend(self, mock_db):
        repository = dependencies.build_repository(Settings(REPOSITORY_BACKEND="mongo"), mock_db)
        assert isinstance(repository, MongoRepository)

    def test_mongo_backend_falls_back_to_main_database(self, mock_db):
        main = MagicMock()
        main.db = mock_db
        set_main_database(main)

        repository = dependencies.build_repository(Settings(REPOSITORY_BACKEND="mongo"))

        assert isinstance(repository, MongoRepository)
        mock_db.__getitem__.assert_any_call("circlemessages")

    def test_mongo_backend_requires_database(self):
        with pytest.raises(RuntimeError):
            dependencies.build_repository(Settings(REPOSITORY_BACKEND="mongo"))
