"""
Unit tests for the progression engine state machine.

A scripted provider stands in for Gemini; the store writes to a temp dir.
"""

import asyncio

import pytest
import pytest_asyncio

from curioloop.core.errors import GenerationError, NotFoundError, TransitionError
from curioloop.core.models import ChapterStatus, DailyStats, UserProfile
from curioloop.progression.engine import EngineState, ProgressionEngine
from curioloop.storage.store import LearningStore

ALL_CORRECT = {"q1": 0, "q2": 1, "q3": 2}


def script_path_creation(provider, diagnostic_payload, plan_payload):
    provider.script("generate_diagnostic_quiz", diagnostic_payload)
    provider.script("evaluate_and_plan", plan_payload)


async def create_path(engine, topic="Python"):
    engine.new_path()
    await engine.submit_profile(UserProfile(topic=topic, goal="Automate reports"))
    _, results = engine.review_diagnostic(ALL_CORRECT)
    return await engine.confirm_diagnostic(results)


@pytest_asyncio.fixture
async def dashboard(engine, fake_provider, diagnostic_payload, plan_payload):
    """Engine sitting on the dashboard of a freshly created path."""
    script_path_creation(fake_provider, diagnostic_payload, plan_payload)
    await create_path(engine)
    return engine


@pytest_asyncio.fixture
async def in_chapter(dashboard, fake_provider, chapter_payload):
    """Engine with chapter 1 open."""
    fake_provider.script("generate_chapter", chapter_payload)
    await dashboard.open_chapter(1)
    return dashboard


class TestStartup:
    """Construction loads stored state."""

    def test_initial_state(self, engine, clock):
        assert engine.state is EngineState.HOME
        assert engine.paths == []
        assert engine.stats.streak_days == 1
        assert engine.stats.last_login_date == clock.now
        assert engine.active_path is None
        assert not engine.is_loading

    def test_defaulted_stats_are_persisted(self, engine, store):
        assert store.load_stats() == engine.stats

    def test_rollover_on_startup(self, gateway, store, clock):
        store.save_stats(
            DailyStats(streak_days=6, chapters_completed_today=4, total_xp=900, last_login_date=clock.advance(days=-1))
        )
        clock.advance(days=1)

        engine = ProgressionEngine(gateway, store, clock=clock)

        assert engine.stats.streak_days == 7
        assert engine.stats.chapters_completed_today == 0
        assert store.load_stats().streak_days == 7


class TestPathCreation:
    """HOME -> CREATING_PATH -> DIAGNOSTIC -> PLANNING -> PATH_DASHBOARD."""

    @pytest.mark.asyncio
    async def test_happy_path(self, engine, fake_provider, diagnostic_payload, plan_payload, store, clock):
        script_path_creation(fake_provider, diagnostic_payload, plan_payload)

        engine.new_path()
        assert engine.state is EngineState.CREATING_PATH

        quiz = await engine.submit_profile(UserProfile(topic="Python"))
        assert engine.state is EngineState.DIAGNOSTIC
        assert engine.diagnostic_quiz is quiz

        reviews, results = engine.review_diagnostic({"q1": 0, "q2": 0})
        assert engine.state is EngineState.DIAGNOSTIC
        assert [r.correct for r in reviews] == [True, False, False]

        path = await engine.confirm_diagnostic(results)

        assert engine.state is EngineState.PATH_DASHBOARD
        assert engine.active_path == path
        assert engine.paths == [path]
        assert engine.diagnostic_quiz is None
        assert path.created_at == path.last_accessed_at == clock.now
        assert path.progress_percent == 0
        assert [c.status for c in path.plan.chapters].count(ChapterStatus.UNLOCKED) == 1
        assert store.load_paths() == [path]

    @pytest.mark.asyncio
    async def test_image_context_extracted_first(self, engine, fake_provider, diagnostic_payload):
        fake_provider.script("extract_context", "mitochondria, ATP")
        fake_provider.script("generate_diagnostic_quiz", diagnostic_payload)

        engine.new_path()
        await engine.submit_profile(UserProfile(topic="Biology", context_image=b"jpeg-bytes"))

        assert [r.operation for r in fake_provider.requests] == ["extract_context", "generate_diagnostic_quiz"]
        assert "mitochondria, ATP" in fake_provider.requests[1].instruction

    @pytest.mark.asyncio
    async def test_diagnostic_failure_stays_in_creating_path(self, engine, fake_provider, store):
        fake_provider.script("generate_diagnostic_quiz", "garbage")

        engine.new_path()
        with pytest.raises(GenerationError):
            await engine.submit_profile(UserProfile(topic="Python"))

        assert engine.state is EngineState.CREATING_PATH
        assert engine.last_error is not None
        assert engine.paths == []
        assert store.load_paths() == []
        assert not engine.is_loading

    @pytest.mark.asyncio
    async def test_plan_failure_returns_to_diagnostic(self, engine, fake_provider, diagnostic_payload):
        fake_provider.script("generate_diagnostic_quiz", diagnostic_payload)
        fake_provider.script("evaluate_and_plan", RuntimeError("quota"))

        engine.new_path()
        await engine.submit_profile(UserProfile(topic="Python"))
        _, results = engine.review_diagnostic(ALL_CORRECT)

        with pytest.raises(GenerationError):
            await engine.confirm_diagnostic(results)

        assert engine.state is EngineState.DIAGNOSTIC
        assert engine.diagnostic_quiz is not None
        assert engine.paths == []

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, engine, fake_provider, diagnostic_payload):
        fake_provider.script("generate_diagnostic_quiz", RuntimeError("flaky"), diagnostic_payload)

        engine.new_path()
        with pytest.raises(GenerationError):
            await engine.submit_profile(UserProfile(topic="Python"))
        await engine.submit_profile(UserProfile(topic="Python"))

        assert engine.state is EngineState.DIAGNOSTIC
        assert engine.last_error is None

    @pytest.mark.asyncio
    async def test_duplicate_submission_is_noop(self, engine, fake_provider, diagnostic_payload):
        fake_provider.script("generate_diagnostic_quiz", diagnostic_payload)
        fake_provider.gate = asyncio.Event()
        engine.new_path()

        first = asyncio.create_task(engine.submit_profile(UserProfile(topic="Python")))
        await asyncio.sleep(0)
        assert engine.is_loading

        assert await engine.submit_profile(UserProfile(topic="Python")) is None

        fake_provider.gate.set()
        assert (await first) is not None
        assert len(fake_provider.calls("generate_diagnostic_quiz")) == 1
        assert not engine.is_loading

    @pytest.mark.asyncio
    async def test_going_home_discards_pending_reply(self, engine, fake_provider, diagnostic_payload):
        fake_provider.script("generate_diagnostic_quiz", diagnostic_payload)
        fake_provider.gate = asyncio.Event()
        engine.new_path()

        pending = asyncio.create_task(engine.submit_profile(UserProfile(topic="Python")))
        await asyncio.sleep(0)
        engine.go_home()
        fake_provider.gate.set()

        assert await pending is None
        assert engine.state is EngineState.HOME
        assert engine.diagnostic_quiz is None

    @pytest.mark.asyncio
    async def test_late_failure_after_going_home_stays_home(self, engine, fake_provider):
        fake_provider.script("generate_diagnostic_quiz", RuntimeError("quota"))
        fake_provider.gate = asyncio.Event()
        engine.new_path()

        pending = asyncio.create_task(engine.submit_profile(UserProfile(topic="Python")))
        await asyncio.sleep(0)
        engine.go_home()
        fake_provider.gate.set()

        with pytest.raises(GenerationError):
            await pending
        assert engine.state is EngineState.HOME
        assert engine.last_error is not None
        assert not engine.is_loading


class TestTransitions:
    """Operations outside their state are programming errors."""

    @pytest.mark.asyncio
    async def test_submit_profile_from_home(self, engine):
        with pytest.raises(TransitionError):
            await engine.submit_profile(UserProfile(topic="Python"))

    def test_quiz_from_home(self, engine):
        with pytest.raises(TransitionError):
            engine.start_chapter_quiz()

    @pytest.mark.asyncio
    async def test_new_path_from_dashboard(self, dashboard):
        with pytest.raises(TransitionError):
            dashboard.new_path()

    @pytest.mark.asyncio
    async def test_go_home_and_banner_always_allowed(self, dashboard):
        dashboard.dismiss_banner()
        dashboard.go_home()

        assert dashboard.state is EngineState.HOME
        assert dashboard.active_path is None


class TestSelectPath:
    """Opening an existing path from home."""

    @pytest.mark.asyncio
    async def test_select_touches_and_persists(self, dashboard, clock, store):
        path_id = dashboard.active_path.id
        dashboard.go_home()
        later = clock.advance(hours=3)

        path = dashboard.select_path(path_id)

        assert dashboard.state is EngineState.PATH_DASHBOARD
        assert path.last_accessed_at == later
        assert store.load_paths()[0].last_accessed_at == later

    def test_unknown_path(self, engine):
        with pytest.raises(NotFoundError):
            engine.select_path("does-not-exist")

        assert engine.state is EngineState.HOME


class TestChapters:
    """Opening chapters and switching styles."""

    @pytest.mark.asyncio
    async def test_open_unlocked_chapter(self, in_chapter, fake_provider):
        assert in_chapter.state is EngineState.CHAPTER
        assert in_chapter.current_chapter_id == 1
        assert in_chapter.current_style == "Default"
        assert in_chapter.chapter_content.title == "Basics"

    @pytest.mark.asyncio
    async def test_locked_chapter_is_noop(self, dashboard, fake_provider):
        assert await dashboard.open_chapter(2) is None
        assert await dashboard.open_chapter(99) is None

        assert dashboard.state is EngineState.PATH_DASHBOARD
        assert fake_provider.calls("generate_chapter") == []

    @pytest.mark.asyncio
    async def test_unknown_style_rejected(self, dashboard):
        with pytest.raises(ValueError):
            await dashboard.open_chapter(1, "Shakespearean")

    @pytest.mark.asyncio
    async def test_chapter_failure_stays_on_dashboard(self, dashboard, fake_provider):
        fake_provider.script("generate_chapter", "{}")

        with pytest.raises(GenerationError):
            await dashboard.open_chapter(1)

        assert dashboard.state is EngineState.PATH_DASHBOARD
        assert dashboard.chapter_content is None

    @pytest.mark.asyncio
    async def test_late_chapter_failure_after_going_home(self, dashboard, fake_provider, chapter_payload):
        fake_provider.script("generate_chapter", RuntimeError("timeout"), chapter_payload)
        fake_provider.gate = asyncio.Event()

        pending = asyncio.create_task(dashboard.open_chapter(1))
        await asyncio.sleep(0)
        dashboard.go_home()
        fake_provider.gate.set()

        with pytest.raises(GenerationError):
            await pending
        assert dashboard.state is EngineState.HOME
        assert dashboard.active_path is None
        assert dashboard.last_error is not None

        dashboard.select_path(dashboard.paths[0].id)
        assert await dashboard.open_chapter(1) is not None
        assert dashboard.state is EngineState.CHAPTER

    @pytest.mark.asyncio
    async def test_change_style_replaces_content_only(self, in_chapter, fake_provider, chapter_payload, store):
        before = in_chapter.active_path
        restyled = dict(chapter_payload, summary="Like you're five: names are stickers.")
        fake_provider.script("generate_chapter", restyled)

        content = await in_chapter.change_style("Like I'm 5")

        assert in_chapter.state is EngineState.CHAPTER
        assert in_chapter.chapter_content is content
        assert content.summary.startswith("Like you're five")
        assert in_chapter.current_style == "Like I'm 5"
        assert in_chapter.active_path == before
        assert store.load_paths() == [before]
        assert "Like I'm 5" in fake_provider.calls("generate_chapter")[-1].instruction

    @pytest.mark.asyncio
    async def test_failed_style_change_keeps_content(self, in_chapter, fake_provider):
        original = in_chapter.chapter_content
        fake_provider.script("generate_chapter", RuntimeError("boom"))

        with pytest.raises(GenerationError):
            await in_chapter.change_style("Technical")

        assert in_chapter.state is EngineState.CHAPTER
        assert in_chapter.chapter_content is original
        assert in_chapter.current_style == "Default"


class TestChapterCompletion:
    """Quiz submission completes the chapter atomically."""

    @pytest.mark.asyncio
    async def test_submit_quiz(self, in_chapter, fake_provider, adapt_payload, store, clock):
        fake_provider.script("adapt_plan", adapt_payload)
        in_chapter.start_chapter_quiz()
        assert in_chapter.state is EngineState.QUIZ_WITHIN_CHAPTER

        update = await in_chapter.submit_chapter_quiz([True, True, False])

        assert update.feedback == "Nice work, review loops."
        assert in_chapter.state is EngineState.PATH_DASHBOARD
        assert in_chapter.chapter_content is None
        assert in_chapter.banner == "Score: 67%. Nice work, review loops."

        path = in_chapter.active_path
        first, second, third = path.plan.chapters
        assert (first.status, first.score) == (ChapterStatus.COMPLETED, 67)
        assert second.status is ChapterStatus.UNLOCKED
        assert third.status is ChapterStatus.LOCKED
        assert path.progress_percent == 33
        assert path.last_accessed_at == clock.now

        assert in_chapter.stats.chapters_completed_today == 1
        assert in_chapter.stats.total_xp == 670

        assert store.load_paths() == [path]
        assert store.load_stats() == in_chapter.stats

        assert "67%" in fake_provider.calls("adapt_plan")[0].instruction

    @pytest.mark.asyncio
    async def test_revised_plan_is_ignored(self, in_chapter, fake_provider, adapt_payload):
        adapt_payload["updated_plan"] = [
            {"chapter_id": 1, "title": "Replaced", "objective": "x", "difficulty": "easy"},
        ]
        fake_provider.script("adapt_plan", adapt_payload)
        in_chapter.start_chapter_quiz()

        await in_chapter.submit_chapter_quiz([True, True, True])

        assert [c.title for c in in_chapter.active_path.plan.chapters] == ["Basics", "Control Flow", "Generators"]

    @pytest.mark.asyncio
    async def test_adapt_failure_leaves_chapter_open(self, in_chapter, fake_provider, store):
        before = store.load_paths()
        fake_provider.script("adapt_plan", RuntimeError("timeout"))
        in_chapter.start_chapter_quiz()

        with pytest.raises(GenerationError):
            await in_chapter.submit_chapter_quiz([True, True, True])

        assert in_chapter.state is EngineState.QUIZ_WITHIN_CHAPTER
        assert in_chapter.active_path.plan.chapters[0].status is ChapterStatus.UNLOCKED
        assert in_chapter.stats.total_xp == 0
        assert store.load_paths() == before

    @pytest.mark.asyncio
    async def test_duplicate_completion_is_noop(self, in_chapter, fake_provider, adapt_payload):
        fake_provider.script("adapt_plan", adapt_payload)
        fake_provider.gate = asyncio.Event()
        in_chapter.start_chapter_quiz()

        first = asyncio.create_task(in_chapter.submit_chapter_quiz([True, True, True]))
        await asyncio.sleep(0)
        assert await in_chapter.submit_chapter_quiz([True, True, True]) is None

        fake_provider.gate.set()
        await first

        assert in_chapter.stats.chapters_completed_today == 1
        assert len(fake_provider.calls("adapt_plan")) == 1

    @pytest.mark.asyncio
    async def test_completion_after_midnight_keeps_loaded_streak(
        self, in_chapter, fake_provider, adapt_payload, gateway, store, clock
    ):
        fake_provider.script("adapt_plan", adapt_payload)
        in_chapter.start_chapter_quiz()
        loaded = in_chapter.stats
        clock.advance(days=1)

        await in_chapter.submit_chapter_quiz([True, True, True])

        assert in_chapter.stats.streak_days == loaded.streak_days
        assert in_chapter.stats.last_login_date == loaded.last_login_date
        assert in_chapter.stats.chapters_completed_today == loaded.chapters_completed_today + 1

        restarted = ProgressionEngine(gateway, store, clock=clock)

        assert restarted.stats.streak_days == loaded.streak_days + 1
        assert restarted.stats.chapters_completed_today == 0
        assert restarted.stats.last_login_date == clock.now

    @pytest.mark.asyncio
    async def test_whole_path(self, in_chapter, fake_provider, chapter_payload, adapt_payload):
        fake_provider.script("adapt_plan", adapt_payload)
        in_chapter.start_chapter_quiz()
        await in_chapter.submit_chapter_quiz([True, True, True])

        for chapter_id in (2, 3):
            fake_provider.script("generate_chapter", dict(chapter_payload, chapter_id=chapter_id))
            fake_provider.script("adapt_plan", adapt_payload)
            await in_chapter.open_chapter(chapter_id)
            in_chapter.start_chapter_quiz()
            await in_chapter.submit_chapter_quiz([True, False, True])

        path = in_chapter.active_path
        assert path.is_complete
        assert path.progress_percent == 100
        assert in_chapter.stats.chapters_completed_today == 3
        assert in_chapter.stats.total_xp == 1000 + 670 + 670


class TestPersistence:
    """State survives a restart."""

    @pytest.mark.asyncio
    async def test_fresh_engine_sees_saved_state(self, in_chapter, fake_provider, adapt_payload, gateway, data_dir, clock):
        fake_provider.script("adapt_plan", adapt_payload)
        in_chapter.start_chapter_quiz()
        await in_chapter.submit_chapter_quiz([True, True, False])

        restarted = ProgressionEngine(gateway, LearningStore(data_dir), clock=clock)

        assert restarted.paths == in_chapter.paths
        assert restarted.stats == in_chapter.stats
        assert restarted.state is EngineState.HOME

    @pytest.mark.asyncio
    async def test_save_failure_is_not_fatal(self, dashboard, fake_provider, chapter_payload, adapt_payload, monkeypatch):
        from curioloop.core.errors import StorageError

        def broken(*args, **kwargs):
            raise StorageError("disk full")

        monkeypatch.setattr(dashboard.store, "save_paths", broken)
        monkeypatch.setattr(dashboard.store, "save_stats", broken)
        fake_provider.script("generate_chapter", chapter_payload)
        fake_provider.script("adapt_plan", adapt_payload)

        await dashboard.open_chapter(1)
        dashboard.start_chapter_quiz()
        await dashboard.submit_chapter_quiz([True])

        assert dashboard.state is EngineState.PATH_DASHBOARD
        assert dashboard.active_path.progress_percent == 33
