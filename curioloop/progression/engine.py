"""
Progression Engine.

The state machine behind a CurioLoop session:

    HOME -> CREATING_PATH -> DIAGNOSTIC -> PLANNING -> PATH_DASHBOARD
    PATH_DASHBOARD <-> CHAPTER -> QUIZ_WITHIN_CHAPTER -> PATH_DASHBOARD

Generation calls are the only suspension points. Each one claims an in-flight
key (``diagnostic``, ``plan``, ``chapter:<id>``, ``complete:<id>``) so a
duplicate call while the first is pending is a no-op returning None. Results
are applied in a single synchronous block after the await, and only if the
engine is still where the request left it (a ``go_home`` in the meantime
discards the reply).

On GenerationError the engine goes back to the state it was in before the
operation, records ``last_error`` and re-raises. Paths and stats are untouched.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime
from enum import Enum

from loguru import logger

from curioloop.core.errors import GenerationError, NotFoundError, StorageError, TransitionError
from curioloop.core.models import (
    CHAPTER_STYLES,
    DEFAULT_STYLE,
    AdaptiveUpdate,
    ChapterContent,
    ChapterStatus,
    DailyStats,
    DiagnosticQuiz,
    DiagnosticResult,
    LearningPath,
    Question,
    UserProfile,
)
from curioloop.generation.gateway import GenerationGateway
from curioloop.progression.progression import (
    QuestionReview,
    complete_chapter,
    compute_score,
    create_learning_path,
    grade_answers,
    touch_path,
)
from curioloop.progression.streaks import record_chapter_completion
from curioloop.storage.store import LearningStore


class EngineState(str, Enum):
    """Screens of the learning flow."""

    HOME = "home"
    CREATING_PATH = "creating_path"
    DIAGNOSTIC = "diagnostic"
    PLANNING = "planning"
    PATH_DASHBOARD = "path_dashboard"
    CHAPTER = "chapter"
    QUIZ_WITHIN_CHAPTER = "quiz_within_chapter"


class ProgressionEngine:
    """
    Owns the path collection and daily stats and drives every transition.

    Only the engine mutates paths and stats; the store is written after each
    in-memory commit.

    Example:
        engine = ProgressionEngine(gateway, LearningStore(settings.data_dir))
        engine.new_path()
        quiz = await engine.submit_profile(UserProfile(topic="Rust"))
        reviews, results = engine.review_diagnostic(answers)
        path = await engine.confirm_diagnostic(results)
    """

    def __init__(
        self,
        gateway: GenerationGateway,
        store: LearningStore,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.gateway = gateway
        self.store = store
        self._clock = clock
        self._xp_per_point = gateway.settings.xp_per_point

        paths, stats, stats_changed = store.load(clock())
        self._paths: list[LearningPath] = paths
        self._stats: DailyStats = stats
        if stats_changed:
            self._save_stats()

        self._state = EngineState.HOME
        self._active_path_id: str | None = None
        self._pending_profile: UserProfile | None = None
        self._diagnostic_quiz: DiagnosticQuiz | None = None
        self._chapter_content: ChapterContent | None = None
        self._current_chapter_id: int | None = None
        self._current_style = DEFAULT_STYLE
        self._banner: str | None = None
        self._last_error: str | None = None
        self._in_flight: set[str] = set()
        self._nav_epoch = 0

        logger.debug(f"Engine ready with {len(self._paths)} path(s)")

    # =========================================================================
    # Read-only Views
    # =========================================================================

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def paths(self) -> list[LearningPath]:
        return list(self._paths)

    @property
    def stats(self) -> DailyStats:
        return self._stats

    @property
    def active_path(self) -> LearningPath | None:
        if self._active_path_id is None:
            return None
        return self._find_path(self._active_path_id)

    @property
    def diagnostic_quiz(self) -> DiagnosticQuiz | None:
        return self._diagnostic_quiz

    @property
    def chapter_content(self) -> ChapterContent | None:
        return self._chapter_content

    @property
    def current_chapter_id(self) -> int | None:
        return self._current_chapter_id

    @property
    def current_style(self) -> str:
        return self._current_style

    @property
    def banner(self) -> str | None:
        return self._banner

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def is_loading(self) -> bool:
        return bool(self._in_flight)

    # =========================================================================
    # Internals
    # =========================================================================

    def _require(self, *states: EngineState) -> None:
        if self._state not in states:
            allowed = ", ".join(s.name for s in states)
            raise TransitionError(f"Cannot do this from {self._state.name} (expected {allowed})")

    def _find_path(self, path_id: str) -> LearningPath | None:
        for path in self._paths:
            if path.id == path_id:
                return path
        return None

    def _require_active_path(self) -> LearningPath:
        path = self.active_path
        if path is None:
            raise NotFoundError("Learning path", self._active_path_id)
        return path

    def _replace_path(self, updated: LearningPath) -> None:
        self._paths = [updated if p.id == updated.id else p for p in self._paths]

    def _busy(self, key: str) -> bool:
        if key in self._in_flight:
            logger.debug(f"Ignoring duplicate request: {key} already in flight")
            return True
        return False

    @contextmanager
    def _claim(self, key: str) -> Iterator[None]:
        self._in_flight.add(key)
        try:
            yield
        finally:
            self._in_flight.discard(key)

    def _fail(self, restore: EngineState, error: GenerationError, epoch: int) -> None:
        self._last_error = str(error)
        if epoch != self._nav_epoch:
            # navigated away while pending, the new state stands
            logger.warning(f"{error.operation} failed after navigation, staying in {self._state.name}: {error}")
            return
        self._state = restore
        logger.warning(f"{error.operation} failed, back to {restore.name}: {error}")

    def _stale(self, expected: EngineState, path_id: str | None = None) -> bool:
        """True when the engine moved on while a request was pending."""
        if self._state is not expected or (path_id is not None and self._active_path_id != path_id):
            logger.debug(f"Discarding stale reply (now in {self._state.name})")
            return True
        return False

    def _save_paths(self) -> None:
        try:
            self.store.save_paths(self._paths)
        except StorageError as e:
            logger.error(f"Failed to save learning paths: {e}")

    def _save_stats(self) -> None:
        try:
            self.store.save_stats(self._stats)
        except StorageError as e:
            logger.error(f"Failed to save daily stats: {e}")

    # =========================================================================
    # Path Creation
    # =========================================================================

    def new_path(self) -> None:
        self._require(EngineState.HOME)
        self._last_error = None
        self._state = EngineState.CREATING_PATH
        logger.info("Creating a new learning path")

    async def submit_profile(self, profile: UserProfile) -> DiagnosticQuiz | None:
        """
        Request the diagnostic quiz for a profile.

        When the profile carries an image, its extracted context is requested
        first and folded into the quiz prompt.
        """
        if self._busy("diagnostic"):
            return None
        self._require(EngineState.CREATING_PATH)

        with self._claim("diagnostic"):
            epoch = self._nav_epoch
            self._last_error = None
            try:
                context = None
                if profile.context_image:
                    context = await self.gateway.extract_context(
                        profile.context_image, profile.context_image_mime
                    )
                quiz = await self.gateway.generate_diagnostic_quiz(profile.topic, profile.level, context)
            except GenerationError as e:
                self._fail(EngineState.CREATING_PATH, e, epoch)
                raise

            if self._stale(EngineState.CREATING_PATH):
                return None

            self._pending_profile = profile
            self._diagnostic_quiz = quiz
            self._state = EngineState.DIAGNOSTIC
            logger.info(f"Diagnostic ready: {len(quiz.questions)} question(s) on {profile.topic}")
            return quiz

    def review_diagnostic(
        self, answers: Mapping[str, int | None]
    ) -> tuple[list[QuestionReview], list[DiagnosticResult]]:
        """Grade the diagnostic locally. The state does not change."""
        self._require(EngineState.DIAGNOSTIC)
        if self._diagnostic_quiz is None:
            raise TransitionError("No diagnostic quiz to review")
        return grade_answers(self._diagnostic_quiz.questions, answers)

    async def confirm_diagnostic(self, results: Iterable[DiagnosticResult]) -> LearningPath | None:
        """Build the plan from diagnostic results and activate the new path."""
        if self._busy("plan"):
            return None
        self._require(EngineState.DIAGNOSTIC)
        profile = self._pending_profile
        if profile is None:
            raise TransitionError("No profile submitted for this diagnostic")

        results = list(results)
        with self._claim("plan"):
            epoch = self._nav_epoch
            self._last_error = None
            self._state = EngineState.PLANNING
            try:
                plan = await self.gateway.evaluate_and_plan(profile.topic, results, profile.goal)
            except GenerationError as e:
                self._fail(EngineState.DIAGNOSTIC, e, epoch)
                raise

            if self._stale(EngineState.PLANNING):
                return None

            path = create_learning_path(profile, plan, self._clock())
            self._paths = [*self._paths, path]
            self._active_path_id = path.id
            self._pending_profile = None
            self._diagnostic_quiz = None
            self._state = EngineState.PATH_DASHBOARD
            self._save_paths()

        logger.info(f"Created path {path.id} ({path.topic}, {len(path.plan.chapters)} chapters)")
        return path

    # =========================================================================
    # Dashboard & Chapters
    # =========================================================================

    def select_path(self, path_id: str) -> LearningPath:
        """Open an existing path from the home screen."""
        self._require(EngineState.HOME)
        path = self._find_path(path_id)
        if path is None:
            raise NotFoundError("Learning path", path_id)

        path = touch_path(path, self._clock())
        self._replace_path(path)
        self._active_path_id = path.id
        self._state = EngineState.PATH_DASHBOARD
        self._save_paths()
        logger.info(f"Opened path {path.id}")
        return path

    async def open_chapter(self, chapter_id: int, style: str = DEFAULT_STYLE) -> ChapterContent | None:
        """
        Generate content for an unlocked or completed chapter.

        A chapter that is locked or not in the plan is ignored.
        """
        key = f"chapter:{chapter_id}"
        if self._busy(key):
            return None
        self._require(EngineState.PATH_DASHBOARD)
        if style not in CHAPTER_STYLES:
            raise ValueError(f"Unknown style: {style}")

        path = self._require_active_path()
        chapter = path.get_chapter(chapter_id)
        if chapter is None or chapter.status is ChapterStatus.LOCKED:
            logger.debug(f"Chapter {chapter_id} is missing or locked, not opening it")
            return None

        with self._claim(key):
            epoch = self._nav_epoch
            self._last_error = None
            try:
                content = await self.gateway.generate_chapter(path.topic, chapter, style)
            except GenerationError as e:
                self._fail(EngineState.PATH_DASHBOARD, e, epoch)
                raise

            if self._stale(EngineState.PATH_DASHBOARD, path.id):
                return None

            self._chapter_content = content
            self._current_chapter_id = chapter_id
            self._current_style = style
            self._state = EngineState.CHAPTER

        logger.info(f"Opened chapter {chapter_id} ({style})")
        return content

    async def change_style(self, style: str) -> ChapterContent | None:
        """Regenerate the open chapter in another style, replacing its content."""
        chapter_id = self._current_chapter_id
        key = f"chapter:{chapter_id}"
        if self._busy(key):
            return None
        self._require(EngineState.CHAPTER)
        if style not in CHAPTER_STYLES:
            raise ValueError(f"Unknown style: {style}")
        if chapter_id is None:
            raise TransitionError("No chapter is open")

        path = self._require_active_path()
        chapter = path.get_chapter(chapter_id)
        if chapter is None:
            return None

        with self._claim(key):
            epoch = self._nav_epoch
            self._last_error = None
            try:
                content = await self.gateway.generate_chapter(path.topic, chapter, style)
            except GenerationError as e:
                # previous content stays on screen
                self._fail(EngineState.CHAPTER, e, epoch)
                raise

            if self._stale(EngineState.CHAPTER, path.id) or self._current_chapter_id != chapter_id:
                return None

            self._chapter_content = content
            self._current_style = style

        logger.info(f"Chapter {chapter_id} restyled as {style}")
        return content

    def start_chapter_quiz(self) -> list[Question]:
        self._require(EngineState.CHAPTER)
        if self._chapter_content is None:
            raise TransitionError("No chapter content loaded")
        self._state = EngineState.QUIZ_WITHIN_CHAPTER
        return self._chapter_content.quiz

    async def submit_chapter_quiz(
        self, results: Iterable[DiagnosticResult | bool]
    ) -> AdaptiveUpdate | None:
        """
        Score the chapter quiz, collect feedback and complete the chapter.

        The chapter is marked completed, the next one unlocked, progress and
        daily stats updated, all in one step after the feedback arrives.
        Adjustments and any revised chapter list are logged but not applied.
        """
        chapter_id = self._current_chapter_id
        key = f"complete:{chapter_id}"
        if self._busy(key):
            return None
        self._require(EngineState.QUIZ_WITHIN_CHAPTER)
        if chapter_id is None:
            raise TransitionError("No chapter is open")

        path = self._require_active_path()
        score = compute_score(results)

        with self._claim(key):
            epoch = self._nav_epoch
            self._last_error = None
            try:
                update = await self.gateway.adapt_plan(path.plan, chapter_id, score)
            except GenerationError as e:
                self._fail(EngineState.QUIZ_WITHIN_CHAPTER, e, epoch)
                raise

            if self._stale(EngineState.QUIZ_WITHIN_CHAPTER, path.id):
                return None

            now = self._clock()
            current = self._find_path(path.id)
            if current is None:
                raise NotFoundError("Learning path", path.id)

            updated = complete_chapter(current, chapter_id, score, now)
            stats = record_chapter_completion(self._stats, score, self._xp_per_point)

            logger.debug(f"Adjustments for chapter {chapter_id}: {update.adjustments.model_dump()}")
            if update.revised_chapters:
                logger.debug(f"Ignoring revised plan with {len(update.revised_chapters)} chapter(s)")

            self._replace_path(updated)
            self._stats = stats
            self._banner = f"Score: {score}%. {update.feedback}"
            self._chapter_content = None
            self._current_chapter_id = None
            self._state = EngineState.PATH_DASHBOARD
            self._save_paths()
            self._save_stats()

        logger.info(f"Completed chapter {chapter_id} with {score}% ({updated.progress_percent}% of path)")
        return update

    # =========================================================================
    # Navigation
    # =========================================================================

    def go_home(self) -> None:
        self._nav_epoch += 1
        self._active_path_id = None
        self._pending_profile = None
        self._diagnostic_quiz = None
        self._chapter_content = None
        self._current_chapter_id = None
        self._current_style = DEFAULT_STYLE
        self._state = EngineState.HOME

    def dismiss_banner(self) -> None:
        self._banner = None
