"""
Domain models for CurioLoop.

Every entity that crosses the generation boundary or is persisted is a pydantic
model, so a provider reply is either validated in full or rejected. Field
aliases carry the JSON names used on the wire and on disk (chapter_id,
learning_plan, correctIndex, ...); the Python attribute names are used
everywhere else. Both are accepted on input.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# =============================================================================
# Enums & Constants
# =============================================================================


class Level(str, Enum):
    """Self-reported starting level."""

    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class Difficulty(str, Enum):
    """Chapter difficulty."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ChapterStatus(str, Enum):
    """Unlock lifecycle of a chapter: locked -> unlocked -> completed."""

    LOCKED = "locked"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"


DEFAULT_STYLE = "Default"
CHAPTER_STYLES = (DEFAULT_STYLE, "Like I'm 5", "Technical", "Analogy Heavy")


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Profile & Questions
# =============================================================================


class UserProfile(_WireModel):
    """What the learner told us when starting a path. Immutable."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    topic: str
    level: Level = Level.BEGINNER
    goal: str = ""
    # Only used to condition the diagnostic; never written to disk.
    context_image: bytes | None = Field(default=None, exclude=True, repr=False)
    context_image_mime: str = Field(default="image/jpeg", exclude=True)

    @field_validator("topic")
    @classmethod
    def _topic_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("topic must not be empty")
        return value


class Question(_WireModel):
    """A multiple-choice question."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str
    kind: Literal["mcq"] = Field(default="mcq", alias="type")
    prompt: str = Field(alias="question")
    options: list[str] = Field(min_length=2)
    correct_index: int = Field(alias="correctIndex")
    explanation: str = ""

    @model_validator(mode="after")
    def _correct_index_in_range(self) -> Question:
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError(
                f"correctIndex {self.correct_index} out of range for {len(self.options)} options"
            )
        return self

    def is_correct(self, selected_index: int | None) -> bool:
        return selected_index == self.correct_index


def _unique_question_ids(questions: list[Question]) -> list[Question]:
    ids = [q.id for q in questions]
    if len(ids) != len(set(ids)):
        raise ValueError("question ids must be unique within a quiz")
    return questions


class DiagnosticQuiz(_WireModel):
    """Initial assessment. Lives only until the plan is materialized."""

    topic: str
    questions: list[Question] = Field(alias="quiz", min_length=1)

    @field_validator("questions")
    @classmethod
    def _unique_ids(cls, questions: list[Question]) -> list[Question]:
        return _unique_question_ids(questions)


class DiagnosticResult(_WireModel):
    """Outcome of one answered question, as sent to the planner."""

    question_id: str = Field(alias="questionId")
    correct: bool


# =============================================================================
# Plan
# =============================================================================


class Chapter(_WireModel):
    """One unit of the curriculum."""

    chapter_id: int = Field(ge=1)
    title: str
    objective: str
    estimated_minutes: int = Field(default=15, ge=0, alias="estimated_time_minutes")
    difficulty: Difficulty = Difficulty.MEDIUM
    topics: list[str] = Field(default_factory=list)
    status: ChapterStatus = ChapterStatus.LOCKED
    score: int | None = Field(default=None, ge=0, le=100)

    @field_validator("difficulty", mode="before")
    @classmethod
    def _lower_difficulty(cls, value):
        return value.lower() if isinstance(value, str) else value


class LearningPlan(_WireModel):
    """Ordered chapter curriculum produced from the diagnostic."""

    estimated_level: str
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    chapters: list[Chapter] = Field(alias="learning_plan", min_length=1)

    @field_validator("chapters")
    @classmethod
    def _ids_strictly_increasing(cls, chapters: list[Chapter]) -> list[Chapter]:
        ids = [c.chapter_id for c in chapters]
        if any(later <= earlier for earlier, later in zip(ids, ids[1:])):
            raise ValueError(f"chapter ids must be unique and increasing, got {ids}")
        return chapters

    def index_of(self, chapter_id: int) -> int | None:
        for index, chapter in enumerate(self.chapters):
            if chapter.chapter_id == chapter_id:
                return index
        return None

    def get_chapter(self, chapter_id: int) -> Chapter | None:
        index = self.index_of(chapter_id)
        return None if index is None else self.chapters[index]

    @property
    def completed_count(self) -> int:
        return sum(1 for c in self.chapters if c.status is ChapterStatus.COMPLETED)

    @property
    def frontier_chapter(self) -> Chapter | None:
        """The chapter currently unlocked but not yet completed."""
        for chapter in self.chapters:
            if chapter.status is ChapterStatus.UNLOCKED:
                return chapter
        return None


# =============================================================================
# Chapter Content
# =============================================================================


class Resource(_WireModel):
    title: str
    url: str
    description: str = ""


class ResourceSet(_WireModel):
    videos: list[Resource] = Field(default_factory=list)
    blogs: list[Resource] = Field(default_factory=list)
    docs: list[Resource] = Field(default_factory=list)


class ChapterContent(_WireModel):
    """Generated reading material for one chapter visit. Never persisted."""

    chapter_id: int
    title: str
    summary: str
    key_points: list[str] = Field(default_factory=list)
    example: str = ""
    analogy: str = ""
    diagram_prompt: str = ""
    resources: ResourceSet = Field(alias="external_resources")
    quiz: list[Question] = Field(alias="chapter_quiz", min_length=1)

    @field_validator("quiz")
    @classmethod
    def _unique_ids(cls, questions: list[Question]) -> list[Question]:
        return _unique_question_ids(questions)


# =============================================================================
# Adaptive Update
# =============================================================================


class Adjustments(_WireModel):
    difficulty_change: Literal["easier", "same", "harder"] = "same"
    remedial_topics_added: list[str] = Field(default_factory=list, alias="added_remedial_content")
    future_topics_skipped: list[str] = Field(default_factory=list, alias="skipped_future_topics")
    advanced_topics_added: list[str] = Field(default_factory=list, alias="added_advanced_topics")

    @field_validator("difficulty_change", mode="before")
    @classmethod
    def _lower_change(cls, value):
        return value.lower() if isinstance(value, str) else value


class AdaptiveUpdate(_WireModel):
    """Post-chapter feedback. Only ``feedback`` is applied."""

    chapter_id: int
    score: float = Field(alias="chapter_score")
    feedback: str
    adjustments: Adjustments
    revised_chapters: list[Chapter] | None = Field(default=None, alias="updated_plan")


# =============================================================================
# Persisted Aggregates
# =============================================================================


class LearningPath(_WireModel):
    """One learning journey: profile, plan and progress."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    topic: str
    created_at: datetime
    last_accessed_at: datetime
    user_profile: UserProfile
    plan: LearningPlan
    progress_percent: int = Field(default=0, ge=0, le=100)

    def get_chapter(self, chapter_id: int) -> Chapter | None:
        return self.plan.get_chapter(chapter_id)

    @property
    def completed_count(self) -> int:
        return self.plan.completed_count

    @property
    def frontier_chapter(self) -> Chapter | None:
        return self.plan.frontier_chapter

    @property
    def is_complete(self) -> bool:
        return self.completed_count == len(self.plan.chapters)


class DailyStats(_WireModel):
    """Process-wide gamification counters."""

    streak_days: int = Field(default=1, ge=1)
    chapters_completed_today: int = Field(default=0, ge=0)
    total_xp: int = Field(default=0, ge=0)
    last_login_date: datetime

    @classmethod
    def fresh(cls, now: datetime) -> DailyStats:
        return cls(last_login_date=now)
