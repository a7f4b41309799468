"""
Pure progression rules for learning paths.

Nothing in this module performs I/O or mutates its arguments; every function
returns fresh models so the engine can swap results in atomically.

Rules:
- A freshly planned path has exactly one unlocked chapter (the first).
- Completing a chapter unlocks the next one in sequence order, if locked.
- Progress is the rounded percentage of completed chapters.
- Quiz scores are rounded half-up percentages (2/3 -> 67).
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime

from curioloop.core.models import (
    ChapterStatus,
    DiagnosticResult,
    LearningPath,
    LearningPlan,
    Question,
    UserProfile,
)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (67 for 66.67, 50 for 49.5)."""
    return int(math.floor(value + 0.5))


def percentage(part: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(100 * part / total)


# =============================================================================
# Quiz Scoring
# =============================================================================


@dataclass
class QuestionReview:
    """Per-question outcome shown after a quiz is submitted."""

    question: Question
    selected_index: int | None
    correct: bool

    @property
    def selected_option(self) -> str | None:
        if self.selected_index is None or not 0 <= self.selected_index < len(self.question.options):
            return None
        return self.question.options[self.selected_index]

    @property
    def correct_option(self) -> str:
        return self.question.options[self.question.correct_index]


def grade_answers(
    questions: Iterable[Question],
    answers: Mapping[str, int | None],
) -> tuple[list[QuestionReview], list[DiagnosticResult]]:
    """
    Grade selected option indexes against a quiz.

    Unanswered questions count as incorrect.

    Returns:
        (reviews, results) in question order
    """
    reviews: list[QuestionReview] = []
    results: list[DiagnosticResult] = []
    for question in questions:
        selected = answers.get(question.id)
        correct = question.is_correct(selected)
        reviews.append(QuestionReview(question=question, selected_index=selected, correct=correct))
        results.append(DiagnosticResult(question_id=question.id, correct=correct))
    return reviews, results


def compute_score(results: Iterable[DiagnosticResult | bool]) -> int:
    """Percentage of correct results, 0 for an empty quiz."""
    flags = [r.correct if isinstance(r, DiagnosticResult) else bool(r) for r in results]
    return percentage(sum(flags), len(flags))


# =============================================================================
# Plan & Path
# =============================================================================


def reset_unlock_state(plan: LearningPlan) -> LearningPlan:
    """First chapter unlocked, the rest locked, no scores."""
    chapters = [
        chapter.model_copy(
            update={
                "status": ChapterStatus.UNLOCKED if index == 0 else ChapterStatus.LOCKED,
                "score": None,
            }
        )
        for index, chapter in enumerate(plan.chapters)
    ]
    return plan.model_copy(update={"chapters": chapters})


def compute_progress(plan: LearningPlan) -> int:
    return percentage(plan.completed_count, len(plan.chapters))


def create_learning_path(profile: UserProfile, plan: LearningPlan, now: datetime) -> LearningPath:
    """Materialize a new path from a freshly generated plan."""
    return LearningPath(
        topic=profile.topic,
        created_at=now,
        last_accessed_at=now,
        user_profile=profile,
        plan=reset_unlock_state(plan),
        progress_percent=0,
    )


def touch_path(path: LearningPath, now: datetime) -> LearningPath:
    return path.model_copy(update={"last_accessed_at": now})


def complete_chapter(path: LearningPath, chapter_id: int, score: int, now: datetime) -> LearningPath:
    """
    Mark a chapter completed and unlock its successor.

    The input path is left untouched. A chapter id that is not in the plan
    returns the input path as-is.

    Args:
        path: Path owning the chapter
        chapter_id: Chapter just finished
        score: Quiz score 0-100
        now: Timestamp recorded as last access

    Returns:
        Updated copy of the path
    """
    index = path.plan.index_of(chapter_id)
    if index is None:
        return path

    plan = path.plan.model_copy(deep=True)
    chapters = plan.chapters

    chapters[index] = chapters[index].model_copy(
        update={"status": ChapterStatus.COMPLETED, "score": max(0, min(100, score))}
    )

    next_index = index + 1
    if next_index < len(chapters) and chapters[next_index].status is ChapterStatus.LOCKED:
        chapters[next_index] = chapters[next_index].model_copy(update={"status": ChapterStatus.UNLOCKED})

    return path.model_copy(
        update={
            "plan": plan,
            "progress_percent": compute_progress(plan),
            "last_accessed_at": now,
        }
    )
