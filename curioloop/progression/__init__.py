"""
Progression: unlock lifecycle, scoring, streaks and the engine state machine.

The pure rules live in ``progression`` and ``streaks``; ``engine`` is
imported directly by callers that need the state machine.
"""

from curioloop.progression.progression import (
    QuestionReview,
    complete_chapter,
    compute_progress,
    compute_score,
    create_learning_path,
    grade_answers,
    reset_unlock_state,
    round_half_up,
)
from curioloop.progression.streaks import apply_day_rollover, record_chapter_completion

__all__ = [
    "QuestionReview",
    "apply_day_rollover",
    "complete_chapter",
    "compute_progress",
    "compute_score",
    "create_learning_path",
    "grade_answers",
    "record_chapter_completion",
    "reset_unlock_state",
    "round_half_up",
]
