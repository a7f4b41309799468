"""
Daily streak and XP rules.

Day boundaries are local calendar dates of naive timestamps:
- same day as last login: nothing changes
- last login was yesterday: streak + 1, today's count resets
- anything else (gap, or a date in the future): streak restarts at 1
"""

from __future__ import annotations

from datetime import datetime, timedelta

from curioloop.core.models import DailyStats


def apply_day_rollover(stats: DailyStats, now: datetime) -> tuple[DailyStats, bool]:
    """
    Advance stats to the day of ``now``.

    Returns:
        (stats, changed) where changed is False only on a same-day login
    """
    today = now.date()
    last = stats.last_login_date.date()

    if last == today:
        return stats, False

    if last == today - timedelta(days=1):
        streak = stats.streak_days + 1
    else:
        streak = 1

    return (
        stats.model_copy(
            update={
                "streak_days": streak,
                "chapters_completed_today": 0,
                "last_login_date": now,
            }
        ),
        True,
    )


def record_chapter_completion(stats: DailyStats, score: int, xp_per_point: int = 10) -> DailyStats:
    """One more chapter today, plus score-weighted XP."""
    return stats.model_copy(
        update={
            "chapters_completed_today": stats.chapters_completed_today + 1,
            "total_xp": stats.total_xp + max(0, score) * xp_per_point,
        }
    )
