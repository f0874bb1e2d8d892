"""Streak and day-counter rules."""
from datetime import date, timedelta
from typing import Dict, Optional

from thrive45.config import CHALLENGE_LENGTH_DAYS
from thrive45.errors import StreakBroken
from thrive45.models.challenge_models import ChallengeState, DailyProgress


def compute_streak(
    progress: Dict[date, DailyProgress],
    today: Optional[date] = None,
    max_days: int = CHALLENGE_LENGTH_DAYS,
) -> int:
    """Count consecutive fully completed days ending today.

    Walks backwards from ``today``. A missing record for today is not counted
    and does not end the walk; any earlier missing or incomplete day does.
    The walk covers at most ``max_days`` days.
    """
    today = today or date.today()
    streak = 0
    for offset in range(max_days):
        current = today - timedelta(days=offset)
        record = progress.get(current)
        if record is None and offset == 0:
            continue
        if record is None or not record.completed:
            break
        streak += 1
    return streak


def next_day_number(state: ChallengeState, on: date, today: date) -> int:
    """Challenge day number for a save on ``on``.

    The counter advances on the first save of a new day when yesterday was
    fully completed.

    Raises:
        StreakBroken: if this is the first save today, earlier progress exists,
            and yesterday is missing or incomplete.
    """
    if on != today or today in state.daily_progress:
        return state.current_day

    yesterday = state.daily_progress.get(today - timedelta(days=1))
    if yesterday is not None and yesterday.completed:
        return state.current_day + 1

    if state.daily_progress:
        raise StreakBroken(max(state.daily_progress), today)

    return state.current_day
