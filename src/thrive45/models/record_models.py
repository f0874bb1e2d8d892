"""Boundary records exchanged with the remote record store.

Every column the store may leave empty is an explicit ``Optional`` here.
Defaults are applied once, when a record is mapped back into the task model
(see ``thrive45.services.task_mapping``).
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class ChallengeStatus(Enum):
    """Lifecycle of a remote challenge row."""
    ACTIVE = "active"
    FAILED = "failed"


@dataclass
class ChallengeRecord:
    """One row of the ``challenges`` collection."""
    id: str
    user_id: str
    start_date: Optional[date]
    current_day: Optional[int]
    status: ChallengeStatus


@dataclass
class DailyTaskRecord:
    """One row of the ``daily_tasks`` collection."""
    challenge_id: str
    date: date
    day_number: Optional[int] = None
    mindfulness_completed: Optional[bool] = None
    mindfulness_value: Optional[float] = None
    reading_completed: Optional[bool] = None
    reading_notes: Optional[str] = None
    water_consumed: Optional[bool] = None
    water_glasses: Optional[float] = None
    diet_followed: Optional[bool] = None
    workout_completed: Optional[bool] = None
    digital_detox: Optional[bool] = None
    id: Optional[str] = None
