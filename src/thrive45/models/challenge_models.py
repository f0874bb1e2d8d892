"""Models for challenge progress state."""
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from thrive45.config import CHALLENGE_LENGTH_DAYS
from thrive45.errors import InvalidTaskSet, StorageCorrupt

TIMER_GOAL_SECONDS = 60  # a mindfulness session counts after one minute
HYDRATION_GOAL_GLASSES = 8

TaskValue = Union[int, str]


class TaskId(Enum):
    """The six fixed daily tasks."""
    MINDFULNESS = "mindfulness"
    GROWTH = "growth"
    HYDRATION = "hydration"
    NUTRITION = "nutrition"
    MOVEMENT = "movement"
    DIGITAL = "digital"


class TaskKind(Enum):
    """How a task records its value."""
    CHECKBOX = "checkbox"
    COUNTER = "counter"
    TIMER = "timer"
    TEXT = "text"


@dataclass(frozen=True)
class TaskDefinition:
    """Static content of a task."""
    title: str
    description: str
    kind: TaskKind
    max_value: Optional[int] = None


TASK_CATALOG: Dict[TaskId, TaskDefinition] = {
    TaskId.MINDFULNESS: TaskDefinition(
        "Mindfulness Session",
        "Take a few minutes to meditate and clear your mind.",
        TaskKind.TIMER,
    ),
    TaskId.GROWTH: TaskDefinition(
        "Growth Content",
        "Read or listen to content that helps you grow.",
        TaskKind.TEXT,
    ),
    TaskId.HYDRATION: TaskDefinition(
        "Hydration",
        "Track your water intake throughout the day.",
        TaskKind.COUNTER,
        max_value=HYDRATION_GOAL_GLASSES,
    ),
    TaskId.NUTRITION: TaskDefinition(
        "Nutrition Check",
        "How are your eating habits today?",
        TaskKind.CHECKBOX,
    ),
    TaskId.MOVEMENT: TaskDefinition(
        "Movement & Outdoors",
        "30 minutes of movement with at least 15 minutes outdoors.",
        TaskKind.CHECKBOX,
    ),
    TaskId.DIGITAL: TaskDefinition(
        "Digital Detox",
        "Take a break from screens and disconnect.",
        TaskKind.CHECKBOX,
    ),
}

TASK_ORDER: List[TaskId] = list(TASK_CATALOG)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class Task:
    """State of one task on one day."""
    id: TaskId
    title: str
    description: str
    kind: TaskKind
    completed: bool = False
    value: Optional[TaskValue] = None
    max_value: Optional[int] = None

    @classmethod
    def from_catalog(cls, task_id: TaskId) -> "Task":
        """Create a fresh, uncompleted task from the catalog."""
        definition = TASK_CATALOG[task_id]
        return cls(
            id=task_id,
            title=definition.title,
            description=definition.description,
            kind=definition.kind,
            max_value=definition.max_value,
        )

    def with_completed(self, completed: bool) -> "Task":
        """Return a copy with the completion flag set explicitly."""
        return replace(self, completed=completed)

    def with_value(self, value: TaskValue) -> "Task":
        """Return a copy holding ``value`` with ``completed`` derived from it."""
        if self.kind is TaskKind.COUNTER:
            if not _is_int(value):
                raise InvalidTaskSet(f"Task {self.id.value} expects an integer count")
            upper = self.max_value if self.max_value is not None else value
            value = max(0, min(value, upper))
            completed = self.max_value is not None and value >= self.max_value
        elif self.kind is TaskKind.TIMER:
            if not _is_int(value) or value < 0:
                raise InvalidTaskSet(f"Task {self.id.value} expects elapsed seconds")
            completed = value >= TIMER_GOAL_SECONDS
        elif self.kind is TaskKind.TEXT:
            if not isinstance(value, str):
                raise InvalidTaskSet(f"Task {self.id.value} expects text")
            completed = len(value.strip()) > 0
        else:
            return replace(self, value=value)
        return replace(self, value=value, completed=completed)

    def validate(self) -> None:
        """Check the value has the shape its kind allows."""
        expected = TASK_CATALOG[self.id].kind
        if self.kind is not expected:
            raise InvalidTaskSet(
                f"Task {self.id.value} must be a {expected.value} task, got {self.kind.value}"
            )
        if self.value is None or self.kind is TaskKind.CHECKBOX:
            return
        if self.kind is TaskKind.COUNTER:
            upper = self.max_value
            if not _is_int(self.value) or self.value < 0 or (upper is not None and self.value > upper):
                raise InvalidTaskSet(f"Task {self.id.value} count out of range: {self.value!r}")
        elif self.kind is TaskKind.TIMER:
            if not _is_int(self.value) or self.value < 0:
                raise InvalidTaskSet(f"Task {self.id.value} needs non-negative seconds: {self.value!r}")
        elif not isinstance(self.value, str):
            raise InvalidTaskSet(f"Task {self.id.value} needs a text value: {self.value!r}")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id.value,
            "title": self.title,
            "description": self.description,
            "kind": self.kind.value,
            "completed": self.completed,
        }
        if self.value is not None:
            data["value"] = self.value
        if self.max_value is not None:
            data["maxValue"] = self.max_value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        task_id = TaskId(data["id"])
        definition = TASK_CATALOG[task_id]
        return cls(
            id=task_id,
            title=data.get("title", definition.title),
            description=data.get("description", definition.description),
            kind=TaskKind(data.get("kind", data.get("type", definition.kind.value))),
            completed=bool(data.get("completed", False)),
            value=data.get("value"),
            max_value=data.get("maxValue", definition.max_value),
        )


def default_tasks() -> List[Task]:
    """Fresh, uncompleted task list in catalog order."""
    return [Task.from_catalog(task_id) for task_id in TASK_ORDER]


def validate_task_set(tasks: Iterable[Task]) -> List[Task]:
    """Validate a day's tasks and return them in catalog order.

    Raises:
        InvalidTaskSet: if the list is not exactly the six fixed tasks, or a
            task carries a value its kind does not allow.
    """
    by_id: Dict[TaskId, Task] = {}
    for task in tasks:
        if not isinstance(task, Task):
            raise InvalidTaskSet(f"Expected Task, got {type(task).__name__}")
        if task.id in by_id:
            raise InvalidTaskSet(f"Duplicate task: {task.id.value}")
        task.validate()
        by_id[task.id] = task

    missing = [task_id.value for task_id in TASK_ORDER if task_id not in by_id]
    if missing:
        raise InvalidTaskSet(f"Missing tasks: {', '.join(missing)}")

    return [by_id[task_id] for task_id in TASK_ORDER]


def parse_iso_date(value: Union[date, str]) -> date:
    """Accept a date or a YYYY-MM-DD string."""
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


@dataclass(frozen=True)
class DailyProgress:
    """The six tasks' state for one calendar date."""
    date: date
    tasks: List[Task]
    completed: bool
    day: int

    @classmethod
    def build(cls, on: date, tasks: List[Task], day: int) -> "DailyProgress":
        """Create a record with ``completed`` derived from its tasks."""
        return cls(date=on, tasks=tasks, completed=all(task.completed for task in tasks), day=day)

    def task(self, task_id: TaskId) -> Optional[Task]:
        for task in self.tasks:
            if task.id is task_id:
                return task
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "tasks": [task.to_dict() for task in self.tasks],
            "completed": self.completed,
            "day": self.day,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DailyProgress":
        tasks = [Task.from_dict(item) for item in data["tasks"]]
        return cls(
            date=date.fromisoformat(data["date"]),
            tasks=tasks,
            completed=all(task.completed for task in tasks),
            day=int(data["day"]),
        )


@dataclass(frozen=True)
class ChallengeState:
    """Everything known about the running challenge for one identity.

    ``streak_days`` is a cache recomputable from ``daily_progress``, and
    ``challenge_id`` is set only while the state is mirrored remotely.
    """
    is_started: bool = False
    current_day: int = 1
    start_date: Optional[date] = None
    daily_progress: Dict[date, DailyProgress] = field(default_factory=dict)
    challenge_id: Optional[str] = None
    streak_days: int = 0

    @classmethod
    def initial(cls) -> "ChallengeState":
        """The unstarted state."""
        return cls()

    @property
    def completed_dates(self) -> List[date]:
        """Dates whose six tasks were all completed, oldest first."""
        return sorted(day for day, progress in self.daily_progress.items() if progress.completed)

    def end_date(self, length_days: int = CHALLENGE_LENGTH_DAYS) -> Optional[date]:
        """Last calendar day of the challenge."""
        if self.start_date is None:
            return None
        return self.start_date + timedelta(days=length_days - 1)

    def days_remaining(self, length_days: int = CHALLENGE_LENGTH_DAYS) -> int:
        if not self.is_started:
            return length_days
        return max(0, length_days - self.current_day)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isStarted": self.is_started,
            "currentDay": self.current_day,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "dailyProgress": {
                day.isoformat(): progress.to_dict()
                for day, progress in sorted(self.daily_progress.items())
            },
            "challengeId": self.challenge_id,
            "streakDays": self.streak_days,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChallengeState":
        """Rebuild a state from its JSON form.

        Raises:
            StorageCorrupt: if the payload does not have the expected shape.
        """
        try:
            progress: Dict[date, DailyProgress] = {}
            for key, item in data["dailyProgress"].items():
                record = DailyProgress.from_dict(item)
                if record.date != date.fromisoformat(key):
                    raise ValueError(f"Progress key {key} does not match record date {record.date}")
                progress[record.date] = record

            start_date = data.get("startDate")
            challenge_id = data.get("challengeId")
            return cls(
                is_started=bool(data["isStarted"]),
                current_day=max(1, int(data.get("currentDay", 1))),
                start_date=date.fromisoformat(start_date) if start_date else None,
                daily_progress=progress,
                challenge_id=str(challenge_id) if challenge_id is not None else None,
                streak_days=max(0, int(data.get("streakDays", 0))),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StorageCorrupt(f"Invalid challenge snapshot: {e}") from e
