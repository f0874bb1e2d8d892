"""Mapping between the six fixed tasks and the ``daily_tasks`` columns.

The column names are part of the remote contract and are listed by hand:

    mindfulness -> mindfulness_completed, mindfulness_value
    growth      -> reading_completed, reading_notes
    hydration   -> water_consumed, water_glasses
    nutrition   -> diet_followed
    movement    -> workout_completed
    digital     -> digital_detox

Missing remote values default to ``False`` / ``0`` / ``""`` here and nowhere
else.
"""
from dataclasses import replace
from typing import Optional

from thrive45.models.challenge_models import DailyProgress, Task, TaskId, TaskValue
from thrive45.models.record_models import DailyTaskRecord


def _flag(value: Optional[bool]) -> bool:
    return bool(value) if value is not None else False


def _number(value: Optional[float]) -> int:
    return max(0, int(value)) if value is not None else 0


def _text(value: Optional[str]) -> str:
    return value if value is not None else ""


def _completed(progress: DailyProgress, task_id: TaskId) -> bool:
    task = progress.task(task_id)
    return task.completed if task else False


def _value(progress: DailyProgress, task_id: TaskId) -> Optional[TaskValue]:
    task = progress.task(task_id)
    return task.value if task else None


def progress_to_record(challenge_id: str, progress: DailyProgress) -> DailyTaskRecord:
    """Build the remote row for one day."""
    mindfulness_value = _value(progress, TaskId.MINDFULNESS)
    reading_notes = _value(progress, TaskId.GROWTH)
    water_glasses = _value(progress, TaskId.HYDRATION)
    return DailyTaskRecord(
        challenge_id=challenge_id,
        date=progress.date,
        day_number=progress.day,
        mindfulness_completed=_completed(progress, TaskId.MINDFULNESS),
        mindfulness_value=mindfulness_value if isinstance(mindfulness_value, int) else 0,
        reading_completed=_completed(progress, TaskId.GROWTH),
        reading_notes=reading_notes if isinstance(reading_notes, str) else "",
        water_consumed=_completed(progress, TaskId.HYDRATION),
        water_glasses=water_glasses if isinstance(water_glasses, int) else 0,
        diet_followed=_completed(progress, TaskId.NUTRITION),
        workout_completed=_completed(progress, TaskId.MOVEMENT),
        digital_detox=_completed(progress, TaskId.DIGITAL),
    )


def record_to_progress(record: DailyTaskRecord) -> DailyProgress:
    """Rebuild one day of tasks from a remote row."""
    tasks = [
        Task.from_catalog(TaskId.MINDFULNESS).with_completed(_flag(record.mindfulness_completed)),
        Task.from_catalog(TaskId.GROWTH).with_completed(_flag(record.reading_completed)),
        Task.from_catalog(TaskId.HYDRATION).with_completed(_flag(record.water_consumed)),
        Task.from_catalog(TaskId.NUTRITION).with_completed(_flag(record.diet_followed)),
        Task.from_catalog(TaskId.MOVEMENT).with_completed(_flag(record.workout_completed)),
        Task.from_catalog(TaskId.DIGITAL).with_completed(_flag(record.digital_detox)),
    ]
    values = {
        TaskId.MINDFULNESS: _number(record.mindfulness_value),
        TaskId.GROWTH: _text(record.reading_notes),
        TaskId.HYDRATION: _number(record.water_glasses),
    }
    tasks = [
        _with_raw_value(task, values[task.id]) if task.id in values else task
        for task in tasks
    ]
    day = record.day_number if record.day_number is not None and record.day_number >= 1 else 1
    return DailyProgress.build(record.date, tasks, day)


def _with_raw_value(task: Task, value: TaskValue) -> Task:
    # The stored completion flag is authoritative, so do not re-derive it.
    if isinstance(value, int) and task.max_value is not None:
        value = max(0, min(value, task.max_value))
    return replace(task, value=value)
