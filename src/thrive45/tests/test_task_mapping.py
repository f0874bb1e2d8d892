"""Tests for the task <-> remote column mapping."""
from datetime import date

import pytest

from thrive45.models.challenge_models import DailyProgress, Task, TaskId, default_tasks
from thrive45.models.record_models import DailyTaskRecord
from thrive45.services.task_mapping import progress_to_record, record_to_progress


def _tasks() -> list[Task]:
    values = {
        TaskId.MINDFULNESS: 300,
        TaskId.GROWTH: "Atomic Habits, chapter 3",
        TaskId.HYDRATION: 5,
    }
    tasks = []
    for task in default_tasks():
        if task.id in values:
            task = task.with_value(values[task.id])
        elif task.id is not TaskId.MOVEMENT:
            task = task.with_completed(True)
        tasks.append(task)
    return tasks


def test_progress_to_record() -> None:
    """Test every task lands in its named column pair."""
    progress = DailyProgress.build(date(2024, 1, 10), _tasks(), 4)

    record = progress_to_record("challenge-1", progress)

    assert record.challenge_id == "challenge-1"
    assert record.date == date(2024, 1, 10)
    assert record.day_number == 4
    assert record.mindfulness_completed is True
    assert record.mindfulness_value == 300
    assert record.reading_completed is True
    assert record.reading_notes == "Atomic Habits, chapter 3"
    assert record.water_consumed is False
    assert record.water_glasses == 5
    assert record.diet_followed is True
    assert record.workout_completed is False
    assert record.digital_detox is True


def test_record_to_progress_restores_tasks() -> None:
    progress = DailyProgress.build(date(2024, 1, 10), _tasks(), 4)

    restored = record_to_progress(progress_to_record("challenge-1", progress))

    assert restored == progress


def test_record_to_progress_defaults() -> None:
    """Test empty columns become False / 0 / "" instead of None."""
    record = DailyTaskRecord(challenge_id="challenge-1", date=date(2024, 1, 10))

    progress = record_to_progress(record)

    assert progress.day == 1
    assert progress.completed is False
    assert [task.id for task in progress.tasks] == [task.id for task in default_tasks()]
    assert all(task.completed is False for task in progress.tasks)
    assert progress.task(TaskId.MINDFULNESS).value == 0
    assert progress.task(TaskId.GROWTH).value == ""
    assert progress.task(TaskId.HYDRATION).value == 0
    assert progress.task(TaskId.NUTRITION).value is None


def test_record_to_progress_keeps_stored_completion() -> None:
    """Test the stored flag wins over the value-derived rule."""
    record = DailyTaskRecord(
        challenge_id="challenge-1",
        date=date(2024, 1, 10),
        day_number=2,
        water_consumed=True,
        water_glasses=3.0,
        mindfulness_value=42.0,
    )

    progress = record_to_progress(record)

    hydration = progress.task(TaskId.HYDRATION)
    assert hydration.completed is True
    assert hydration.value == 3
    assert progress.task(TaskId.MINDFULNESS).value == 42


def test_record_to_progress_clamps_counter() -> None:
    record = DailyTaskRecord(challenge_id="c", date=date(2024, 1, 10), water_glasses=20)

    assert record_to_progress(record).task(TaskId.HYDRATION).value == 8


if __name__ == "__main__":
    pytest.main([__file__])
