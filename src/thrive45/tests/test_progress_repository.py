"""Tests for the SQL-backed remote progress repository."""
import asyncio
import time
from datetime import date
from unittest.mock import patch

import pytest
from faker import Faker
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from thrive45.errors import RemoteUnavailable
from thrive45.models.base import create_session_factory
from thrive45.models.models import Challenge, DailyTask
from thrive45.models.record_models import ChallengeStatus, DailyTaskRecord
from thrive45.services import progress_repository
from thrive45.services.progress_repository import SqlProgressRepository

fake = Faker()


def _row(challenge_id: str, on: date, **fields) -> DailyTaskRecord:
    return DailyTaskRecord(challenge_id=challenge_id, date=on, day_number=1, **fields)


@pytest.mark.asyncio
async def test_create_and_get_active_challenge(repository: SqlProgressRepository) -> None:
    """Test a created challenge is the user's active one."""
    user_id = fake.uuid4()

    assert await repository.get_active_challenge(user_id) is None

    created = await repository.create_challenge(user_id, date(2024, 1, 1), 1)
    active = await repository.get_active_challenge(user_id)

    assert active == created
    assert active.status is ChallengeStatus.ACTIVE
    assert active.start_date == date(2024, 1, 1)
    assert active.current_day == 1
    assert await repository.get_active_challenge(fake.uuid4()) is None


@pytest.mark.asyncio
async def test_mark_failed(repository: SqlProgressRepository) -> None:
    user_id = fake.uuid4()
    created = await repository.create_challenge(user_id, date(2024, 1, 1), 1)

    await repository.mark_failed(created.id)

    assert await repository.get_active_challenge(user_id) is None


@pytest.mark.asyncio
async def test_update_current_day(repository: SqlProgressRepository) -> None:
    user_id = fake.uuid4()
    created = await repository.create_challenge(user_id, date(2024, 1, 1), 1)

    await repository.update_current_day(created.id, 7)

    assert (await repository.get_active_challenge(user_id)).current_day == 7


@pytest.mark.asyncio
async def test_upsert_daily_task(repository: SqlProgressRepository, db_engine: Engine) -> None:
    """Test the first upsert inserts and the second updates the same row."""
    created = await repository.create_challenge(fake.uuid4(), date(2024, 1, 1), 1)

    await repository.upsert_daily_task(_row(created.id, date(2024, 1, 1), water_glasses=3))
    await repository.upsert_daily_task(
        _row(created.id, date(2024, 1, 1), water_glasses=8, water_consumed=True)
    )

    rows = await repository.list_daily_tasks(created.id)
    assert len(rows) == 1
    assert rows[0].water_glasses == 8
    assert rows[0].water_consumed is True
    assert rows[0].id is not None

    with Session(db_engine) as db:
        assert db.query(DailyTask).count() == 1


@pytest.mark.asyncio
async def test_insert_daily_tasks(repository: SqlProgressRepository) -> None:
    created = await repository.create_challenge(fake.uuid4(), date(2024, 1, 1), 3)
    records = [_row(created.id, date(2024, 1, day)) for day in (3, 1, 2)]

    assert await repository.insert_daily_tasks(records) == 3
    assert await repository.insert_daily_tasks([]) == 0

    rows = await repository.list_daily_tasks(created.id)
    assert [row.date for row in rows] == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]
    assert rows[0].mindfulness_completed is None


@pytest.mark.asyncio
async def test_duplicate_rows_raise_remote_unavailable(repository: SqlProgressRepository) -> None:
    """Test a constraint violation is reported as a remote failure."""
    created = await repository.create_challenge(fake.uuid4(), date(2024, 1, 1), 1)
    records = [_row(created.id, date(2024, 1, 1)), _row(created.id, date(2024, 1, 1))]

    with pytest.raises(RemoteUnavailable) as exc_info:
        await repository.insert_daily_tasks(records)

    assert exc_info.value.operation == "insert_daily_tasks"
    assert await repository.list_daily_tasks(created.id) == []


@pytest.mark.asyncio
async def test_database_errors_raise_remote_unavailable(repository: SqlProgressRepository) -> None:
    with patch.object(
        repository,
        "session_factory",
        side_effect=OperationalError("SELECT 1", {}, Exception("database is locked")),
    ):
        with pytest.raises(RemoteUnavailable) as exc_info:
            await repository.get_active_challenge(fake.uuid4())

    assert exc_info.value.operation == "get_active_challenge"


@pytest.mark.asyncio
async def test_status_is_stored_as_text(repository: SqlProgressRepository, db_engine: Engine) -> None:
    created = await repository.create_challenge(fake.uuid4(), date(2024, 1, 1), 1)
    await repository.mark_failed(created.id)

    with Session(db_engine) as db:
        assert db.get(Challenge, created.id).status == "failed"


@pytest.mark.asyncio
async def test_timed_out_call_is_rolled_back(db_engine: Engine) -> None:
    """Test a create that times out never leaves an active challenge behind."""
    repository = SqlProgressRepository(create_session_factory(db_engine), timeout=0.05)
    user_id = fake.uuid4()
    to_record = progress_repository._to_challenge_record

    def slow_to_record(challenge):
        time.sleep(0.3)
        return to_record(challenge)

    with patch.object(progress_repository, "_to_challenge_record", side_effect=slow_to_record):
        with pytest.raises(RemoteUnavailable) as excinfo:
            await repository.create_challenge(user_id, date(2024, 1, 1), 1)
        await asyncio.sleep(0.6)

    assert excinfo.value.operation == "create_challenge"
    with Session(db_engine) as db:
        assert db.query(Challenge).count() == 0
    assert await repository.get_active_challenge(user_id) is None


if __name__ == "__main__":
    pytest.main([__file__])
