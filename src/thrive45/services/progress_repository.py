"""Remote progress repository over the ``challenges`` and ``daily_tasks`` collections."""
import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from datetime import date
from typing import Callable, List, Optional, TypeVar

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from thrive45.errors import RemoteUnavailable
from thrive45.models.models import Challenge, DailyTask
from thrive45.models.record_models import ChallengeRecord, ChallengeStatus, DailyTaskRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

DAILY_TASK_FIELDS = (
    "day_number",
    "mindfulness_completed",
    "mindfulness_value",
    "reading_completed",
    "reading_notes",
    "water_consumed",
    "water_glasses",
    "diet_followed",
    "workout_completed",
    "digital_detox",
)


class ProgressRepository(ABC):
    """Async CRUD over remote challenge records, scoped by user id.

    Every method raises ``RemoteUnavailable`` on any failure.
    """

    @abstractmethod
    async def get_active_challenge(self, user_id: str) -> Optional[ChallengeRecord]:
        """Return the user's active challenge, if any."""

    @abstractmethod
    async def create_challenge(self, user_id: str, start_date: date, current_day: int) -> ChallengeRecord:
        """Create a new active challenge."""

    @abstractmethod
    async def mark_failed(self, challenge_id: str) -> None:
        """Move a challenge to the terminal ``failed`` status."""

    @abstractmethod
    async def update_current_day(self, challenge_id: str, current_day: int) -> None:
        """Store the challenge's current day counter."""

    @abstractmethod
    async def list_daily_tasks(self, challenge_id: str) -> List[DailyTaskRecord]:
        """All day rows of a challenge."""

    @abstractmethod
    async def upsert_daily_task(self, record: DailyTaskRecord) -> None:
        """Insert the row for (challenge, date) or update the existing one."""

    @abstractmethod
    async def insert_daily_tasks(self, records: List[DailyTaskRecord]) -> int:
        """Bulk insert day rows, returning how many were written."""


class SqlProgressRepository(ProgressRepository):
    """``ProgressRepository`` backed by SQLAlchemy.

    Each call opens its own session in a worker thread and is bounded by
    ``timeout`` seconds.
    """

    def __init__(self, session_factory: sessionmaker, timeout: float = 10.0):
        """Initialize the repository with a session factory."""
        self.session_factory = session_factory
        self.timeout = timeout

    async def _run(self, operation: str, func: Callable[[Session], T]) -> T:
        """Run ``func`` in one transaction on a worker thread.

        The thread cannot be interrupted, so a call that times out is marked
        abandoned and rolls back instead of committing. If its commit has
        already started, the commit is awaited and its result returned.
        """
        guard = threading.Lock()
        status = {"abandoned": False, "committed": False}

        def call() -> T:
            with self.session_factory() as db:
                try:
                    result = func(db)
                    with guard:
                        if status["abandoned"]:
                            db.rollback()
                            logger.warning("Rolled back %s after it timed out", operation)
                            return result
                        db.commit()
                        status["committed"] = True
                    return result
                except Exception:
                    db.rollback()
                    raise

        work = asyncio.ensure_future(asyncio.to_thread(call))
        try:
            try:
                return await asyncio.wait_for(asyncio.shield(work), timeout=self.timeout)
            except asyncio.TimeoutError:
                if not guard.acquire(blocking=False):
                    # Commit in progress
                    return await work
                committed = status["committed"]
                status["abandoned"] = not committed
                guard.release()
                if committed:
                    return await work
                work.add_done_callback(_log_late_failure)
                raise
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            logger.error("Remote operation %s failed: %s", operation, e)
            raise RemoteUnavailable(operation, e) from e

    async def get_active_challenge(self, user_id: str) -> Optional[ChallengeRecord]:
        def query(db: Session) -> Optional[ChallengeRecord]:
            challenge = (
                db.query(Challenge)
                .filter(
                    and_(
                        Challenge.user_id == user_id,
                        Challenge.status == ChallengeStatus.ACTIVE.value,
                    )
                )
                .order_by(Challenge.created_at.desc())
                .first()
            )
            return _to_challenge_record(challenge) if challenge else None

        return await self._run("get_active_challenge", query)

    async def create_challenge(self, user_id: str, start_date: date, current_day: int) -> ChallengeRecord:
        def create(db: Session) -> ChallengeRecord:
            challenge = Challenge(
                user_id=user_id,
                start_date=start_date,
                current_day=current_day,
                status=ChallengeStatus.ACTIVE.value,
            )
            db.add(challenge)
            db.flush()
            return _to_challenge_record(challenge)

        record = await self._run("create_challenge", create)
        logger.info("Created remote challenge %s for user %s", record.id, user_id)
        return record

    async def mark_failed(self, challenge_id: str) -> None:
        def update(db: Session) -> None:
            db.query(Challenge).filter(Challenge.id == challenge_id).update(
                {Challenge.status: ChallengeStatus.FAILED.value}
            )

        await self._run("mark_failed", update)
        logger.info("Marked remote challenge %s as failed", challenge_id)

    async def update_current_day(self, challenge_id: str, current_day: int) -> None:
        def update(db: Session) -> None:
            db.query(Challenge).filter(Challenge.id == challenge_id).update(
                {Challenge.current_day: current_day}
            )

        await self._run("update_current_day", update)

    async def list_daily_tasks(self, challenge_id: str) -> List[DailyTaskRecord]:
        def query(db: Session) -> List[DailyTaskRecord]:
            rows = (
                db.query(DailyTask)
                .filter(DailyTask.challenge_id == challenge_id)
                .order_by(DailyTask.date)
                .all()
            )
            return [_to_daily_task_record(row) for row in rows]

        return await self._run("list_daily_tasks", query)

    async def upsert_daily_task(self, record: DailyTaskRecord) -> None:
        def upsert(db: Session) -> None:
            row = (
                db.query(DailyTask)
                .filter(
                    and_(
                        DailyTask.challenge_id == record.challenge_id,
                        DailyTask.date == record.date,
                    )
                )
                .first()
            )
            if row is None:
                db.add(_to_daily_task_row(record))
            else:
                for name in DAILY_TASK_FIELDS:
                    setattr(row, name, getattr(record, name))

        await self._run("upsert_daily_task", upsert)

    async def insert_daily_tasks(self, records: List[DailyTaskRecord]) -> int:
        if not records:
            return 0

        def insert(db: Session) -> int:
            db.add_all([_to_daily_task_row(record) for record in records])
            return len(records)

        return await self._run("insert_daily_tasks", insert)


def _log_late_failure(work: "asyncio.Future") -> None:
    if not work.cancelled() and work.exception() is not None:
        logger.error("Abandoned remote operation failed: %s", work.exception())


def _to_challenge_record(challenge: Challenge) -> ChallengeRecord:
    return ChallengeRecord(
        id=challenge.id,
        user_id=challenge.user_id,
        start_date=challenge.start_date,
        current_day=challenge.current_day,
        status=ChallengeStatus(challenge.status),
    )


def _to_daily_task_record(row: DailyTask) -> DailyTaskRecord:
    return DailyTaskRecord(
        id=row.id,
        challenge_id=row.challenge_id,
        date=row.date,
        **{name: getattr(row, name) for name in DAILY_TASK_FIELDS},
    )


def _to_daily_task_row(record: DailyTaskRecord) -> DailyTask:
    return DailyTask(
        challenge_id=record.challenge_id,
        date=record.date,
        **{name: getattr(record, name) for name in DAILY_TASK_FIELDS},
    )
