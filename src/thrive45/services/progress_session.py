"""Progress session: the start / save / reset operations on the challenge state."""
import asyncio
import logging
from dataclasses import replace
from datetime import date
from typing import Awaitable, Callable, Iterable, List, Optional, Set, Union

from thrive45 import monitoring
from thrive45.config import CHALLENGE_LENGTH_DAYS
from thrive45.errors import ChallengeNotStarted, RemoteUnavailable, StreakBroken
from thrive45.models.challenge_models import (
    ChallengeState,
    DailyProgress,
    Task,
    default_tasks,
    parse_iso_date,
    validate_task_set,
)
from thrive45.services import notification_service as notices
from thrive45.services.notification_service import NotificationService
from thrive45.services.progress_repository import ProgressRepository
from thrive45.services.snapshot_store import SnapshotStore
from thrive45.services.streak_service import compute_streak, next_day_number
from thrive45.services.task_mapping import progress_to_record

logger = logging.getLogger(__name__)


class ProgressSession:
    """Owns the in-memory ``ChallengeState`` and applies the three operations.

    Each operation holds ``lock`` for its whole read-modify-write, so
    operations never interleave. The local snapshot is written before any
    remote call; remote writes of ``save_daily_progress`` and ``reset`` run
    as background tasks in submission order and never roll back local state.
    """

    def __init__(
        self,
        store: SnapshotStore,
        repository: ProgressRepository,
        notifications: NotificationService,
        today: Callable[[], date] = date.today,
        challenge_length: int = CHALLENGE_LENGTH_DAYS,
    ):
        """Initialize the session with its stores and clock."""
        self.store = store
        self.repository = repository
        self.notifications = notifications
        self.today = today
        self.challenge_length = challenge_length
        self.state = ChallengeState.initial()
        self.user_id: Optional[str] = None
        self.remote_enabled = False
        self.lock = asyncio.Lock()
        self.pending: Set[asyncio.Task] = set()
        self._remote_lock = asyncio.Lock()

    @property
    def has_remote(self) -> bool:
        """Whether operations may call the remote repository."""
        return self.remote_enabled and self.user_id is not None

    def bind(self, state: ChallengeState, user_id: Optional[str], persist: bool = False) -> None:
        """Replace the whole state for a resolved identity.

        Callers must hold ``lock``.
        """
        self.state = state
        self.user_id = user_id
        self.remote_enabled = user_id is not None
        if persist:
            self.store.save(state)
        monitoring.streak_days.set(state.streak_days)
        logger.info(
            "Session bound to %s (started=%s, day=%d, streak=%d)",
            user_id or "anonymous",
            state.is_started,
            state.current_day,
            state.streak_days,
        )

    def suspend_remote(self) -> None:
        """Stop remote calls until the identity is resolved again."""
        self.remote_enabled = False

    def todays_tasks(self) -> List[Task]:
        """Today's saved tasks, or a fresh list if nothing was saved yet."""
        record = self.state.daily_progress.get(self.today())
        return list(record.tasks) if record else default_tasks()

    async def start(self) -> ChallengeState:
        """Begin a new challenge today, abandoning any active one."""
        async with self.lock:
            today = self.today()
            state = ChallengeState(
                is_started=True,
                current_day=1,
                start_date=today,
                daily_progress={},
                challenge_id=None,
                streak_days=0,
            )
            self._commit(state)

            if self.has_remote:
                challenge_id = await self._create_remote_challenge(self.user_id, today)
                if challenge_id is not None:
                    self._commit(replace(state, challenge_id=challenge_id))

            monitoring.challenges_started.inc()
            logger.info("Challenge started on %s", today)
            self.notifications.success(notices.get_challenge_started_message(self.challenge_length))
            return self.state

    async def save_daily_progress(self, on: Union[date, str], tasks: Iterable[Task]) -> ChallengeState:
        """Record the tasks of one day.

        Raises:
            InvalidTaskSet: if ``tasks`` is not exactly the six fixed tasks.
            ChallengeNotStarted: if no challenge is running.
        """
        tasks = validate_task_set(tasks)
        on = parse_iso_date(on)

        async with self.lock:
            state = self.state
            if not state.is_started:
                raise ChallengeNotStarted("Start the challenge before saving progress")

            today = self.today()
            try:
                current_day = next_day_number(state, on, today)
            except StreakBroken as e:
                logger.info("%s", e)
                monitoring.challenge_resets.labels(reason="streak_broken").inc()
                self.notifications.warning(notices.get_streak_broken_message(e.last_recorded.isoformat()))
                self._reset_locked()
                return self.state

            existing = state.daily_progress.get(on)
            day_number = existing.day if existing else current_day
            progress = DailyProgress.build(on, tasks, day_number)
            daily_progress = {**state.daily_progress, on: progress}
            state = replace(
                state,
                current_day=current_day,
                daily_progress=daily_progress,
                streak_days=compute_streak(daily_progress, today, self.challenge_length),
            )
            self._commit(state)

            if self.has_remote and state.challenge_id is not None:
                self._schedule(self._push_daily_progress(state.challenge_id, progress, current_day))

            monitoring.progress_saves.labels(completed=str(progress.completed).lower()).inc()
            logger.info(
                "Saved progress for %s (day %d, completed=%s, streak=%d)",
                on,
                day_number,
                progress.completed,
                state.streak_days,
            )
            if progress.completed and (existing is None or not existing.completed):
                self.notifications.success(notices.get_day_completed_message())
            return self.state

    async def reset(self) -> ChallengeState:
        """Abandon the challenge and return to the unstarted state."""
        async with self.lock:
            monitoring.challenge_resets.labels(reason="manual").inc()
            self._reset_locked()
            return self.state

    async def drain(self) -> None:
        """Wait for all background remote writes to finish."""
        while self.pending:
            await asyncio.gather(*list(self.pending))

    def _reset_locked(self) -> None:
        was_started = self.state.is_started
        challenge_id = self.state.challenge_id
        if self.has_remote and challenge_id is not None:
            self._schedule(self._mark_remote_failed(challenge_id))

        self.store.clear()
        self.state = ChallengeState.initial()
        monitoring.streak_days.set(0)
        logger.info("Challenge reset (challenge %s)", challenge_id)
        if was_started:
            self.notifications.info(notices.get_reset_message())

    def _commit(self, state: ChallengeState) -> None:
        self.store.save(state)
        self.state = state
        monitoring.streak_days.set(state.streak_days)

    def _schedule(self, coro: Awaitable[None]) -> None:
        task = asyncio.create_task(coro)
        self.pending.add(task)
        task.add_done_callback(self.pending.discard)

    def _report_remote_failure(self, action: str, error: RemoteUnavailable) -> None:
        monitoring.remote_errors.labels(operation=error.operation).inc()
        logger.error("Error trying to %s: %s", action, error)
        self.notifications.warning(notices.get_remote_failure_message(action, error))

    async def _create_remote_challenge(self, user_id: str, start_date: date) -> Optional[str]:
        async with self._remote_lock:
            try:
                active = await self.repository.get_active_challenge(user_id)
                if active is not None:
                    await self.repository.mark_failed(active.id)
                record = await self.repository.create_challenge(user_id, start_date, 1)
                return record.id
            except RemoteUnavailable as e:
                self._report_remote_failure("start challenge", e)
                return None

    async def _push_daily_progress(self, challenge_id: str, progress: DailyProgress, current_day: int) -> None:
        async with self._remote_lock:
            try:
                await self.repository.update_current_day(challenge_id, current_day)
                await self.repository.upsert_daily_task(progress_to_record(challenge_id, progress))
            except RemoteUnavailable as e:
                self._report_remote_failure("save progress", e)

    async def _mark_remote_failed(self, challenge_id: str) -> None:
        async with self._remote_lock:
            try:
                await self.repository.mark_failed(challenge_id)
            except RemoteUnavailable as e:
                self._report_remote_failure("reset challenge", e)
