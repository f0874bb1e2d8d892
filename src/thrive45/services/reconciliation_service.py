"""Reconciliation of local and remote challenge state on identity changes."""
import asyncio
import logging
from enum import Enum
from typing import Optional, Set

from thrive45 import monitoring
from thrive45.errors import RemoteUnavailable
from thrive45.models.challenge_models import ChallengeState
from thrive45.models.record_models import ChallengeRecord
from thrive45.services import notification_service as notices
from thrive45.services.notification_service import NotificationService
from thrive45.services.progress_repository import ProgressRepository
from thrive45.services.progress_session import ProgressSession
from thrive45.services.snapshot_store import SnapshotStore
from thrive45.services.streak_service import compute_streak
from thrive45.services.task_mapping import progress_to_record, record_to_progress

logger = logging.getLogger(__name__)


class ReconciliationPhase(Enum):
    """Which source of truth the session currently runs on."""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING_UNKNOWN = "authenticating_unknown"
    AUTHENTICATED_NO_REMOTE = "authenticated_no_remote"
    AUTHENTICATED_WITH_REMOTE = "authenticated_with_remote"
    MIGRATING = "migrating"


class ReconciliationService:
    """Decides on every identity change whether to load, migrate or stay local.

    Every identity change bumps a generation counter, cancels the pass in
    flight and starts a new one. A pass only applies its result while its
    generation is still the latest. Migrations are shielded from
    cancellation and hold the session lock until their result is applied,
    so saves made meanwhile wait for them instead of being overwritten.
    """

    def __init__(
        self,
        session: ProgressSession,
        store: SnapshotStore,
        repository: ProgressRepository,
        notifications: NotificationService,
    ):
        """Initialize the engine around the session it hydrates."""
        self.session = session
        self.store = store
        self.repository = repository
        self.notifications = notifications
        self.phase = ReconciliationPhase.AUTHENTICATING_UNKNOWN
        self.generation = 0
        self.is_loading = True
        self.running = False
        self._pass: Optional[asyncio.Task] = None
        self._migrations: Set[asyncio.Task] = set()

    async def start(self) -> None:
        """Enter the unknown-identity phase until the first identity event."""
        if self.running:
            return
        self.phase = ReconciliationPhase.AUTHENTICATING_UNKNOWN
        self.is_loading = True
        self.session.suspend_remote()
        self.running = True
        logger.info("Reconciliation started, waiting for identity")

    async def stop(self) -> None:
        """Cancel the pass in flight and wait for running migrations."""
        if self._pass is not None:
            self._pass.cancel()
            await asyncio.gather(self._pass, return_exceptions=True)
            self._pass = None
        if self._migrations:
            await asyncio.gather(*list(self._migrations), return_exceptions=True)
        self.running = False
        logger.info("Reconciliation stopped")

    def identity_changed(self, user_id: Optional[str]) -> int:
        """Report a new identity (``None`` when signed out).

        Must be called from the event loop. Returns the generation of the event.
        """
        self.generation += 1
        self.is_loading = True
        self.session.suspend_remote()
        if self._pass is not None and not self._pass.done():
            self._pass.cancel()
        self._pass = asyncio.create_task(self._run(self.generation, user_id))
        logger.debug("Identity event %d: %s", self.generation, user_id or "signed out")
        return self.generation

    async def wait_until_settled(self) -> None:
        """Wait until the pass for the latest identity has finished."""
        while self._pass is not None and not self._pass.done():
            await asyncio.gather(self._pass, return_exceptions=True)

    def _is_current(self, generation: int) -> bool:
        return generation == self.generation

    async def _run(self, generation: int, user_id: Optional[str]) -> None:
        try:
            await self.reconcile(generation, user_id)
        except asyncio.CancelledError:
            logger.debug("Reconciliation pass %d superseded", generation)
            raise
        except Exception as e:
            monitoring.reconciliations.labels(outcome="error").inc()
            logger.exception("Reconciliation pass %d failed: %s", generation, e)

    async def reconcile(self, generation: int, user_id: Optional[str]) -> None:
        """Run one reconciliation pass for ``user_id``."""
        if user_id is None:
            await self._apply_snapshot(generation, ReconciliationPhase.UNAUTHENTICATED, None)
            return

        try:
            record = await self.repository.get_active_challenge(user_id)
        except RemoteUnavailable as e:
            self._report_failure("load your progress", e)
            await self._apply_snapshot(generation, ReconciliationPhase.AUTHENTICATED_NO_REMOTE, user_id)
            return

        if record is not None:
            await self._load_remote(generation, user_id, record)
            return

        if not self._is_current(generation):
            return
        migration = asyncio.create_task(self._migrate(generation, user_id))
        self._migrations.add(migration)
        migration.add_done_callback(self._migration_done)
        await asyncio.shield(migration)

    def _migration_done(self, migration: asyncio.Task) -> None:
        self._migrations.discard(migration)
        if not migration.cancelled() and migration.exception() is not None:
            logger.error("Migration failed: %s", migration.exception())

    async def _load_remote(self, generation: int, user_id: str, record: ChallengeRecord) -> None:
        try:
            state = await self.hydrate(record)
        except RemoteUnavailable as e:
            self._report_failure("load your progress", e)
            await self._apply_snapshot(generation, ReconciliationPhase.AUTHENTICATED_NO_REMOTE, user_id)
            return
        await self._apply(generation, ReconciliationPhase.AUTHENTICATED_WITH_REMOTE, state, user_id, persist=True)

    async def hydrate(self, record: ChallengeRecord) -> ChallengeState:
        """Build the canonical state from a remote challenge and its day rows."""
        rows = await self.repository.list_daily_tasks(record.id)
        progress = {}
        for row in rows:
            day = record_to_progress(row)
            progress[day.date] = day

        current_day = record.current_day if record.current_day is not None and record.current_day >= 1 else 1
        return ChallengeState(
            is_started=True,
            current_day=current_day,
            start_date=record.start_date,
            daily_progress=progress,
            challenge_id=record.id,
            streak_days=compute_streak(progress, self.session.today(), self.session.challenge_length),
        )

    async def _migrate(self, generation: int, user_id: str) -> None:
        async with self.session.lock:
            if not self._is_current(generation):
                return
            local = self.store.load()
            if local is None or not local.is_started:
                self._bind(
                    generation, ReconciliationPhase.AUTHENTICATED_NO_REMOTE, ChallengeState.initial(), user_id
                )
                return

            self.phase = ReconciliationPhase.MIGRATING
            logger.info("Migrating local challenge (%d days) for user %s", len(local.daily_progress), user_id)

            created: Optional[ChallengeRecord] = None
            try:
                created = await self.repository.create_challenge(
                    user_id, local.start_date or self.session.today(), local.current_day
                )
                rows = [
                    progress_to_record(created.id, progress)
                    for _, progress in sorted(local.daily_progress.items())
                ]
                await self.repository.insert_daily_tasks(rows)
                record = await self.repository.get_active_challenge(user_id)
                if record is None:
                    raise RemoteUnavailable("get_active_challenge")
                state = await self.hydrate(record)
            except RemoteUnavailable as e:
                if created is not None:
                    await self._abandon_partial_migration(created.id)
                self._report_failure("sync your progress", e)
                monitoring.reconciliations.labels(outcome="migration_failed").inc()
                self._bind(generation, ReconciliationPhase.AUTHENTICATED_NO_REMOTE, local, user_id)
                return

            if self._bind(generation, ReconciliationPhase.AUTHENTICATED_WITH_REMOTE, state, user_id, persist=True):
                self.notifications.success(notices.get_synced_message())

    async def _abandon_partial_migration(self, challenge_id: str) -> None:
        try:
            await self.repository.mark_failed(challenge_id)
        except RemoteUnavailable as e:
            monitoring.remote_errors.labels(operation=e.operation).inc()
            logger.error("Could not abandon partial migration %s: %s", challenge_id, e)

    async def _apply(
        self,
        generation: int,
        phase: ReconciliationPhase,
        state: ChallengeState,
        user_id: Optional[str],
        persist: bool = False,
    ) -> bool:
        async with self.session.lock:
            return self._bind(generation, phase, state, user_id, persist=persist)

    async def _apply_snapshot(
        self, generation: int, phase: ReconciliationPhase, user_id: Optional[str]
    ) -> bool:
        """Bind the device copy, read under the session lock."""
        async with self.session.lock:
            state = self.store.load() or ChallengeState.initial()
            return self._bind(generation, phase, state, user_id)

    def _bind(
        self,
        generation: int,
        phase: ReconciliationPhase,
        state: ChallengeState,
        user_id: Optional[str],
        persist: bool = False,
    ) -> bool:
        """Hand the result of a pass to the session; the caller holds its lock."""
        if not self._is_current(generation):
            logger.debug("Discarding result of superseded pass %d", generation)
            monitoring.reconciliations.labels(outcome="superseded").inc()
            return False
        self.session.bind(state, user_id, persist=persist)
        self.phase = phase
        self.is_loading = False
        monitoring.reconciliations.labels(outcome=phase.value).inc()
        logger.info("Reconciled identity %s: %s", user_id or "anonymous", phase.value)
        return True

    def _report_failure(self, action: str, error: RemoteUnavailable) -> None:
        monitoring.remote_errors.labels(operation=error.operation).inc()
        logger.error("Error trying to %s: %s", action, error)
        self.notifications.warning(notices.get_remote_failure_message(action, error))
