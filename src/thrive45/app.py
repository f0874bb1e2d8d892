"""Application wiring for the progress engine."""
import logging
from datetime import date
from typing import Callable, Optional

from thrive45.config import Settings, ensure_directories, settings as default_settings
from thrive45.models.base import create_db_engine, create_session_factory, init_db
from thrive45.models.challenge_models import ChallengeState
from thrive45.monitoring import start_monitoring
from thrive45.services.notification_service import NotificationService
from thrive45.services.progress_repository import ProgressRepository, SqlProgressRepository
from thrive45.services.progress_session import ProgressSession
from thrive45.services.reconciliation_service import ReconciliationService
from thrive45.services.snapshot_store import SnapshotStore


class Thrive45App:
    """Composition root: builds the stores and services and drives their lifecycle.

    The presentation layer holds this object, reads ``state`` and calls the
    three operations on ``session``.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        repository: Optional[ProgressRepository] = None,
        today: Callable[[], date] = date.today,
    ):
        """Initialize the application."""
        self.settings = settings or default_settings
        self.logger = logging.getLogger(__name__)
        self.running = False
        self.engine = None

        if repository is None:
            self.engine = create_db_engine(self.settings.database.url, self.settings.database.echo)
            repository = SqlProgressRepository(
                create_session_factory(self.engine),
                timeout=self.settings.database.timeout,
            )
        self.repository = repository

        self.store = SnapshotStore(self.settings.paths.data_dir, self.settings.storage.namespace)
        self.notifications = NotificationService()
        self.session = ProgressSession(
            self.store,
            self.repository,
            self.notifications,
            today=today,
            challenge_length=self.settings.challenge.length_days,
        )
        self.reconciliation = ReconciliationService(
            self.session, self.store, self.repository, self.notifications
        )

    @property
    def state(self) -> ChallengeState:
        return self.session.state

    @property
    def is_loading(self) -> bool:
        return self.reconciliation.is_loading

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            ensure_directories(self.settings.paths.data_dir)
            if self.engine is not None:
                init_db(self.engine)
                self.logger.info("Database initialized")

            if self.settings.monitoring.enabled:
                start_monitoring(self.settings.monitoring.port)
                self.logger.info("Metrics exposed on port %d", self.settings.monitoring.port)

            await self.reconciliation.start()
            self.running = True
            self.logger.info("Application started")

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the application."""
        await self.reconciliation.stop()
        await self.session.drain()
        if self.engine is not None:
            self.engine.dispose()
        self.running = False
        self.logger.info("Application stopped")

    async def sign_in(self, user_id: str) -> None:
        """Reconcile for a signed-in user and wait for the result."""
        self.reconciliation.identity_changed(user_id)
        await self.reconciliation.wait_until_settled()

    async def sign_out(self) -> None:
        """Return to local-only operation and wait for the result."""
        self.reconciliation.identity_changed(None)
        await self.reconciliation.wait_until_settled()
