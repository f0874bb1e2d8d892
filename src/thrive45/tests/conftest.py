"""Test configuration."""
import os
from datetime import date
from pathlib import Path
from typing import Callable, Generator, List

import pytest
from dotenv import load_dotenv

# Set test environment before any imports
os.environ["ENV"] = "test"

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from sqlalchemy.engine import Engine

from thrive45.models.base import create_db_engine, create_session_factory, init_db
from thrive45.models.challenge_models import Task, default_tasks
from thrive45.services.notification_service import NotificationService
from thrive45.services.progress_repository import SqlProgressRepository
from thrive45.services.progress_session import ProgressSession
from thrive45.services.snapshot_store import SnapshotStore

TODAY = date(2024, 1, 10)


@pytest.fixture
def today() -> date:
    """Fixed calendar date used as "today"."""
    return TODAY


@pytest.fixture
def make_tasks() -> Callable[..., List[Task]]:
    """Factory for a full task list with every task completed or not."""
    def factory(completed: bool = True) -> List[Task]:
        return [task.with_completed(completed) for task in default_tasks()]

    return factory


@pytest.fixture
def store(tmp_path: Path) -> SnapshotStore:
    """Snapshot store in a temporary directory."""
    return SnapshotStore(tmp_path / "data", "thrive45_challenge")


@pytest.fixture
def db_engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """Fresh SQLite database for each test."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'remote.db'}", echo=False)
    init_db(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def repository(db_engine: Engine) -> SqlProgressRepository:
    """SQL-backed remote repository."""
    return SqlProgressRepository(create_session_factory(db_engine), timeout=5)


@pytest.fixture
def notifications() -> NotificationService:
    return NotificationService()


@pytest.fixture
def session(
    store: SnapshotStore,
    repository: SqlProgressRepository,
    notifications: NotificationService,
    today: date,
) -> ProgressSession:
    """Progress session running on the fixed date, not yet bound to a user."""
    return ProgressSession(store, repository, notifications, today=lambda: today)
