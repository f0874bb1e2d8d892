"""Tests for the application wiring."""
import asyncio
from datetime import date
from pathlib import Path
from typing import Callable, List
from unittest.mock import patch

import pytest
from faker import Faker

from thrive45.__main__ import main
from thrive45.app import Thrive45App
from thrive45.config import (
    DatabaseSettings,
    MonitoringSettings,
    PathSettings,
    Settings,
)
from thrive45.models.challenge_models import Task
from thrive45.services.reconciliation_service import ReconciliationPhase

fake = Faker()


@pytest.fixture
def app_settings(tmp_path: Path) -> Settings:
    """Settings pointing at temporary storage."""
    return Settings(
        paths=PathSettings(data_dir=tmp_path / "data"),
        database=DatabaseSettings(url=f"sqlite:///{tmp_path / 'app.db'}", timeout=5),
        monitoring=MonitoringSettings(enabled=False),
    )


@pytest.mark.asyncio
async def test_offline_then_sign_in(
    app_settings: Settings, today: date, make_tasks: Callable[..., List[Task]]
) -> None:
    """Test progress made offline follows the user into their account."""
    app = Thrive45App(app_settings, today=lambda: today)
    await app.start()
    try:
        assert app.is_loading is True
        await app.sign_out()
        assert app.reconciliation.phase is ReconciliationPhase.UNAUTHENTICATED

        await app.session.start()
        await app.session.save_daily_progress(today, make_tasks(True))
        assert app.state.streak_days == 1
        assert app.store.path.exists()

        user_id = fake.uuid4()
        await app.sign_in(user_id)

        assert app.is_loading is False
        assert app.reconciliation.phase is ReconciliationPhase.AUTHENTICATED_WITH_REMOTE
        assert app.state.challenge_id is not None
        assert app.state.streak_days == 1
        assert (await app.repository.get_active_challenge(user_id)).id == app.state.challenge_id
    finally:
        await app.stop()

    assert app.running is False


@pytest.mark.asyncio
async def test_start_is_idempotent(app_settings: Settings) -> None:
    app = Thrive45App(app_settings)

    await app.start()
    await app.start()
    try:
        assert app.running is True
        assert app.reconciliation.running is True
    finally:
        await app.stop()


@pytest.mark.asyncio
async def test_start_exposes_metrics_when_enabled(app_settings: Settings) -> None:
    app_settings.monitoring = MonitoringSettings(enabled=True, port=9123)
    app = Thrive45App(app_settings)

    with patch("thrive45.app.start_monitoring") as start_monitoring:
        await app.start()
    try:
        start_monitoring.assert_called_once_with(9123)
    finally:
        await app.stop()


async def _until_running(app: Thrive45App) -> None:
    while not app.running:
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_main_runs_until_stopped(app_settings: Settings) -> None:
    """Test the entry point runs signed out and stops cleanly."""
    app = Thrive45App(app_settings)
    stop = asyncio.Event()

    with patch("thrive45.__main__.Thrive45App", return_value=app):
        runner = asyncio.create_task(main(stop))
        await asyncio.wait_for(_until_running(app), timeout=1)
        await app.reconciliation.wait_until_settled()
        assert app.reconciliation.phase is ReconciliationPhase.UNAUTHENTICATED

        stop.set()
        await asyncio.wait_for(runner, timeout=1)

    assert app.running is False


if __name__ == "__main__":
    pytest.main([__file__])
