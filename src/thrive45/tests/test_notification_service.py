"""Tests for notification service."""
import logging

import pytest

from thrive45.services.notification_service import (
    Notice,
    NoticeLevel,
    NotificationService,
    get_challenge_started_message,
    get_remote_failure_message,
)


def test_notify_records_and_forwards() -> None:
    """Test notices are kept and passed to subscribers."""
    service = NotificationService()
    received = []
    unsubscribe = service.subscribe(received.append)

    notice = service.success("Saved")
    unsubscribe()
    service.info("Not forwarded")

    assert notice.level is NoticeLevel.SUCCESS
    assert received == [notice]
    assert [n.message for n in service.notices] == ["Saved", "Not forwarded"]


def test_history_is_bounded() -> None:
    service = NotificationService(history_size=3)

    for index in range(5):
        service.info(f"notice {index}")

    assert [n.message for n in service.notices] == ["notice 2", "notice 3", "notice 4"]


def test_failing_subscriber_does_not_break_others() -> None:
    service = NotificationService()
    received = []

    def broken(notice: Notice) -> None:
        raise RuntimeError("boom")

    service.subscribe(broken)
    service.subscribe(received.append)
    service.warning("Careful")

    assert len(received) == 1


def test_notices_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    service = NotificationService()

    with caplog.at_level(logging.WARNING, logger="thrive45.services.notification_service"):
        service.warning("Remote down")

    assert "Remote down" in caplog.text


def test_messages() -> None:
    assert get_challenge_started_message(45).startswith("Your 45-day challenge has begun!")
    assert "Failed to save progress: timeout" in get_remote_failure_message("save progress", Exception("timeout"))


def test_clear() -> None:
    service = NotificationService()
    service.warning("Oops")

    service.clear()

    assert service.notices == []


if __name__ == "__main__":
    pytest.main([__file__])
