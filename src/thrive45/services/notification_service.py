"""Service for advisory notices shown to the user."""
import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Callable, List

logger = logging.getLogger(__name__)


class NoticeLevel(Enum):
    """Severity of a notice."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"


_LOG_LEVELS = {
    NoticeLevel.INFO: logging.INFO,
    NoticeLevel.SUCCESS: logging.INFO,
    NoticeLevel.WARNING: logging.WARNING,
}


@dataclass
class Notice:
    """A single non-blocking message for the presentation layer."""
    level: NoticeLevel
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class NotificationService:
    """Collects notices and forwards them to subscribers."""

    def __init__(self, history_size: int = 50):
        """Initialize the service with a bounded history."""
        self.history_size = history_size
        self.notices: List[Notice] = []
        self._subscribers: List[Callable[[Notice], None]] = []

    def subscribe(self, callback: Callable[[Notice], None]) -> Callable[[], None]:
        """Register ``callback`` for new notices; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def notify(self, level: NoticeLevel, message: str) -> Notice:
        notice = Notice(level=level, message=message)
        logger.log(_LOG_LEVELS[level], "Notice (%s): %s", level.value, message)
        self.notices.append(notice)
        del self.notices[:-self.history_size]
        for callback in list(self._subscribers):
            try:
                callback(notice)
            except Exception as e:
                logger.error("Notice subscriber failed: %s", e)
        return notice

    def info(self, message: str) -> Notice:
        return self.notify(NoticeLevel.INFO, message)

    def success(self, message: str) -> Notice:
        return self.notify(NoticeLevel.SUCCESS, message)

    def warning(self, message: str) -> Notice:
        return self.notify(NoticeLevel.WARNING, message)

    def clear(self) -> None:
        self.notices.clear()


def get_challenge_started_message(length_days: int) -> str:
    return (
        f"Your {length_days}-day challenge has begun! "
        "Complete all tasks each day to build your streak."
    )


def get_day_completed_message() -> str:
    return "Great job! All tasks completed for today!"


def get_reset_message() -> str:
    return "Challenge reset. Don't worry, you can start again!"


def get_streak_broken_message(missed_since: str) -> str:
    return (
        f"You missed a day after {missed_since}, so your challenge was reset. "
        "Start again whenever you are ready."
    )


def get_synced_message() -> str:
    return "Your local progress has been synced to your account!"


def get_remote_failure_message(action: str, error: Exception) -> str:
    return f"Failed to {action}: {error}. Your progress is kept on this device."
