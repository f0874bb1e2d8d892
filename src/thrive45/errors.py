"""Error taxonomy of the progress engine."""
from datetime import date
from typing import Optional


class ChallengeError(Exception):
    """Base class for progress engine errors."""


class StorageCorrupt(ChallengeError):
    """The local snapshot payload could not be decoded."""


class RemoteUnavailable(ChallengeError):
    """A call to the remote record store failed (network, auth, conflict or timeout)."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Remote operation '{operation}' failed{detail}")


class InvalidTaskSet(ChallengeError, ValueError):
    """A task list is not exactly the six fixed tasks with well-formed values."""


class ChallengeNotStarted(ChallengeError):
    """Progress was submitted while no challenge is running."""


class StreakBroken(ChallengeError):
    """Policy event: a full day was missed, so the run is forfeited."""

    def __init__(self, last_recorded: Optional[date], today: date):
        self.last_recorded = last_recorded
        self.today = today
        super().__init__(
            f"Streak broken: last recorded day {last_recorded}, attempted save on {today}"
        )
