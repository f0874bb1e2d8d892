"""Durable snapshot of the challenge state on the current device."""
import json
import logging
import os
from pathlib import Path
from typing import Optional

from thrive45.errors import StorageCorrupt
from thrive45.models.challenge_models import ChallengeState

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Single-slot JSON store for the whole ``ChallengeState``.

    The slot is one file named after the namespace inside ``data_dir``.
    There is no locking: one writer per device is assumed.
    """

    def __init__(self, data_dir: Path, namespace: str):
        """Initialize the store with its directory and namespace key."""
        self.data_dir = Path(data_dir)
        self.namespace = namespace

    @property
    def path(self) -> Path:
        return self.data_dir / f"{self.namespace}.json"

    def save(self, state: ChallengeState) -> None:
        """Overwrite the slot with ``state``."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(state.to_dict(), ensure_ascii=False)
        tmp_path = self.path.with_suffix(".json.tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, self.path)
        logger.debug("Saved snapshot %s (day %d)", self.path, state.current_day)

    def load(self) -> Optional[ChallengeState]:
        """Return the saved state, or None if absent or unreadable.

        An unreadable slot is cleared.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

        try:
            return self._decode(raw)
        except StorageCorrupt as e:
            logger.warning("Discarding corrupt snapshot %s: %s", self.path, e)
            self.clear()
            return None

    def clear(self) -> None:
        """Remove the slot."""
        try:
            self.path.unlink()
            logger.debug("Cleared snapshot %s", self.path)
        except FileNotFoundError:
            pass

    @staticmethod
    def _decode(raw: str) -> ChallengeState:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageCorrupt(f"Snapshot is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise StorageCorrupt("Snapshot root must be an object")
        return ChallengeState.from_dict(data)
