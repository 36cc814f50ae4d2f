"""Best-effort persistence of wizard progress between runs."""

import json
import time
from pathlib import Path
from typing import Callable, Optional

from loguru import logger
from pydantic import ValidationError

from .config import SessionConfig
from .models import WizardState

SAVED_AT_KEY = "savedAt"


def _log_notice(message: str) -> None:
    logger.warning(message)


class SessionStore:
    """Keeps one JSON snapshot of the wizard under a fixed key.

    Failures never interrupt the session: they are handed to ``notify`` as
    user-facing notices and the caller carries on.
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        notify: Callable[[str], None] = _log_notice,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or SessionConfig()
        self.notify = notify
        self._clock = clock

    @property
    def path(self) -> Path:
        return self.config.directory / f"{self.config.key}.json"

    def save(self, state: WizardState) -> bool:
        snapshot = state.to_snapshot()
        snapshot[SAVED_AT_KEY] = self._clock()

        tmp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(snapshot, ensure_ascii=False), encoding="utf-8")
            tmp_path.replace(self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Session save failed: {e}")
            self.notify("Your progress could not be saved. You can keep working, but it won't survive a restart.")
            return False

        logger.debug(f"Session saved to {self.path}")
        return True

    def restore(self) -> Optional[WizardState]:
        """Load the saved session if it is recent enough, else None."""
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Session restore failed: {e}")
            self.notify("Your previous session could not be restored. Starting fresh.")
            return None

        if not isinstance(data, dict):
            self.notify("Your previous session could not be restored. Starting fresh.")
            return None

        saved_at = data.pop(SAVED_AT_KEY, None)
        if isinstance(saved_at, bool) or not isinstance(saved_at, (int, float)):
            logger.info("Ignoring session snapshot without a capture timestamp")
            return None

        age = self._clock() - saved_at
        if age > self.config.max_age_seconds:
            logger.info(f"Ignoring session snapshot saved {age:.0f}s ago")
            return None

        try:
            state = WizardState.from_snapshot(data)
        except ValidationError as e:
            logger.error(f"Session snapshot is invalid: {e.error_count()} errors")
            self.notify("Your previous session could not be restored. Starting fresh.")
            return None

        state.has_unsaved_changes = True
        logger.info(f"Restored session at step '{state.step.value}'")
        return state

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Could not remove session snapshot: {e}")
            self.notify("The saved session could not be removed.")
