"""Process-wide upload state reported to the local peer.

The dispatcher is the only writer. The announcer reads it on every tick and
tolerates a stale value.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from thermaluploader.core.types import UploadState

logger = logging.getLogger(__name__)


class AgentState:
    """Holds what the agent should report to a peer right now."""

    def __init__(
        self,
        on_change: Callable[[UploadState], None] | None = None,
    ) -> None:
        """Initialize in the FINISHED_UPLOADING state.

        Args:
            on_change: Optional callback invoked with every new state.
        """
        self._lock = threading.Lock()
        self._current = UploadState.FINISHED_UPLOADING
        self._on_change = on_change

    @property
    def current(self) -> UploadState:
        """Get the current upload state."""
        with self._lock:
            return self._current

    def _set(self, state: UploadState) -> None:
        with self._lock:
            changed = self._current != state
            self._current = state
        if changed:
            logger.debug("Upload state: %s", state.value)
        if self._on_change:
            self._on_change(state)

    def set_uploading(self) -> None:
        """Mark an upload sequence as in progress."""
        self._set(UploadState.UPLOADING)

    def set_finished(self) -> None:
        """Mark the current upload sequence as concluded."""
        self._set(UploadState.FINISHED_UPLOADING)
