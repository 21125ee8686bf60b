"""File system watcher for finished recordings.

This module provides:
- RecordingEventHandler: Reacts to completed writes and files moved in
- DirectoryWatcher: Watches a single directory (not recursive) using watchdog

Which file caused the event does not matter: the dispatcher lists the whole
directory on every pass.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import (
    FileClosedEvent,
    FileMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)


def _new_observer() -> BaseObserver:
    # Full inotify events report a file renamed in from another directory as
    # a move with an empty source instead of a creation.
    if sys.platform.startswith("linux"):
        from watchdog.observers.inotify import InotifyObserver

        return InotifyObserver(generate_full_events=True)
    return Observer()


def _event_path(path: str | bytes) -> Path:
    if isinstance(path, bytes):
        path = path.decode("utf-8", errors="replace")
    return Path(path)


class RecordingEventHandler(FileSystemEventHandler):
    """Calls back when a file is finished in, or moved into, the directory."""

    def __init__(self, base_path: Path, on_event: Callable[[Path], None]) -> None:
        """Initialize the handler.

        Args:
            base_path: Directory being watched.
            on_event: Called with the path of the file that became ready.
        """
        super().__init__()
        self._base_path = base_path
        self._on_event = on_event

    def on_closed(self, event: FileSystemEvent) -> None:
        """Handle close-after-write."""
        if isinstance(event, FileClosedEvent):
            self._on_event(_event_path(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle a file moved into the directory."""
        if not isinstance(event, FileMovedEvent):
            return
        dest = _event_path(event.dest_path)
        # Moves into subdirectories (e.g. quarantine) are not new recordings
        if dest.parent == self._base_path:
            self._on_event(dest)


class DirectoryWatcher:
    """Watches a directory for finished files."""

    def __init__(self, watch_path: Path, on_event: Callable[[Path], None]) -> None:
        """Initialize the watcher.

        Args:
            watch_path: Directory to watch.
            on_event: Called with the path of every finished file.
        """
        self._watch_path = Path(watch_path).resolve()
        self._handler = RecordingEventHandler(self._watch_path, on_event)
        self._observer = _new_observer()
        self._running = False

    @property
    def watch_path(self) -> Path:
        """Get the watched directory path."""
        return self._watch_path

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._running

    def start(self) -> None:
        """Start watching.

        Raises:
            ValueError: If the path is not a directory.
            OSError: If the watch cannot be set up.
        """
        if self._running:
            return
        if not self._watch_path.is_dir():
            raise ValueError(f"Watch path must be a directory: {self._watch_path}")

        self._observer.schedule(self._handler, str(self._watch_path), recursive=False)
        self._observer.start()
        self._running = True

    def stop(self) -> None:
        """Stop watching."""
        if not self._running:
            return

        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._running = False

    def __enter__(self) -> DirectoryWatcher:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.stop()
