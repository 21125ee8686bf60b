"""Upload dispatcher: lists pending recordings and uploads them one by one.

Per-file procedure:
1. Extract metadata. Unparsable files are deleted without retrying.
2. Mark the agent as uploading.
3. Try the upload up to ``policy.attempts`` times, picking the destination
   fresh for every attempt. A file that vanished from disk counts as done.
4. On success delete the file, on exhaustion move it to ``failed-uploads/``.
5. Mark the agent as finished.

Files are processed strictly sequentially, so the agent state always
describes a single file.
"""

from __future__ import annotations

import fnmatch
import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from thermaluploader.client.metadata import MetadataError
from thermaluploader.client.sync.retry import RetryPolicy
from thermaluploader.client.sync.types import (
    Destination,
    PassResult,
    UploadAttemptRecord,
    UploadOutcome,
)

if TYPE_CHECKING:
    from thermaluploader.client.metadata import MetadataExtractor
    from thermaluploader.client.state import AgentState
    from thermaluploader.client.sync.selector import DestinationSelector
    from thermaluploader.client.sync.triggers import TriggerChannel
    from thermaluploader.core.types import FileMetadata

logger = logging.getLogger(__name__)

RECORDING_GLOB = "*.cptv"
FAILED_UPLOADS_DIR = "failed-uploads"

# How long the dispatcher waits for a trigger before re-checking for stop.
RECEIVE_TIMEOUT = 1.0


class UploadDispatcher:
    """Uploads every pending recording in a directory, one at a time."""

    def __init__(
        self,
        directory: Path,
        selector: DestinationSelector,
        extractor: MetadataExtractor,
        state: AgentState,
        policy: RetryPolicy | None = None,
        remote_policy: RetryPolicy | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            directory: Directory holding pending recordings.
            selector: Picks and performs the upload for each attempt.
            extractor: Reads recording metadata.
            state: Agent state to update while uploading.
            policy: Attempt budget (delay-free by default).
            remote_policy: Delays applied after failed remote attempts.
            stop_event: Shared stop signal, also used for retry waits.
        """
        self._directory = Path(directory)
        self._selector = selector
        self._extractor = extractor
        self._state = state
        self._policy = policy or RetryPolicy()
        self._remote_policy = remote_policy or RetryPolicy(attempts=self._policy.attempts)
        self._stop_event = stop_event or threading.Event()

    @property
    def directory(self) -> Path:
        """Get the directory being dispatched."""
        return self._directory

    @property
    def quarantine_dir(self) -> Path:
        """Get the directory permanently failed uploads are moved to."""
        return self._directory / FAILED_UPLOADS_DIR

    def pending_files(self) -> list[Path]:
        """List the recordings waiting to be uploaded, in sorted order.

        Raises:
            OSError: If the directory cannot be listed.
        """
        return sorted(
            entry
            for entry in self._directory.iterdir()
            if fnmatch.fnmatch(entry.name, RECORDING_GLOB)
        )

    def run_pass(self) -> PassResult:
        """Upload every pending recording.

        Returns:
            Per-file records for this pass.

        Raises:
            OSError: If the directory cannot be listed.
        """
        result = PassResult()
        for path in self.pending_files():
            result.records.append(self.process_file(path))
        if result.records:
            logger.info(
                "Pass complete: %d uploaded, %d discarded, %d quarantined",
                result.uploaded,
                result.discarded,
                result.quarantined,
            )
        return result

    def process_file(self, path: Path) -> UploadAttemptRecord:
        """Run the full upload procedure for one recording."""
        record = UploadAttemptRecord(path=path)
        logger.info("Uploading: %s", path.name)

        try:
            metadata = self._extractor.extract(path)
        except MetadataError as e:
            logger.warning("Failed to extract info from %s, deleting it: %s", path.name, e)
            record.last_error = e
            record.outcome = UploadOutcome.DISCARDED
            self._remove(path)
            return record
        logger.info("ts=%s duration=%ds", metadata.timestamp.isoformat(), metadata.duration)

        self._state.set_uploading()
        try:
            if self._upload_with_retries(path, metadata, record):
                self._remove(path)
            else:
                logger.warning(
                    "Upload of %s failed %d times, moving it to %s",
                    path.name,
                    record.attempts,
                    FAILED_UPLOADS_DIR,
                )
                self._quarantine(path, record)
        finally:
            self._state.set_finished()
        return record

    def _upload_with_retries(
        self,
        path: Path,
        metadata: FileMetadata,
        record: UploadAttemptRecord,
    ) -> bool:
        for attempt in range(1, self._policy.attempts + 1):
            record.attempts = attempt
            try:
                vanished = self._attempt(path, metadata, record)
            except Exception as e:
                record.last_error = e
                remaining = self._policy.attempts - attempt
                logger.warning(
                    "Upload of %s to %s failed: %s",
                    path.name,
                    record.destination.value if record.destination else "?",
                    e,
                )
                if remaining:
                    logger.info("Trying %d more times", remaining)
                    self._wait_before_retry(attempt, record.destination)
                continue

            if vanished:
                logger.info("%s disappeared before upload, skipping", path.name)
                record.outcome = UploadOutcome.VANISHED
            else:
                logger.info("Upload complete: %s", path.name)
                record.outcome = UploadOutcome.UPLOADED
            return True
        return False

    def _attempt(
        self,
        path: Path,
        metadata: FileMetadata,
        record: UploadAttemptRecord,
    ) -> bool:
        """Make one upload attempt.

        Returns:
            True if the file no longer exists, False if it was uploaded.
        """
        record.destination = None
        try:
            f = path.open("rb")
        except FileNotFoundError:
            return True
        with f:
            record.destination = self._selector.choose()
            self._selector.send(record.destination, f, path.name, metadata)
        return False

    def _wait_before_retry(self, attempt: int, destination: Destination | None) -> None:
        policy = self._remote_policy if destination is Destination.REMOTE else self._policy
        delay = policy.delay_after(attempt)
        if delay > 0:
            self._stop_event.wait(delay)

    def _remove(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Failed to delete %s: %s", path, e)

    def _quarantine(self, path: Path, record: UploadAttemptRecord) -> None:
        target = self.quarantine_dir / path.name
        try:
            path.rename(target)
        except OSError as e:
            if not path.exists():
                record.outcome = UploadOutcome.VANISHED
                return
            logger.error("Failed to move %s to %s: %s", path, target, e)
            return
        record.outcome = UploadOutcome.QUARANTINED

    def run(self, channel: TriggerChannel) -> None:
        """Run one pass per trigger until stopped.

        Raises:
            OSError: If the directory cannot be listed (fatal).
        """
        while not self._stop_event.is_set():
            source = channel.receive(timeout=RECEIVE_TIMEOUT)
            if source is None:
                continue
            logger.debug("Upload pass triggered by %s", source.value)
            self.run_pass()
