"""Types for the upload pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class TriggerSource(Enum):
    """What asked for an upload pass."""

    STARTUP = "startup"
    FILESYSTEM = "filesystem"
    PEER_ARRIVED = "peer_arrived"


class Destination(Enum):
    """Where an upload attempt was sent."""

    PEER = "peer"
    REMOTE = "remote"


class UploadOutcome(Enum):
    """Terminal state of one file after its upload sequence."""

    UPLOADED = "uploaded"  # Uploaded and deleted
    VANISHED = "vanished"  # Gone from disk before the attempt, nothing to do
    DISCARDED = "discarded"  # Unparsable, deleted without uploading
    QUARANTINED = "quarantined"  # All attempts failed, moved to failed-uploads
    PENDING = "pending"  # Left in place, a later pass will retry


@dataclass
class UploadAttemptRecord:
    """Progress of one file through its retry loop."""

    path: Path
    attempts: int = 0
    last_error: Exception | None = None
    destination: Destination | None = None
    outcome: UploadOutcome = UploadOutcome.PENDING


@dataclass
class PassResult:
    """Summary of one upload pass."""

    records: list[UploadAttemptRecord] = field(default_factory=list)

    def count(self, outcome: UploadOutcome) -> int:
        """Count files that ended with an outcome."""
        return sum(1 for r in self.records if r.outcome == outcome)

    @property
    def uploaded(self) -> int:
        return self.count(UploadOutcome.UPLOADED)

    @property
    def discarded(self) -> int:
        return self.count(UploadOutcome.DISCARDED)

    @property
    def quarantined(self) -> int:
        return self.count(UploadOutcome.QUARANTINED)

    def __len__(self) -> int:
        return len(self.records)
