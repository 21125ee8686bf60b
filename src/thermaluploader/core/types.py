"""Shared types for thermaluploader.

This module defines types and enums used across the client components.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

# Recording frame rate of the thermal camera.
FRAMES_PER_SECOND = 9


class UploadState(str, Enum):
    """What the agent reports to a local peer.

    The value is the path announced to the peer (``GET /<value>``).
    """

    FINISHED_UPLOADING = "finished"
    UPLOADING = "uploading"


@dataclass(frozen=True)
class FileMetadata:
    """Metadata extracted from a recording file.

    Attributes:
        timestamp: Capture time of the recording.
        duration: Recording length in whole seconds.
    """

    timestamp: datetime
    duration: int

    @classmethod
    def from_frames(cls, timestamp: datetime, frames: int) -> FileMetadata:
        """Create metadata from a frame count."""
        return cls(timestamp=timestamp, duration=frames // FRAMES_PER_SECOND)
