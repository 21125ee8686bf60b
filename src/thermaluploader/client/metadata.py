"""Recording metadata extraction.

The CPTV container format is handled by the ``cptv`` library.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from cptv import CPTVReader

from thermaluploader.core.types import FileMetadata


class MetadataError(Exception):
    """The recording could not be parsed."""


class MetadataExtractor(Protocol):
    """Extracts capture metadata from a recording file."""

    def extract(self, path: Path) -> FileMetadata:
        """Read the metadata of a recording.

        Raises:
            MetadataError: If the file is not a valid recording.
        """
        ...


class CPTVExtractor:
    """Reads the timestamp and frame count of a CPTV recording."""

    def extract(self, path: Path) -> FileMetadata:
        try:
            with open(path, "rb") as f:
                reader = CPTVReader(f)
                timestamp = reader.timestamp
                frames = sum(1 for _ in reader.iter_frames())
        except OSError as e:
            raise MetadataError(f"Cannot read {path.name}: {e}") from e
        except Exception as e:
            # The reader raises a variety of errors on truncated or corrupt data.
            raise MetadataError(f"Cannot parse {path.name}: {e}") from e

        if timestamp is None:
            raise MetadataError(f"No timestamp in {path.name}")
        return FileMetadata.from_frames(timestamp, frames)
