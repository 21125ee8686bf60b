"""Upload pipeline: triggers, dispatching and destination selection.

Architecture:
    TriggerAggregator → TriggerChannel → UploadDispatcher → DestinationSelector
                                                          ├─► PeerClient
                                                          └─► CacophonyClient

Components:
- **TriggerAggregator**: Merges the startup, filesystem and peer-arrival producers
- **TriggerChannel**: Single-slot handoff, coalesces bursts into one pass
- **UploadDispatcher**: Uploads pending recordings one by one with retries
- **DestinationSelector**: Picks the peer or the cloud API for every attempt
- **PeerPresenceMonitor**: Detects peer arrival edges
- **DirectoryWatcher**: Watches the recordings directory with watchdog
"""

from thermaluploader.client.sync.dispatcher import (
    FAILED_UPLOADS_DIR,
    RECORDING_GLOB,
    UploadDispatcher,
)
from thermaluploader.client.sync.presence import (
    DEFAULT_PRESENCE_INTERVAL,
    PeerPresenceMonitor,
)
from thermaluploader.client.sync.retry import (
    DEFAULT_UPLOAD_ATTEMPTS,
    RetryPolicy,
    retry_with_backoff,
)
from thermaluploader.client.sync.selector import DestinationSelector
from thermaluploader.client.sync.triggers import TriggerAggregator, TriggerChannel
from thermaluploader.client.sync.types import (
    Destination,
    PassResult,
    TriggerSource,
    UploadAttemptRecord,
    UploadOutcome,
)
from thermaluploader.client.sync.watcher import DirectoryWatcher, RecordingEventHandler

__all__ = [
    # Dispatcher
    "FAILED_UPLOADS_DIR",
    "RECORDING_GLOB",
    "UploadDispatcher",
    # Triggers
    "DEFAULT_PRESENCE_INTERVAL",
    "DirectoryWatcher",
    "PeerPresenceMonitor",
    "RecordingEventHandler",
    "TriggerAggregator",
    "TriggerChannel",
    # Retry
    "DEFAULT_UPLOAD_ATTEMPTS",
    "RetryPolicy",
    "retry_with_backoff",
    # Selection
    "DestinationSelector",
    # Types
    "Destination",
    "PassResult",
    "TriggerSource",
    "UploadAttemptRecord",
    "UploadOutcome",
]
