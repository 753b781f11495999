"""Record Change Tracker - durable first/last indexed history for search indexing pipelines.

An indexing pipeline re-derives search documents from source records over and
over, and the index itself may be rebuilt from scratch at any time. This
package keeps, outside the index, one row per (namespace, identifier) saying
when the record was first seen, when it last meaningfully changed and whether
it is currently deleted. Replication feeds and incremental harvesters can then
ask "what changed since T" regardless of the index's own history.

Core Capabilities:
    - **Change detection**: create / no-op / update decided from the record's
      declared change instant, with a tolerance window for low-precision stamps
    - **Tombstones**: deletions are recorded and revived records start a new lifetime
    - **Concurrency**: primary-key-guarded inserts and compare-and-set updates
    - **Storage**: SQLAlchemy-backed relational store, in-memory store for tests
    - **Lifecycle**: a runtime owning the store with an exit-time teardown hook

Quick Start:
    >>> from record_tracker import ChangeTracker, MemoryTrackerStore
    >>>
    >>> tracker = ChangeTracker(MemoryTrackerStore())
    >>> observation = tracker.observe("biblio", "u123", "2020-01-01T00:00:00Z")
    >>> observation.first_indexed_text, observation.last_indexed_text

Environment Variables:
    - TRACKER_DATABASE_URL: SQLAlchemy URL of the tracking database
    - TRACKER_CHANGE_TOLERANCE_MS: Tolerance window in milliseconds
    - RECORD_TRACKER_LOG_LEVEL: Log level for tracker loggers
"""

from .clock import Clock, utc_now
from .exceptions import ConcurrentUpdateError, RecordTrackerError, TrackerConfigError, TrackerStorageError
from .logging import LoggingConfig, get_tracker_logger, setup_logging
from .runtime import (
    TrackerRuntime,
    get_first_indexed,
    get_last_indexed,
    get_tracker_runtime,
    set_tracker_runtime,
    temporary_runtime,
)
from .settings import Settings, settings
from .tracker_store import MemoryTrackerStore, TrackedRecord, TrackerStore, create_tracker_store
from .tracking import (
    EPOCH,
    ChangeTracker,
    Observation,
    ObservationOutcome,
    TrackingSession,
    format_timestamp,
    latest_transaction,
    parse_declared_change,
)

__version__ = "0.3.0"

__all__ = [
    # Tracking
    "ChangeTracker",
    "Observation",
    "ObservationOutcome",
    "TrackingSession",
    # Store
    "MemoryTrackerStore",
    "TrackedRecord",
    "TrackerStore",
    "create_tracker_store",
    # Runtime
    "TrackerRuntime",
    "get_first_indexed",
    "get_last_indexed",
    "get_tracker_runtime",
    "set_tracker_runtime",
    "temporary_runtime",
    # Timestamps
    "EPOCH",
    "Clock",
    "format_timestamp",
    "latest_transaction",
    "parse_declared_change",
    "utc_now",
    # Configuration
    "Settings",
    "settings",
    # Logging
    "LoggingConfig",
    "get_tracker_logger",
    "setup_logging",
    # Exceptions
    "ConcurrentUpdateError",
    "RecordTrackerError",
    "TrackerConfigError",
    "TrackerStorageError",
]
