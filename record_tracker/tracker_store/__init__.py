"""Tracker store protocol and backends."""

from ._models import MAX_IDENTIFIER_LENGTH, MAX_NAMESPACE_LENGTH, TRACKED_FIELDS, TrackedRecord, validate_key
from .factory import create_tracker_store
from .memory import MemoryTrackerStore
from .protocol import TrackerStore

__all__ = [
    "MAX_IDENTIFIER_LENGTH",
    "MAX_NAMESPACE_LENGTH",
    "TRACKED_FIELDS",
    "MemoryTrackerStore",
    "TrackedRecord",
    "TrackerStore",
    "create_tracker_store",
    "validate_key",
]
