"""Exception hierarchy for the record change tracker.

All exceptions inherit from RecordTrackerError, so callers that only need to
know "the tracker failed" can catch a single type.
"""


class RecordTrackerError(Exception):
    """Base exception for all record tracker errors."""


class TrackerConfigError(RecordTrackerError):
    """Raised when configuration is invalid or unusable (bad database URL, missing driver, bad key)."""


class TrackerStorageError(RecordTrackerError):
    """Raised when the persistent store fails to read or write.

    The underlying driver exception is chained as ``__cause__``.
    """


class ConcurrentUpdateError(TrackerStorageError):
    """Raised when a conditional write keeps losing to concurrent writers."""
