"""Tracker store protocol.

Defines the TrackerStore protocol that all storage backends must implement.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Protocol, runtime_checkable

from record_tracker.tracker_store._models import TrackedRecord


@runtime_checkable
class TrackerStore(Protocol):
    """Protocol for change tracker storage backends.

    Implementations: SqlTrackerStore (production), MemoryTrackerStore (testing).

    Every operation on a closed store raises TrackerStorageError.
    """

    def insert(self, record: TrackedRecord) -> bool:
        """Insert a new row. Returns False (and writes nothing) if the key already exists."""
        ...

    def select_by_key(self, namespace: str, identifier: str) -> TrackedRecord | None:
        """Return the row for this key, or None."""
        ...

    def update_by_key(
        self,
        namespace: str,
        identifier: str,
        fields: Mapping[str, datetime | None],
        *,
        expected: TrackedRecord | None = None,
    ) -> bool:
        """Overwrite tracked columns of one row.

        When ``expected`` is given the write only happens if the stored row still
        equals it (compare-and-set). Returns False if no row was written.
        """
        ...

    def list_changed(
        self,
        namespace: str,
        since: datetime,
        until: datetime,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[TrackedRecord]:
        """Active rows with last_indexed in [since, until], oldest first."""
        ...

    def count_changed(self, namespace: str, since: datetime, until: datetime) -> int:
        """Number of rows list_changed() would return without paging."""
        ...

    def list_deleted(
        self,
        namespace: str,
        since: datetime,
        until: datetime,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[TrackedRecord]:
        """Tombstones with deleted in [since, until], oldest first."""
        ...

    def count_deleted(self, namespace: str, since: datetime, until: datetime) -> int:
        """Number of rows list_deleted() would return without paging."""
        ...

    def close(self) -> None:
        """Release store resources."""
        ...
