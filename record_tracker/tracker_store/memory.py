"""In-memory tracker store for testing.

Simple dict-based storage implementing the full TrackerStore protocol.
Not for production use: all rows are lost when the process exits.
"""

import threading
from collections.abc import Callable, Mapping
from datetime import datetime

from record_tracker.clock import ensure_utc
from record_tracker.exceptions import TrackerStorageError
from record_tracker.tracker_store._models import TrackedRecord, validate_key


class MemoryTrackerStore:
    """Dict-based tracker store for unit tests and dry runs.

    A single lock makes each operation atomic, so conditional writes behave
    like the SQL backend's under threads.
    """

    def __init__(self) -> None:
        self._rows: dict[tuple[str, str], TrackedRecord] = {}
        self._lock = threading.Lock()
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise TrackerStorageError("Tracker store is closed")

    def insert(self, record: TrackedRecord) -> bool:
        """Insert a row unless the key is taken."""
        validate_key(record.namespace, record.identifier)
        with self._lock:
            self._check_open()
            if record.key in self._rows:
                return False
            self._rows[record.key] = record
            return True

    def select_by_key(self, namespace: str, identifier: str) -> TrackedRecord | None:
        """Return the stored row or None."""
        with self._lock:
            self._check_open()
            return self._rows.get((namespace, identifier))

    def update_by_key(
        self,
        namespace: str,
        identifier: str,
        fields: Mapping[str, datetime | None],
        *,
        expected: TrackedRecord | None = None,
    ) -> bool:
        """Replace tracked columns, optionally only if the row still equals ``expected``."""
        with self._lock:
            self._check_open()
            current = self._rows.get((namespace, identifier))
            if current is None:
                return False
            if expected is not None and current != expected:
                return False
            self._rows[current.key] = current.with_fields(dict(fields))
            return True

    def _select(
        self,
        namespace: str,
        since: datetime,
        until: datetime,
        column: Callable[[TrackedRecord], datetime | None],
    ) -> list[TrackedRecord]:
        since, until = ensure_utc(since), ensure_utc(until)
        with self._lock:
            self._check_open()
            matches = [row for row in self._rows.values() if row.namespace == namespace and (value := column(row)) is not None and since <= value <= until]
        return sorted(matches, key=lambda row: (column(row), row.identifier))

    @staticmethod
    def _page(rows: list[TrackedRecord], offset: int, limit: int | None) -> list[TrackedRecord]:
        end = None if limit is None else offset + limit
        return rows[offset:end]

    @staticmethod
    def _changed_at(row: TrackedRecord) -> datetime | None:
        return None if row.is_deleted else row.last_indexed

    @staticmethod
    def _deleted_at(row: TrackedRecord) -> datetime | None:
        return row.deleted

    def list_changed(
        self,
        namespace: str,
        since: datetime,
        until: datetime,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[TrackedRecord]:
        """Active rows indexed within the range, oldest first."""
        return self._page(self._select(namespace, since, until, self._changed_at), offset, limit)

    def count_changed(self, namespace: str, since: datetime, until: datetime) -> int:
        """Count active rows indexed within the range."""
        return len(self._select(namespace, since, until, self._changed_at))

    def list_deleted(
        self,
        namespace: str,
        since: datetime,
        until: datetime,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[TrackedRecord]:
        """Tombstones deleted within the range, oldest first."""
        return self._page(self._select(namespace, since, until, self._deleted_at), offset, limit)

    def count_deleted(self, namespace: str, since: datetime, until: datetime) -> int:
        """Count tombstones deleted within the range."""
        return len(self._select(namespace, since, until, self._deleted_at))

    def close(self) -> None:
        """Mark the store closed. Rows stay in memory but become unreachable."""
        with self._lock:
            self._closed = True
