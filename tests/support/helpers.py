"""Test helpers: a controllable clock and store wrappers that count or interfere."""

from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta

from record_tracker.tracker_store import TrackedRecord, TrackerStore

T0 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=UTC)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class CountingStore:
    """Delegating store that records how often each operation ran."""

    def __init__(self, inner: TrackerStore) -> None:
        self.inner = inner
        self.selects = 0
        self.inserts = 0
        self.updates = 0

    @property
    def writes(self) -> int:
        return self.inserts + self.updates

    def insert(self, record: TrackedRecord) -> bool:
        self.inserts += 1
        return self.inner.insert(record)

    def select_by_key(self, namespace: str, identifier: str) -> TrackedRecord | None:
        self.selects += 1
        return self.inner.select_by_key(namespace, identifier)

    def update_by_key(
        self,
        namespace: str,
        identifier: str,
        fields: Mapping[str, datetime | None],
        *,
        expected: TrackedRecord | None = None,
    ) -> bool:
        self.updates += 1
        return self.inner.update_by_key(namespace, identifier, fields, expected=expected)

    def list_changed(self, namespace: str, since: datetime, until: datetime, *, offset: int = 0, limit: int | None = None) -> list[TrackedRecord]:
        return self.inner.list_changed(namespace, since, until, offset=offset, limit=limit)

    def count_changed(self, namespace: str, since: datetime, until: datetime) -> int:
        return self.inner.count_changed(namespace, since, until)

    def list_deleted(self, namespace: str, since: datetime, until: datetime, *, offset: int = 0, limit: int | None = None) -> list[TrackedRecord]:
        return self.inner.list_deleted(namespace, since, until, offset=offset, limit=limit)

    def count_deleted(self, namespace: str, since: datetime, until: datetime) -> int:
        return self.inner.count_deleted(namespace, since, until)

    def close(self) -> None:
        self.inner.close()


class InterferingStore(CountingStore):
    """Runs ``interference`` against the inner store right after the next N reads.

    Simulates another process writing between our read and our write.
    """

    def __init__(self, inner: TrackerStore, interference: Callable[[TrackerStore], None], times: int = 1) -> None:
        super().__init__(inner)
        self._interference = interference
        self._remaining = times

    def select_by_key(self, namespace: str, identifier: str) -> TrackedRecord | None:
        row = super().select_by_key(namespace, identifier)
        if self._remaining > 0:
            self._remaining -= 1
            self._interference(self.inner)
        return row
