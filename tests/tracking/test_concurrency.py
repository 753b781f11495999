"""Tests for concurrent writers: lost races must re-read, never duplicate or clobber."""

import threading
from datetime import UTC, datetime, timedelta

import pytest

from record_tracker import ChangeTracker, ObservationOutcome, TrackedRecord
from record_tracker.exceptions import ConcurrentUpdateError
from record_tracker.tracker_store import MemoryTrackerStore, TrackerStore
from tests.support.helpers import T0, InterferingStore, ManualClock

DECLARED = datetime(2020, 1, 1, tzinfo=UTC)
OTHER_WRITER_TIME = T0 - timedelta(minutes=10)


def _other_process_creates(store: TrackerStore) -> None:
    store.insert(TrackedRecord("biblio", "u123", first_indexed=OTHER_WRITER_TIME, last_indexed=OTHER_WRITER_TIME, last_record_change=DECLARED))


class TestInsertRace:
    def test_lost_insert_reevaluates_existing_row(self, store: TrackerStore, clock: ManualClock):
        racing = InterferingStore(store, _other_process_creates)

        observation = ChangeTracker(racing, clock=clock).observe("biblio", "u123", DECLARED)

        assert observation is not None
        assert observation.outcome is ObservationOutcome.UNCHANGED
        assert observation.first_indexed == OTHER_WRITER_TIME
        assert racing.inserts == 1
        assert racing.selects == 2
        assert store.count_changed("biblio", OTHER_WRITER_TIME, T0) == 1

    def test_lost_insert_then_update_when_declared_change_differs(self, store: TrackerStore, clock: ManualClock):
        racing = InterferingStore(store, _other_process_creates)

        observation = ChangeTracker(racing, clock=clock).observe("biblio", "u123", DECLARED + timedelta(days=1))

        assert observation is not None
        assert observation.outcome is ObservationOutcome.UPDATED
        assert observation.first_indexed == OTHER_WRITER_TIME
        assert observation.last_indexed == T0


class TestUpdateRace:
    def test_lost_compare_and_set_rereads(self, store: TrackerStore, clock: ManualClock):
        ChangeTracker(store, clock=clock).observe("biblio", "u123", DECLARED)
        later = clock.advance(minutes=1)
        newer_change = DECLARED + timedelta(days=5)

        def other_process_updates(inner: TrackerStore) -> None:
            inner.update_by_key("biblio", "u123", {"last_indexed": later, "last_record_change": newer_change})

        racing = InterferingStore(store, other_process_updates)
        observation = ChangeTracker(racing, clock=clock).observe("biblio", "u123", newer_change)

        assert observation is not None
        assert observation.outcome is ObservationOutcome.UNCHANGED
        assert racing.updates == 1
        assert racing.selects == 2

    def test_gives_up_after_max_attempts(self, store: TrackerStore, clock: ManualClock):
        ChangeTracker(store, clock=clock).observe("biblio", "u123", DECLARED)
        ticks = iter(range(1, 100))

        def other_process_keeps_writing(inner: TrackerStore) -> None:
            inner.update_by_key("biblio", "u123", {"last_indexed": T0 + timedelta(seconds=next(ticks))})

        racing = InterferingStore(store, other_process_keeps_writing, times=10)
        tracker = ChangeTracker(racing, clock=clock, max_attempts=2)

        with pytest.raises(ConcurrentUpdateError):
            tracker.observe("biblio", "u123", DECLARED + timedelta(days=1))
        assert racing.updates == 2


class TestThreads:
    def test_parallel_trackers_create_one_row_per_key(self, clock: ManualClock):
        store = MemoryTrackerStore()
        keys = [f"u{n}" for n in range(50)]
        barrier = threading.Barrier(4)
        errors: list[BaseException] = []

        def worker() -> None:
            tracker = ChangeTracker(store, clock=clock)
            barrier.wait()
            try:
                for key in keys:
                    tracker.observe("biblio", key, DECLARED)
            except BaseException as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert store.count_changed("biblio", T0, T0) == len(keys)
