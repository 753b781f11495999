#!/usr/bin/env python3
"""Change tracker showcase: runs standalone without external services.

Demonstrates:
  - Observing records with ChangeTracker and MemoryTrackerStore
  - Create / no-op / update decisions and the tolerance window
  - Tombstones and revival
  - SqlTrackerStore on a SQLite file shared by two trackers
  - TrackerRuntime and the process-global index date helpers

Usage:
  python examples/showcase_tracker.py
"""

from datetime import UTC, datetime, timedelta
from pathlib import Path
from tempfile import TemporaryDirectory

from record_tracker import (
    ChangeTracker,
    MemoryTrackerStore,
    Settings,
    TrackerRuntime,
    get_first_indexed,
    get_last_indexed,
    latest_transaction,
    temporary_runtime,
)
from record_tracker.tracker_store.sql import SqlTrackerStore


class StepClock:
    """Clock advancing one hour per reading, so every pass is visibly later."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 8, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(hours=1)
        return self.now


# ---------------------------------------------------------------------------
# 1. ChangeTracker on the memory store
# ---------------------------------------------------------------------------


def demo_observe() -> None:
    """Demonstrate create, no-op, update and the tolerance window."""
    print("\n=== ChangeTracker Demo ===\n")

    tracker = ChangeTracker(MemoryTrackerStore(), clock=StepClock())

    # MARC-style transaction stamps: 005 preferred, 008 date as fallback
    declared = latest_transaction("20200101120000.0", "200101s2019    fi ||||")
    print(f"Declared change: {declared.isoformat()}")

    created = tracker.observe("biblio", "u123", declared)
    print(f"First pass:  {created.outcome}, first={created.first_indexed_text}, last={created.last_indexed_text}")

    # Same key again in the same session: answered from cache, nothing written
    cached = tracker.observe("biblio", "u123", declared)
    print(f"Cached:      {cached.outcome}, last={cached.last_indexed_text}")

    # Sub-second jitter is not a change
    tracker.session.clear()
    jitter = tracker.observe("biblio", "u123", declared + timedelta(milliseconds=500))
    print(f"Jitter:      {jitter.outcome}, last={jitter.last_indexed_text}")

    tracker.session.clear()
    changed = tracker.observe("biblio", "u123", declared + timedelta(days=1))
    print(f"Real change: {changed.outcome}, first={changed.first_indexed_text}, last={changed.last_indexed_text}")


# ---------------------------------------------------------------------------
# 2. Tombstones and revival
# ---------------------------------------------------------------------------


def demo_deletions() -> None:
    """Demonstrate mark_deleted, deletion queries and revival."""
    print("\n=== Tombstone Demo ===\n")

    clock = StepClock()
    tracker = ChangeTracker(MemoryTrackerStore(), clock=clock)
    declared = datetime(2020, 1, 1, tzinfo=UTC)

    tracker.observe("biblio", "u1", declared)
    tombstone = tracker.mark_deleted("biblio", "u1")
    print(f"Deleted at {tombstone.deleted.isoformat()}, first_indexed={tombstone.first_indexed}")

    never_seen = tracker.mark_deleted("biblio", "u2")
    print(f"Unseen record tombstoned: deleted={never_seen.deleted.isoformat()}")

    since = datetime(2024, 1, 1, tzinfo=UTC)
    print(f"Deletions since {since.date()}: {[row.identifier for row in tracker.deletions('biblio', since)]}")

    revived = tracker.observe("biblio", "u1", declared)
    print(f"Revived:     {revived.outcome}, first={revived.first_indexed_text}")
    print(f"Changes since {since.date()}: {[row.identifier for row in tracker.changes('biblio', since)]}")


# ---------------------------------------------------------------------------
# 3. SqlTrackerStore: two processes, one database
# ---------------------------------------------------------------------------


def demo_sql_store(base_path: Path) -> None:
    """Demonstrate the relational store shared by two trackers."""
    print("\n=== SqlTrackerStore Demo ===\n")

    url = f"sqlite:///{base_path / 'tracker.db'}"
    first_store, second_store = SqlTrackerStore(url), SqlTrackerStore(url)
    first = ChangeTracker(first_store)
    second = ChangeTracker(second_store)
    declared = "2020-01-01T00:00:00Z"

    a = first.observe("biblio", "u123", declared)
    b = second.observe("biblio", "u123", declared)
    print(f"Tracker A: {a.outcome}, first={a.first_indexed_text}")
    print(f"Tracker B: {b.outcome}, first={b.first_indexed_text}")
    print(f"Same row: {a.first_indexed == b.first_indexed}")

    first_store.close()
    second_store.close()


# ---------------------------------------------------------------------------
# 4. Runtime and global helpers
# ---------------------------------------------------------------------------


def demo_runtime() -> None:
    """Demonstrate TrackerRuntime ownership and shutdown suppression."""
    print("\n=== TrackerRuntime Demo ===\n")

    runtime = TrackerRuntime(Settings(tracker_database_url=""), clock=StepClock())
    with temporary_runtime(runtime):
        print(f"first_indexed: {get_first_indexed('u123', '20200101120000.0')}")
        print(f"last_indexed:  {get_last_indexed('u123', '20200101120000.0')}")

    tracker = runtime.tracker
    runtime.shutdown()
    print(f"After shutdown observe() returns: {tracker.observe('biblio', 'u999', None)}")


def main() -> None:
    demo_observe()
    demo_deletions()

    with TemporaryDirectory() as tmpdir:
        demo_sql_store(Path(tmpdir))

    demo_runtime()

    print("\nAll demos completed successfully.")


if __name__ == "__main__":
    main()
