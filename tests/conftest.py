"""Common test fixtures for the record tracker."""

from collections.abc import Iterator
from pathlib import Path

import pytest

from record_tracker.tracker_store import MemoryTrackerStore, TrackerStore
from record_tracker.tracker_store.sql import SqlTrackerStore
from tests.support.helpers import ManualClock


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def memory_store() -> MemoryTrackerStore:
    return MemoryTrackerStore()


@pytest.fixture
def sql_store(tmp_path: Path) -> Iterator[SqlTrackerStore]:
    store = SqlTrackerStore(f"sqlite:///{tmp_path / 'tracker.db'}")
    yield store
    store.close()


@pytest.fixture(params=["memory", "sql"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[TrackerStore]:
    """Every backend, so behavior tests run against both."""
    if request.param == "memory":
        backend: TrackerStore = MemoryTrackerStore()
    else:
        backend = SqlTrackerStore(f"sqlite:///{tmp_path / 'tracker.db'}")
    yield backend
    backend.close()
