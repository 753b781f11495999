"""Process-level ownership of the tracker store.

An indexing job opens one store, hands it to one ChangeTracker and keeps both
for its whole run. TrackerRuntime wires that up and owns teardown: its
shutdown() raises the shutdown flag the tracker consults, then closes the
store. register_shutdown_hook() arranges for that to happen at interpreter
exit.

Pipeline code that only needs index dates can use the process-global helpers
get_first_indexed() / get_last_indexed(), which go through a lazily created
global runtime. For testing, use set_tracker_runtime() or the
temporary_runtime() context manager to swap it.
"""

import atexit
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from types import TracebackType

from record_tracker.clock import Clock, utc_now
from record_tracker.exceptions import TrackerStorageError
from record_tracker.logging import get_tracker_logger
from record_tracker.settings import Settings
from record_tracker.settings import settings as default_settings
from record_tracker.tracker_store import TrackerStore, create_tracker_store
from record_tracker.tracking import ChangeTracker
from record_tracker.tracking.tracker import DeclaredChange

logger = get_tracker_logger(__name__)

__all__ = [
    "TrackerRuntime",
    "get_first_indexed",
    "get_last_indexed",
    "get_tracker_runtime",
    "set_tracker_runtime",
    "temporary_runtime",
]


class TrackerRuntime:
    """Owns a tracker store for the life of a process or batch job.

    Args:
        settings: Store and tracker configuration.
        store: Pre-built store to own instead of creating one from settings.
        clock: Clock handed to the tracker.

    Example:
        >>> with TrackerRuntime() as runtime:
        ...     runtime.tracker.observe("biblio", "u123", "2020-01-01T00:00:00Z")
    """

    def __init__(
        self,
        settings: Settings = default_settings,
        *,
        store: TrackerStore | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._settings = settings
        self._store = store
        self._clock = clock
        self._tracker: ChangeTracker | None = None
        self._shutting_down = threading.Event()
        self._lock = threading.Lock()
        self._hook_registered = False

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def shutting_down(self) -> bool:
        """True once shutdown() has started."""
        return self._shutting_down.is_set()

    @property
    def store(self) -> TrackerStore:
        """The owned store, created from settings on first access.

        Raises:
            TrackerStorageError: The runtime shut down before a store was created.
        """
        with self._lock:
            if self._store is None:
                if self._shutting_down.is_set():
                    raise TrackerStorageError("Tracker runtime is shut down, no store available")
                self._store = create_tracker_store(self._settings)
            return self._store

    @property
    def tracker(self) -> ChangeTracker:
        """The tracker bound to the owned store, created on first access."""
        store = self.store
        with self._lock:
            if self._tracker is None:
                self._tracker = ChangeTracker.from_settings(
                    store,
                    self._settings,
                    clock=self._clock,
                    is_shutting_down=self._shutting_down.is_set,
                )
            return self._tracker

    def register_shutdown_hook(self) -> None:
        """Close the store at interpreter exit. Safe to call more than once."""
        with self._lock:
            if self._hook_registered:
                return
            atexit.register(self.shutdown)
            self._hook_registered = True

    def shutdown(self) -> None:
        """Raise the shutdown flag, then close the store. Idempotent."""
        if self._shutting_down.is_set():
            return
        self._shutting_down.set()
        with self._lock:
            store = self._store
            if self._hook_registered:
                atexit.unregister(self.shutdown)
                self._hook_registered = False
        if store is None:
            return
        try:
            store.close()
        except TrackerStorageError as e:
            logger.error(f"Unable to close tracker store: {e}")
            return
        logger.info("Tracker runtime shut down")

    def __enter__(self) -> "TrackerRuntime":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shutdown()


# Global state protected by lock
_runtime: TrackerRuntime | None = None
_runtime_lock = threading.Lock()


def get_tracker_runtime() -> TrackerRuntime:
    """Return the process-global runtime, creating it from settings on first use.

    The created runtime registers its shutdown hook so the store is closed at exit.
    """
    global _runtime
    with _runtime_lock:
        if _runtime is None:
            _runtime = TrackerRuntime(default_settings)
            _runtime.register_shutdown_hook()
        return _runtime


def set_tracker_runtime(runtime: TrackerRuntime | None) -> None:
    """Replace the process-global runtime. Does not shut down the previous one."""
    global _runtime
    with _runtime_lock:
        _runtime = runtime


@contextmanager
def temporary_runtime(runtime: TrackerRuntime) -> Iterator[TrackerRuntime]:
    """Install a runtime globally for the duration of the block, then restore the previous one."""
    global _runtime
    with _runtime_lock:
        previous = _runtime
        _runtime = runtime
    try:
        yield runtime
    finally:
        with _runtime_lock:
            _runtime = previous


def _active_tracker(runtime: TrackerRuntime) -> ChangeTracker | None:
    try:
        return runtime.tracker
    except TrackerStorageError as e:
        if runtime.shutting_down:
            logger.warning(f"Index dates unavailable during shutdown: {e}")
            return None
        raise


def get_first_indexed(identifier: str, declared_change: DeclaredChange, namespace: str | None = None) -> str | None:
    """First indexed date of a record as ``YYYY-MM-DDTHH:MM:SSZ``, updating the tracker as needed."""
    runtime = get_tracker_runtime()
    tracker = _active_tracker(runtime)
    if tracker is None:
        return None
    return tracker.first_indexed(namespace or runtime.settings.tracker_default_namespace, identifier, declared_change)


def get_last_indexed(identifier: str, declared_change: DeclaredChange, namespace: str | None = None) -> str | None:
    """Last indexed date of a record as ``YYYY-MM-DDTHH:MM:SSZ``, updating the tracker as needed."""
    runtime = get_tracker_runtime()
    tracker = _active_tracker(runtime)
    if tracker is None:
        return None
    return tracker.last_indexed(namespace or runtime.settings.tracker_default_namespace, identifier, declared_change)
