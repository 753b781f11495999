"""Change tracker: per-record first/last indexed bookkeeping.

For every record an indexing pass emits, ``observe()`` makes the store reflect
exactly one of create, no-op or update, and returns the record's first and
last indexed instants. The decision rests on the record's declared change
instant rather than its content, which keeps the per-record cost at one
keyed read plus at most one keyed write.

Concurrent writers on the same store are handled without locks: inserts rely
on the primary key and updates are compare-and-set against the row as read.
A lost race re-reads and decides again.
"""

from collections.abc import Callable
from datetime import datetime, timedelta

from record_tracker.clock import Clock, ensure_utc, utc_now
from record_tracker.exceptions import ConcurrentUpdateError, TrackerConfigError, TrackerStorageError
from record_tracker.logging import get_tracker_logger
from record_tracker.settings import Settings
from record_tracker.tracker_store import TrackedRecord, TrackerStore, validate_key
from record_tracker.tracking._session import Observation, ObservationOutcome, TrackingSession
from record_tracker.tracking.timestamps import parse_declared_change

logger = get_tracker_logger(__name__)

DEFAULT_TOLERANCE = timedelta(milliseconds=999)

DeclaredChange = datetime | str | int | float | None


def _never_shutting_down() -> bool:
    return False


class ChangeTracker:
    """Tracks when records were first indexed, last changed and deleted.

    One tracker serves one batch job: it borrows the store (never closes it)
    and is meant to be called sequentially. Its session cache is not
    thread-safe; give each thread its own tracker.

    Args:
        store: Backend holding the change_tracker rows.
        clock: Source of "now"; aware UTC.
        tolerance: Largest difference between stored and declared change
            instants that still counts as "unchanged" (inclusive).
        reject_stale_changes: Treat a declared change older than the stored
            one (beyond tolerance) as unchanged instead of last-writer-wins.
        max_attempts: Reads-plus-conditional-writes before giving up on a
            contended key.
        is_shutting_down: Callable consulted when the store fails; while it
            returns True, failures are logged and observe() returns None.
    """

    def __init__(
        self,
        store: TrackerStore,
        *,
        clock: Clock = utc_now,
        tolerance: timedelta = DEFAULT_TOLERANCE,
        reject_stale_changes: bool = False,
        max_attempts: int = 3,
        is_shutting_down: Callable[[], bool] = _never_shutting_down,
    ) -> None:
        if tolerance < timedelta(0):
            raise TrackerConfigError(f"tolerance must not be negative, got {tolerance}")
        if max_attempts < 1:
            raise TrackerConfigError(f"max_attempts must be at least 1, got {max_attempts}")
        self._store = store
        self._clock = clock
        self._tolerance = tolerance
        self._reject_stale_changes = reject_stale_changes
        self._max_attempts = max_attempts
        self._is_shutting_down = is_shutting_down
        self._session = TrackingSession()

    @classmethod
    def from_settings(cls, store: TrackerStore, settings: Settings, **kwargs: object) -> "ChangeTracker":
        """Build a tracker with tolerance, staleness policy and attempts taken from settings."""
        return cls(
            store,
            tolerance=settings.change_tolerance,
            reject_stale_changes=settings.tracker_reject_stale_changes,
            max_attempts=settings.tracker_max_attempts,
            **kwargs,  # type: ignore[arg-type]
        )

    @property
    def store(self) -> TrackerStore:
        return self._store

    @property
    def session(self) -> TrackingSession:
        return self._session

    @property
    def tolerance(self) -> timedelta:
        return self._tolerance

    # --- Observation ---

    def observe(self, namespace: str, identifier: str, declared_change: DeclaredChange) -> Observation | None:
        """Record that the pipeline has seen this record and return its index dates.

        Repeated calls for the key bound in the session are answered from memory.
        Returns None only when the store failed while shutdown was in progress.

        Raises:
            TrackerConfigError: The key cannot be stored.
            TrackerStorageError: The store failed outside shutdown.
        """
        cached = self._session.lookup(namespace, identifier)
        if cached is not None:
            return cached

        self._session.clear()
        validate_key(namespace, identifier)
        declared = parse_declared_change(declared_change)
        try:
            observation = self._observe(namespace, identifier, declared)
        except TrackerStorageError as e:
            if self._is_shutting_down():
                logger.warning(f"Tracker store failure during shutdown ignored for {namespace}/{identifier}: {e}")
                return None
            raise
        self._session.bind(observation)
        return observation

    def first_indexed(self, namespace: str, identifier: str, declared_change: DeclaredChange) -> str | None:
        """First indexed instant as ``YYYY-MM-DDTHH:MM:SSZ``."""
        observation = self.observe(namespace, identifier, declared_change)
        return observation.first_indexed_text if observation is not None else None

    def last_indexed(self, namespace: str, identifier: str, declared_change: DeclaredChange) -> str | None:
        """Last indexed instant as ``YYYY-MM-DDTHH:MM:SSZ``."""
        observation = self.observe(namespace, identifier, declared_change)
        return observation.last_indexed_text if observation is not None else None

    def _observe(self, namespace: str, identifier: str, declared: datetime) -> Observation:
        for attempt in range(1, self._max_attempts + 1):
            row = self._store.select_by_key(namespace, identifier)
            now = ensure_utc(self._clock())

            if row is None:
                record = TrackedRecord(namespace, identifier, first_indexed=now, last_indexed=now, last_record_change=declared)
                if self._store.insert(record):
                    logger.debug(f"Created {namespace}/{identifier}")
                    return Observation(namespace, identifier, now, now, ObservationOutcome.CREATED)
                logger.debug(f"Insert race lost for {namespace}/{identifier} (attempt {attempt}), re-reading")
                continue

            if not self._needs_update(row, declared):
                assert row.first_indexed is not None and row.last_indexed is not None
                return Observation(namespace, identifier, row.first_indexed, row.last_indexed, ObservationOutcome.UNCHANGED)

            fields = self._update_fields(row, declared, now)
            if self._store.update_by_key(namespace, identifier, fields, expected=row):
                revived = row.is_deleted or row.first_indexed is None
                outcome = ObservationOutcome.REVIVED if revived else ObservationOutcome.UPDATED
                logger.debug(f"{outcome.value.capitalize()} {namespace}/{identifier}")
                return Observation(namespace, identifier, fields["first_indexed"], fields["last_indexed"], outcome)
            logger.debug(f"Update race lost for {namespace}/{identifier} (attempt {attempt}), re-reading")

        logger.warning(f"Giving up on {namespace}/{identifier} after {self._max_attempts} contended attempts")
        raise ConcurrentUpdateError(f"{namespace}/{identifier} changed concurrently {self._max_attempts} times in a row")

    def _needs_update(self, row: TrackedRecord, declared: datetime) -> bool:
        if row.is_deleted or row.first_indexed is None or row.last_indexed is None or row.last_record_change is None:
            return True
        difference = declared - row.last_record_change
        if abs(difference) <= self._tolerance:
            return False
        if self._reject_stale_changes and difference < timedelta(0):
            logger.debug(f"Stale declared change for {row.namespace}/{row.identifier} ignored: {declared.isoformat()} < {row.last_record_change.isoformat()}")
            return False
        return True

    @staticmethod
    def _update_fields(row: TrackedRecord, declared: datetime, now: datetime) -> dict[str, datetime | None]:
        # last_indexed never moves backwards, even if this process's clock lags the last writer's
        last_indexed = now if row.last_indexed is None else max(now, row.last_indexed)
        first_indexed = row.first_indexed
        if first_indexed is None or row.is_deleted:
            first_indexed = last_indexed
        return {
            "first_indexed": first_indexed,
            "last_indexed": last_indexed,
            "last_record_change": declared,
            "deleted": None,
        }

    # --- Deletion and lookups ---

    def mark_deleted(self, namespace: str, identifier: str) -> TrackedRecord:
        """Tombstone a record the index has dropped.

        Creates a tombstone for unknown keys and leaves existing tombstones
        (and their original deletion time) alone. last_indexed is kept.
        """
        validate_key(namespace, identifier)
        if self._session.bound_key == (namespace, identifier):
            self._session.clear()

        for attempt in range(1, self._max_attempts + 1):
            row = self._store.select_by_key(namespace, identifier)
            now = ensure_utc(self._clock())

            if row is None:
                tombstone = TrackedRecord(namespace, identifier, deleted=now)
                if self._store.insert(tombstone):
                    logger.debug(f"Tombstoned unseen {namespace}/{identifier}")
                    return tombstone
                continue

            if row.is_deleted:
                return row

            fields: dict[str, datetime | None] = {"deleted": now, "first_indexed": None}
            if self._store.update_by_key(namespace, identifier, fields, expected=row):
                logger.debug(f"Tombstoned {namespace}/{identifier}")
                return row.with_fields(fields)
            logger.debug(f"Delete race lost for {namespace}/{identifier} (attempt {attempt}), re-reading")

        raise ConcurrentUpdateError(f"{namespace}/{identifier} changed concurrently {self._max_attempts} times in a row")

    def retrieve(self, namespace: str, identifier: str) -> TrackedRecord | None:
        """Current stored row for a key, bypassing the session cache."""
        return self._store.select_by_key(namespace, identifier)

    def changes(
        self,
        namespace: str,
        since: datetime,
        until: datetime | None = None,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[TrackedRecord]:
        """Active records whose last_indexed falls in [since, until]; until defaults to now."""
        return self._store.list_changed(namespace, since, until or self._clock(), offset=offset, limit=limit)

    def deletions(
        self,
        namespace: str,
        since: datetime,
        until: datetime | None = None,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[TrackedRecord]:
        """Tombstones whose deleted instant falls in [since, until]; until defaults to now."""
        return self._store.list_deleted(namespace, since, until or self._clock(), offset=offset, limit=limit)
