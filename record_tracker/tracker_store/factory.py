"""Factory function for creating tracker store instances based on settings."""

from record_tracker.settings import Settings
from record_tracker.tracker_store.protocol import TrackerStore


def create_tracker_store(settings: Settings) -> TrackerStore:
    """Create a TrackerStore based on settings.

    Selects SqlTrackerStore when tracker_database_url is configured,
    otherwise falls back to MemoryTrackerStore.

    Backends are imported lazily so the memory store works without a database driver.
    """
    if settings.tracker_database_url:
        from record_tracker.tracker_store.sql import SqlTrackerStore

        return SqlTrackerStore(
            settings.tracker_database_url,
            table_name=settings.tracker_table_name,
            create_tables=settings.tracker_create_tables,
        )

    from record_tracker.tracker_store.memory import MemoryTrackerStore

    return MemoryTrackerStore()
