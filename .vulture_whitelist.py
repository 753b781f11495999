"""Vulture whitelist: attributes used by frameworks or callers, not direct code."""

# pydantic-settings reads model_config
from record_tracker.settings import Settings

Settings.model_config
Settings.change_tolerance

# Context manager protocol, called by Python
from record_tracker.runtime import TrackerRuntime

TrackerRuntime.__enter__
TrackerRuntime.__exit__

# Public API used by indexing pipelines
from record_tracker.tracking import ChangeTracker

ChangeTracker.first_indexed
ChangeTracker.last_indexed
ChangeTracker.retrieve
ChangeTracker.changes
ChangeTracker.deletions
