"""Tracked row value object and key validation."""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from record_tracker.clock import ensure_utc
from record_tracker.exceptions import TrackerConfigError

__all__ = [
    "MAX_IDENTIFIER_LENGTH",
    "MAX_NAMESPACE_LENGTH",
    "TRACKED_FIELDS",
    "TrackedRecord",
    "validate_key",
]

MAX_NAMESPACE_LENGTH = 30
MAX_IDENTIFIER_LENGTH = 120

TRACKED_FIELDS = frozenset({"first_indexed", "last_indexed", "last_record_change", "deleted"})
"""Columns that update_by_key() may change. The key columns are immutable."""


def validate_key(namespace: str, identifier: str) -> None:
    """Reject keys the schema cannot hold."""
    if not namespace:
        raise TrackerConfigError("namespace must not be empty")
    if not identifier:
        raise TrackerConfigError(f"identifier must not be empty (namespace {namespace!r})")
    if len(namespace) > MAX_NAMESPACE_LENGTH:
        raise TrackerConfigError(f"namespace longer than {MAX_NAMESPACE_LENGTH} characters: {namespace!r}")
    if len(identifier) > MAX_IDENTIFIER_LENGTH:
        raise TrackerConfigError(f"identifier longer than {MAX_IDENTIFIER_LENGTH} characters: {identifier!r}")


@dataclass(frozen=True, slots=True)
class TrackedRecord:
    """One change_tracker row. All instants are aware UTC or None."""

    namespace: str
    identifier: str
    first_indexed: datetime | None = None
    last_indexed: datetime | None = None
    last_record_change: datetime | None = None
    deleted: datetime | None = None

    def __post_init__(self) -> None:
        for name in TRACKED_FIELDS:
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, ensure_utc(value))

    @property
    def key(self) -> tuple[str, str]:
        return (self.namespace, self.identifier)

    @property
    def is_deleted(self) -> bool:
        """Whether this row is a tombstone."""
        return self.deleted is not None

    def with_fields(self, fields: dict[str, Any]) -> "TrackedRecord":
        """Return a copy with the given tracked columns replaced."""
        unknown = set(fields) - TRACKED_FIELDS
        if unknown:
            raise TrackerConfigError(f"Not a tracked column: {sorted(unknown)}")
        return replace(self, **fields)
