"""Single-flight cache for the most recently observed record."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from record_tracker.tracking.timestamps import format_timestamp

__all__ = ["Observation", "ObservationOutcome", "TrackingSession"]


class ObservationOutcome(StrEnum):
    """What observe() did to the store."""

    CREATED = "created"
    UNCHANGED = "unchanged"
    UPDATED = "updated"
    REVIVED = "revived"


@dataclass(frozen=True, slots=True)
class Observation:
    """Index dates for one record after observe()."""

    namespace: str
    identifier: str
    first_indexed: datetime
    last_indexed: datetime
    outcome: ObservationOutcome

    @property
    def key(self) -> tuple[str, str]:
        return (self.namespace, self.identifier)

    @property
    def first_indexed_text(self) -> str:
        return format_timestamp(self.first_indexed)

    @property
    def last_indexed_text(self) -> str:
        return format_timestamp(self.last_indexed)


@dataclass(slots=True)
class TrackingSession:
    """Holds at most one bound key and its Observation.

    Emitters usually ask for first-indexed and last-indexed in two separate
    calls for the same record; the second call is answered from here. Binding
    a new key forgets the old one. Nothing is written anywhere, since the
    bound state is already durable.
    """

    _key: tuple[str, str] | None = field(default=None)
    _observation: Observation | None = field(default=None)

    @property
    def bound_key(self) -> tuple[str, str] | None:
        return self._key

    def lookup(self, namespace: str, identifier: str) -> Observation | None:
        """Return the cached Observation if this exact key is bound."""
        if self._key == (namespace, identifier):
            return self._observation
        return None

    def bind(self, observation: Observation) -> None:
        self._key = observation.key
        self._observation = observation

    def clear(self) -> None:
        self._key = None
        self._observation = None
