"""Wall-clock source for the tracker.

The tracker never calls ``datetime.now`` directly; it receives a ``Clock`` so
tests and replays can control time.
"""

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]
"""Zero-argument callable returning a timezone-aware UTC instant."""

__all__ = ["Clock", "ensure_utc", "utc_now"]


def utc_now() -> datetime:
    """Return the current instant in UTC."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Normalize an instant to aware UTC. Naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
