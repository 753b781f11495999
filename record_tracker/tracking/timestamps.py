"""Declared-change extraction and timestamp formatting.

Source records rarely carry a clean modification instant. The helpers here
turn the usual candidates into one aware UTC ``datetime``, in a fixed order:

1. a precise transaction stamp, ``yyyyMMddHHmmss[.f]`` (MARC 005 style)
2. a coarse entry date, ``yyMMdd`` in the first six characters (MARC 008 style)
3. the epoch, so a record with no usable date still compares as "changed"
   against any genuine date already stored

Source stamps carry no zone and are read as UTC. Nothing in this module
raises on bad input.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

from record_tracker.clock import ensure_utc, utc_now
from record_tracker.logging import get_tracker_logger

logger = get_tracker_logger(__name__)

__all__ = [
    "EPOCH",
    "ISO8601_FORMAT",
    "format_timestamp",
    "latest_transaction",
    "parse_coarse_transaction",
    "parse_declared_change",
    "parse_precise_transaction",
]

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
ISO8601_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_PRECISE_FORMATS = ("%Y%m%d%H%M%S.%f", "%Y%m%d%H%M%S")
_CENTURY_LOOKBACK_YEARS = 80


def format_timestamp(value: datetime) -> str:
    """Render an instant as ``YYYY-MM-DDTHH:MM:SSZ`` in UTC."""
    return ensure_utc(value).strftime(ISO8601_FORMAT)


def parse_precise_transaction(value: str | None) -> datetime | None:
    """Parse a ``yyyyMMddHHmmss`` stamp with optional fraction, or return None."""
    if not value:
        return None
    text = value.strip()
    for fmt in _PRECISE_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=UTC)
        except ValueError:
            continue
    return None


def _expand_two_digit_year(year: int, now: datetime) -> int:
    start = now.year - _CENTURY_LOOKBACK_YEARS
    expanded = start - start % 100 + year
    return expanded if expanded >= start else expanded + 100


def parse_coarse_transaction(value: str | None, now: datetime | None = None) -> datetime | None:
    """Parse the leading ``yyMMdd`` of a fixed-length data field, or return None.

    Two-digit years land within 80 years before and 20 years after ``now``
    (default: the current time), so in 2026 ``55`` is 1955 and ``45`` is 2045.
    """
    if not value or len(value) < 6:
        return None
    head = value[:6]
    if not (head.isascii() and head.isdigit()):
        return None
    year = _expand_two_digit_year(int(head[:2]), now or utc_now())
    try:
        return datetime(year, int(head[2:4]), int(head[4:6]), tzinfo=UTC)
    except ValueError:
        return None


def _as_values(values: Iterable[str] | str | None) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        return [values]
    return list(values)


def latest_transaction(
    precise: Iterable[str] | str | None = None,
    coarse: Iterable[str] | str | None = None,
    now: datetime | None = None,
) -> datetime:
    """Pick the declared change instant for a record.

    Args:
        precise: Value(s) of the precise transaction field.
        coarse: Value(s) of the coarse entry-date field.
        now: Reference instant for two-digit years; defaults to the current time.

    Returns:
        The first precise value that parses, else the first coarse value that
        parses, else EPOCH.
    """
    for value in _as_values(precise):
        if (parsed := parse_precise_transaction(value)) is not None:
            return parsed
    for value in _as_values(coarse):
        if (parsed := parse_coarse_transaction(value, now)) is not None:
            return parsed
    return EPOCH


def parse_declared_change(value: datetime | str | int | float | None) -> datetime:
    """Coerce a caller-supplied change instant to aware UTC.

    Accepts datetimes, ISO-8601 strings, precise transaction stamps and epoch
    seconds. Anything unusable becomes EPOCH.
    """
    if value is None:
        return EPOCH
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, UTC)
        except (OverflowError, OSError, ValueError):
            logger.debug(f"Unusable epoch value {value!r}, using epoch")
            return EPOCH
    text = value.strip()
    if (parsed := parse_precise_transaction(text)) is not None:
        return parsed
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        pass
    logger.debug(f"Unparseable declared change {value!r}, using epoch")
    return EPOCH
