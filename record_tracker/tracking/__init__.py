"""Change tracking: the observe() state machine, its session cache and timestamp helpers."""

from ._session import Observation, ObservationOutcome, TrackingSession
from .timestamps import (
    EPOCH,
    format_timestamp,
    latest_transaction,
    parse_coarse_transaction,
    parse_declared_change,
    parse_precise_transaction,
)
from .tracker import DEFAULT_TOLERANCE, ChangeTracker

__all__ = [
    "DEFAULT_TOLERANCE",
    "EPOCH",
    "ChangeTracker",
    "Observation",
    "ObservationOutcome",
    "TrackingSession",
    "format_timestamp",
    "latest_transaction",
    "parse_coarse_transaction",
    "parse_declared_change",
    "parse_precise_transaction",
]
