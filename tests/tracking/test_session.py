"""Tests for the single-key tracking session and Observation."""

from datetime import UTC, datetime

from record_tracker.tracking import Observation, ObservationOutcome, TrackingSession

T = datetime(2024, 1, 1, 8, 30, tzinfo=UTC)


def _observation(identifier: str) -> Observation:
    return Observation("biblio", identifier, T, T, ObservationOutcome.CREATED)


class TestTrackingSession:
    def test_starts_empty(self):
        session = TrackingSession()
        assert session.bound_key is None
        assert session.lookup("biblio", "u1") is None

    def test_bind_and_lookup(self):
        session = TrackingSession()
        observation = _observation("u1")
        session.bind(observation)

        assert session.bound_key == ("biblio", "u1")
        assert session.lookup("biblio", "u1") is observation
        assert session.lookup("authority", "u1") is None
        assert session.lookup("biblio", "u2") is None

    def test_binding_new_key_replaces_old(self):
        session = TrackingSession()
        session.bind(_observation("u1"))
        session.bind(_observation("u2"))

        assert session.bound_key == ("biblio", "u2")
        assert session.lookup("biblio", "u1") is None

    def test_clear(self):
        session = TrackingSession()
        session.bind(_observation("u1"))
        session.clear()

        assert session.bound_key is None
        assert session.lookup("biblio", "u1") is None


class TestObservation:
    def test_text_renderings(self):
        observation = _observation("u1")
        assert observation.first_indexed_text == "2024-01-01T08:30:00Z"
        assert observation.last_indexed_text == "2024-01-01T08:30:00Z"
        assert observation.key == ("biblio", "u1")

    def test_outcome_is_string_enum(self):
        assert ObservationOutcome.REVIVED == "revived"
