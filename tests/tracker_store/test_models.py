"""Tests for TrackedRecord and key validation."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from record_tracker.exceptions import TrackerConfigError
from record_tracker.tracker_store import MAX_IDENTIFIER_LENGTH, MAX_NAMESPACE_LENGTH, TrackedRecord, validate_key


class TestTrackedRecord:
    def test_naive_instants_become_utc(self):
        record = TrackedRecord("biblio", "u1", last_indexed=datetime(2024, 1, 1, 12, 0))
        assert record.last_indexed == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def test_other_zones_converted_to_utc(self):
        record = TrackedRecord("biblio", "u1", deleted=datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=-5))))
        assert record.deleted == datetime(2024, 1, 1, 17, 0, tzinfo=UTC)
        assert record.deleted is not None and record.deleted.utcoffset() == timedelta(0)

    def test_is_deleted(self):
        assert TrackedRecord("biblio", "u1").is_deleted is False
        assert TrackedRecord("biblio", "u1", deleted=datetime(2024, 1, 1, tzinfo=UTC)).is_deleted is True

    def test_key(self):
        assert TrackedRecord("biblio", "u1").key == ("biblio", "u1")

    def test_frozen(self):
        record = TrackedRecord("biblio", "u1")
        with pytest.raises(AttributeError):
            record.deleted = datetime(2024, 1, 1, tzinfo=UTC)  # type: ignore[misc]

    def test_with_fields(self):
        at = datetime(2024, 1, 1, tzinfo=UTC)
        record = TrackedRecord("biblio", "u1", first_indexed=at, last_indexed=at)

        updated = record.with_fields({"first_indexed": None, "deleted": at})

        assert updated == TrackedRecord("biblio", "u1", last_indexed=at, deleted=at)
        assert record.first_indexed == at

    def test_with_fields_rejects_key_columns(self):
        with pytest.raises(TrackerConfigError):
            TrackedRecord("biblio", "u1").with_fields({"namespace": "other"})


class TestValidateKey:
    def test_accepts_limits(self):
        validate_key("n" * MAX_NAMESPACE_LENGTH, "i" * MAX_IDENTIFIER_LENGTH)

    @pytest.mark.parametrize(
        ("namespace", "identifier"),
        [
            ("", "u1"),
            ("biblio", ""),
            ("n" * (MAX_NAMESPACE_LENGTH + 1), "u1"),
            ("biblio", "i" * (MAX_IDENTIFIER_LENGTH + 1)),
        ],
    )
    def test_rejects(self, namespace: str, identifier: str):
        with pytest.raises(TrackerConfigError):
            validate_key(namespace, identifier)
