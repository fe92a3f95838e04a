"""Tests for datetime normalization."""

from datetime import UTC, datetime, timedelta, timezone

from buddyflow.infrastructure.common.datetimes import ensure_utc, require_utc


class TestEnsureUtc:
    def test_none(self) -> None:
        assert ensure_utc(None) is None

    def test_naive_values_are_taken_as_utc(self) -> None:
        assert ensure_utc(datetime(2026, 3, 2, 9, 0)) == datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

    def test_aware_values_are_converted(self) -> None:
        berlin = datetime(2026, 3, 2, 10, 0, tzinfo=timezone(timedelta(hours=1)))

        converted = require_utc(berlin)

        assert converted == datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
        assert converted.tzinfo == UTC
