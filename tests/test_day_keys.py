"""Tests for day key resolution."""

from datetime import UTC, date, datetime

import pytest

from pulse_sync.domain.enums import RejectionReason
from pulse_sync.domain.errors import MissingTimestamp, RecordValidationError
from pulse_sync.domain.models import Record
from pulse_sync.services.day_keys import DayKeyResolver, is_day_key, load_timezone


@pytest.fixture
def resolver() -> DayKeyResolver:
    return DayKeyResolver("Asia/Seoul")


class TestResolve:
    """Which timestamp a day key comes from."""

    def test_collection_date_in_local_zone(self, resolver):
        """16:30 UTC on the 11th is 01:30 on the 12th in Seoul."""
        assert resolver.resolve({"collectionDate": "2025-10-11T16:30:00Z"}) == "2025-10-12"

    def test_collection_date_wins_over_explicit_and_upload(self, resolver):
        raw = {
            "collectionDate": "2025-10-12T10:00:00+09:00",
            "dayKeyLocal": "2025-10-10",
            "uploadDate": "2025-09-01T00:00:00Z",
        }
        assert resolver.resolve(raw) == "2025-10-12"

    def test_explicit_day_key_wins_over_upload(self, resolver):
        raw = {"dayKeyLocal": "2025-10-10", "uploadDate": "2025-09-01T00:00:00Z"}
        assert resolver.resolve(raw) == "2025-10-10"

    def test_upload_date_fallback(self, resolver):
        assert resolver.resolve({"uploadDate": "2025-10-01T09:00:00Z"}) == "2025-10-01"

    def test_blank_fields_are_skipped(self, resolver):
        raw = {"collectionDate": "  ", "dayKeyLocal": "", "uploadDate": "2025-10-01T09:00:00Z"}
        assert resolver.resolve(raw) == "2025-10-01"

    def test_snake_case_and_attributes(self, resolver):
        assert resolver.resolve({"collection_date": "2025-10-12T00:30:00+09:00"}) == "2025-10-12"
        record = Record(video_id="v1", day_key="2025-10-03")
        assert resolver.resolve(record) == "2025-10-03"

    def test_missing_timestamp(self, resolver):
        with pytest.raises(MissingTimestamp) as exc_info:
            resolver.resolve({"videoId": "v1"})
        assert exc_info.value.reason == RejectionReason.MISSING_TIMESTAMP

    def test_unparseable_timestamp(self, resolver):
        with pytest.raises(RecordValidationError) as exc_info:
            resolver.resolve({"collectionDate": "yesterday-ish"})
        assert exc_info.value.reason == RejectionReason.INVALID_TIMESTAMP

    def test_resolution_ignores_the_clock(self, resolver):
        """The same payload always lands on the same day."""
        raw = {"collectionDate": "2025-01-01T23:59:59+09:00"}
        assert resolver.resolve(raw) == resolver.resolve(dict(raw)) == "2025-01-01"


class TestParse:
    """Accepted timestamp representations."""

    def test_epoch_milliseconds(self, resolver):
        # 2025-10-12T00:00:00Z
        assert resolver.day_key_of(1760227200000) == "2025-10-12"
        # 2025-10-11T14:00:00Z is 23:00 local
        assert resolver.day_key_of(1760191200000) == "2025-10-11"

    def test_naive_datetime_is_utc(self, resolver):
        assert resolver.day_key_of(datetime(2025, 10, 11, 15, 0)) == "2025-10-12"
        assert resolver.day_key_of(datetime(2025, 10, 11, 14, 59)) == "2025-10-11"

    def test_bare_date(self, resolver):
        assert resolver.day_key_of(date(2025, 10, 5)) == "2025-10-05"
        assert resolver.day_key_of("2025-10-05") == "2025-10-05"

    def test_bool_rejected(self, resolver):
        with pytest.raises(RecordValidationError):
            resolver.parse(True)

    def test_to_instant_of_bare_date_is_local_midnight(self, resolver):
        instant = resolver.to_instant("2025-10-12")
        assert instant == datetime(2025, 10, 11, 15, 0, tzinfo=UTC)
        assert resolver.day_key_of(instant) == "2025-10-12"

    def test_to_instant_is_utc(self, resolver):
        instant = resolver.to_instant("2025-10-12T10:00:00+09:00")
        assert instant.tzinfo is UTC
        assert instant == datetime(2025, 10, 12, 1, 0, tzinfo=UTC)


def test_is_day_key() -> None:
    assert is_day_key("2025-10-12")
    assert not is_day_key("2025-02-30")
    assert not is_day_key("2025-1-2")
    assert not is_day_key(20251012)


def test_load_timezone_rejects_unknown_zone() -> None:
    with pytest.raises(ValueError):
        load_timezone("Mars/Olympus_Mons")


def test_today_uses_injected_clock(resolver, clock) -> None:
    assert resolver.today(clock) == "2025-10-12"
    clock.advance(hours=12)
    # 2025-10-13 00:00 local
    assert resolver.today(clock) == "2025-10-13"
