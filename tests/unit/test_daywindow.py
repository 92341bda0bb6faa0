"""
Tests for daywindow.py - Local calendar-day bucketing

Tests:
- local_day_key truncates in the local zone, not UTC
- Instants a moment either side of local midnight
- same_day / in_day / day_bounds agree with each other
- Naive datetimes are rejected
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from points_ledger import local_day_key, same_day, day_bounds, in_day, day_string

from tests.factories import LOCAL_TZ, local


class TestLocalDayKey:

    def test_truncates_to_local_date(self):
        assert local_day_key(local(2025, 3, 10, 15, 30), LOCAL_TZ) == date(2025, 3, 10)

    def test_utc_instant_converted_before_truncation(self):
        # 20:00 UTC on the 9th is 04:00 on the 10th at +08:00.
        instant = datetime(2025, 3, 9, 20, 0, tzinfo=timezone.utc)
        assert local_day_key(instant, LOCAL_TZ) == date(2025, 3, 10)
        assert local_day_key(instant, timezone.utc) == date(2025, 3, 9)

    def test_one_microsecond_before_midnight(self):
        instant = local(2025, 3, 10, 23, 59, 59, 999999)
        assert local_day_key(instant, LOCAL_TZ) == date(2025, 3, 10)

    def test_exactly_midnight_belongs_to_new_day(self):
        assert local_day_key(local(2025, 3, 11, 0, 0), LOCAL_TZ) == date(2025, 3, 11)

    def test_year_boundary(self):
        assert local_day_key(local(2024, 12, 31, 23, 59), LOCAL_TZ) == date(2024, 12, 31)
        assert local_day_key(local(2025, 1, 1, 0, 0), LOCAL_TZ) == date(2025, 1, 1)

    def test_negative_offset_zone(self):
        west = timezone(timedelta(hours=-5))
        instant = datetime(2025, 3, 10, 3, 0, tzinfo=timezone.utc)
        assert local_day_key(instant, west) == date(2025, 3, 9)

    def test_naive_datetime_rejected(self):
        with pytest.raises(ValueError):
            local_day_key(datetime(2025, 3, 10, 12, 0), LOCAL_TZ)

    def test_system_zone_when_tz_is_none(self):
        instant = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
        assert local_day_key(instant) == instant.astimezone().date()


class TestSameDay:

    def test_either_side_of_midnight_differ(self):
        before = local(2025, 3, 10, 23, 59, 59)
        after = local(2025, 3, 11, 0, 0, 1)
        assert not same_day(before, after, LOCAL_TZ)

    def test_same_local_day_different_utc_days(self):
        # 00:30 and 23:30 local are on different UTC days but the same local day.
        early = local(2025, 3, 10, 0, 30)
        late = local(2025, 3, 10, 23, 30)
        assert early.astimezone(timezone.utc).date() != late.astimezone(timezone.utc).date()
        assert same_day(early, late, LOCAL_TZ)

    def test_mixed_input_zones(self):
        a = datetime(2025, 3, 9, 16, 30, tzinfo=timezone.utc)   # 00:30 local on the 10th
        b = local(2025, 3, 10, 22, 0)
        assert same_day(a, b, LOCAL_TZ)


class TestDayBounds:

    def test_bounds_are_local_midnights(self):
        start, end = day_bounds(date(2025, 3, 10), LOCAL_TZ)
        assert start == local(2025, 3, 10, 0, 0)
        assert end == local(2025, 3, 11, 0, 0)
        assert end - start == timedelta(days=1)

    def test_bounds_agree_with_in_day(self):
        day = date(2025, 3, 10)
        start, end = day_bounds(day, LOCAL_TZ)
        assert in_day(start, day, LOCAL_TZ)
        assert in_day(end - timedelta(microseconds=1), day, LOCAL_TZ)
        assert not in_day(end, day, LOCAL_TZ)
        assert not in_day(start - timedelta(microseconds=1), day, LOCAL_TZ)

    def test_system_zone_bounds_are_aware(self):
        start, end = day_bounds(date(2025, 3, 10))
        assert start.tzinfo is not None and end.tzinfo is not None


def test_day_string_is_iso():
    assert day_string(date(2025, 3, 1)) == "2025-03-01"
