"""Tests for the injectable clock."""

from datetime import datetime, timedelta, timezone

import pytest

from report_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:

    def test_frozen_at_default(self):
        clock = DeterministicClock()
        assert clock.now_utc() == clock.now_utc()
        assert clock.now_utc() == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert clock.generated_at() == "2024-01-01T12:00:00+00:00"

    def test_tick_advances_one_second(self):
        clock = DeterministicClock()
        start = clock.now_utc()
        assert clock.tick() == start + timedelta(seconds=1)

    def test_advance(self):
        clock = DeterministicClock()
        clock.advance(90)
        assert clock.generated_at() == "2024-01-01T12:01:30+00:00"

    def test_set_time_normalizes_to_utc(self):
        clock = DeterministicClock()
        clock.advance(30)
        clock.set_time(datetime(2025, 6, 30, 14, 0, tzinfo=timezone(timedelta(hours=2))))
        assert clock.now_utc() == datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc)
        assert clock.now_utc().tzinfo is timezone.utc

    def test_naive_datetime_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            DeterministicClock(datetime(2024, 1, 1))


class TestSystemClock:

    def test_timezone_aware(self):
        assert SystemClock().now_utc().tzinfo is timezone.utc

    def test_generated_at_is_iso(self):
        assert datetime.fromisoformat(SystemClock().generated_at()).tzinfo is not None
