"""Tests for the injectable clocks."""

from datetime import datetime, timedelta, timezone

from billing_kernel.domain.clock import DeterministicClock, SystemClock, as_utc


class TestDeterministicClock:
    """Time only moves when told to."""

    def test_frozen(self, now):
        clock = DeterministicClock(now)
        assert clock.now() == clock.now() == now

    def test_advance(self, now):
        clock = DeterministicClock(now)
        clock.advance(30)
        clock.advance(days=1)
        assert clock.now() == now + timedelta(days=1, seconds=30)

    def test_advance_by_keyword_only(self, now):
        """A keyword delta moves exactly that far, with no extra second."""
        clock = DeterministicClock(now)
        clock.advance(days=1)
        assert clock.now() - now == timedelta(seconds=86400)

    def test_advance_default_one_second(self, now):
        clock = DeterministicClock(now)
        clock.advance()
        assert clock.now() == now + timedelta(seconds=1)

    def test_set_time(self, now):
        clock = DeterministicClock(now)
        clock.set_time(datetime(2026, 1, 1))
        assert clock.now() == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_default_time_is_utc(self):
        assert DeterministicClock().now().tzinfo is not None


class TestSystemClock:
    def test_aware_utc(self):
        assert SystemClock().now().utcoffset() == timedelta(0)


class TestAsUtc:
    def test_naive_taken_as_utc(self):
        assert as_utc(datetime(2025, 1, 1, 9)) == datetime(2025, 1, 1, 9, tzinfo=timezone.utc)

    def test_offset_converted(self):
        plus_two = timezone(timedelta(hours=2))
        assert as_utc(datetime(2025, 1, 1, 9, tzinfo=plus_two)).hour == 7
