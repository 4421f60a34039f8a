"""
Tests for the time providers and the calendar-date helper
"""

from datetime import date, datetime, timedelta, timezone

from family_ledger.kernel.time import RealTimeProvider, TestTimeProvider, today


def test_today_follows_the_test_clock(test_time: TestTimeProvider) -> None:
    assert today(test_time) == date(2025, 1, 15)

    test_time.advance_days(17)
    assert today(test_time) == date(2025, 2, 1)

    test_time.set_time(datetime(2025, 3, 31, 23, 59, tzinfo=timezone.utc))
    assert today(test_time) == date(2025, 3, 31)


def test_unset_test_clock_starts_at_epoch() -> None:
    assert today(TestTimeProvider()) == date(1970, 1, 1)


def test_real_clock_is_utc() -> None:
    now = RealTimeProvider().now()

    assert now.utcoffset() == timedelta(0)
