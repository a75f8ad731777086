"""
Tests for DateService.

Tests cover:
1. "Now" normalisation to naive UTC
2. Calendar date in the canonical zone
3. Day range calculation
"""
import pytest
from datetime import date, datetime, timedelta, timezone
from zoneinfo import available_timezones

from challenge_engine.services.date_service import DateService

requires_tzdata = pytest.mark.skipif(
    "Asia/Tokyo" not in available_timezones(),
    reason="IANA time zone database not installed"
)


class TestNow:
    """Tests for now()"""

    def test_naive_clock_passes_through(self):
        """Naive clock values are already UTC"""
        service = DateService(now_fn=lambda: datetime(2026, 1, 30, 10, 0), timezone_name="UTC")

        assert service.now() == datetime(2026, 1, 30, 10, 0)

    def test_aware_clock_converted_to_naive_utc(self):
        """Aware values are converted and stripped"""
        plus_two = timezone(timedelta(hours=2))
        service = DateService(
            now_fn=lambda: datetime(2026, 1, 30, 12, 0, tzinfo=plus_two),
            timezone_name="UTC"
        )

        result = service.now()

        assert result == datetime(2026, 1, 30, 10, 0)
        assert result.tzinfo is None

    def test_default_clock_is_naive(self):
        """The system clock is also returned as naive UTC"""
        assert DateService(timezone_name="UTC").now().tzinfo is None


class TestCalendarDates:
    """Tests for today(), yesterday() and days_between()"""

    def test_today_and_yesterday_in_utc(self, date_service):
        assert date_service.today() == date(2026, 1, 30)
        assert date_service.yesterday() == date(2026, 1, 29)

    def test_yesterday_across_month_boundary(self):
        service = DateService(now_fn=lambda: datetime(2026, 3, 1, 0, 30), timezone_name="UTC")

        assert service.yesterday() == date(2026, 2, 28)

    @requires_tzdata
    def test_canonical_zone_moves_the_date(self):
        """23:30 UTC is already the next day in Tokyo"""
        service = DateService(now_fn=lambda: datetime(2026, 1, 30, 23, 30), timezone_name="Asia/Tokyo")

        assert service.today() == date(2026, 1, 31)

    def test_days_between(self):
        assert DateService.days_between(date(2026, 1, 29), date(2026, 1, 30)) == 1
        assert DateService.days_between(date(2026, 1, 30), date(2026, 1, 30)) == 0
        assert DateService.days_between(date(2025, 12, 31), date(2026, 1, 2)) == 2


class TestDayRange:
    """Tests for get_day_range()"""

    def test_utc_day_range(self, date_service):
        start, end = date_service.get_day_range(date(2026, 1, 30))

        assert start == datetime(2026, 1, 30, 0, 0)
        assert end == datetime(2026, 1, 31, 0, 0)

    @requires_tzdata
    def test_zone_day_range_is_shifted_to_utc(self):
        """Tokyo is UTC+9 all year"""
        service = DateService(timezone_name="Asia/Tokyo")

        start, end = service.get_day_range(date(2026, 1, 30))

        assert start == datetime(2026, 1, 29, 15, 0)
        assert end == datetime(2026, 1, 30, 15, 0)
