"""
Date calculation service.
Owns the notion of "now" and "today" so streak and snooze logic never reads the system clock directly.
"""
import os
from datetime import datetime, timedelta, date, timezone, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from challenge_engine.constants import DEFAULT_TIMEZONE


def _resolve_zone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


class DateService:
    """Service for date-related operations"""

    def __init__(
        self,
        now_fn: Optional[Callable[[], datetime]] = None,
        timezone_name: Optional[str] = None
    ):
        """
        Args:
            now_fn: Clock returning the current instant. Naive values are read as UTC.
            timezone_name: Canonical zone used to cut timestamps into calendar days
        """
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))
        self.zone = _resolve_zone(
            timezone_name or os.getenv("CHALLENGE_ENGINE_TIMEZONE", DEFAULT_TIMEZONE)
        )

    def now(self) -> datetime:
        """
        Current instant as naive UTC (the storage convention).

        Returns:
            Naive datetime in UTC
        """
        current = self._now_fn()
        if current.tzinfo is not None:
            current = current.astimezone(timezone.utc).replace(tzinfo=None)
        return current

    def local_date(self, moment: datetime) -> date:
        """
        Calendar date of a stored (naive UTC) timestamp in the canonical zone.

        Args:
            moment: Naive UTC datetime

        Returns:
            Date in the canonical zone
        """
        aware = moment.replace(tzinfo=timezone.utc)
        return aware.astimezone(self.zone).date()

    def today(self) -> date:
        """Current calendar date in the canonical zone"""
        return self.local_date(self.now())

    def yesterday(self) -> date:
        """Calendar date before today"""
        return self.today() - timedelta(days=1)

    @staticmethod
    def days_between(earlier: date, later: date) -> int:
        """Whole calendar days from earlier to later"""
        return (later - earlier).days

    def get_day_range(self, target_date: date) -> tuple[datetime, datetime]:
        """
        Get the naive UTC range covering one calendar day of the canonical zone.

        Args:
            target_date: Date to get range for

        Returns:
            Tuple of (day_start, day_end) datetimes, end exclusive
        """
        local_start = datetime.combine(target_date, datetime.min.time(), tzinfo=self.zone)
        local_end = datetime.combine(
            target_date + timedelta(days=1), datetime.min.time(), tzinfo=self.zone
        )
        return (
            local_start.astimezone(timezone.utc).replace(tzinfo=None),
            local_end.astimezone(timezone.utc).replace(tzinfo=None),
        )
