"""
Date calculation and conversion service.
Handles the local calendar, month ranges and the storage format for timestamps.

Timestamps are stored as naive UTC datetimes. The "local calendar" is the zone
named by HABITLOG_TIMEZONE, or the system zone when unset.
"""
import calendar
import os
from datetime import datetime, date, time, timedelta, timezone, tzinfo
from typing import List, Optional, Union
from zoneinfo import ZoneInfo
from tzlocal import get_localzone

DateLike = Union[date, datetime]


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (storage format)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DateService:
    """Service for date-related operations"""

    @staticmethod
    def get_local_timezone() -> tzinfo:
        """
        Get the zone that defines the user's calendar.

        Returns:
            ZoneInfo from HABITLOG_TIMEZONE, or the system zone (TZ or
            /etc/localtime) with its daylight saving rules
        """
        name = os.getenv("HABITLOG_TIMEZONE")
        if name:
            return ZoneInfo(name)
        return get_localzone()

    @staticmethod
    def to_storage(dt: datetime) -> datetime:
        """Convert an aware datetime to naive UTC"""
        return dt.astimezone(timezone.utc).replace(tzinfo=None)

    @staticmethod
    def from_storage(dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
        """Convert a stored naive UTC datetime to an aware datetime in tz"""
        tz = tz or DateService.get_local_timezone()
        return dt.replace(tzinfo=timezone.utc).astimezone(tz)

    @staticmethod
    def local_day(value: DateLike, tz: Optional[tzinfo] = None) -> date:
        """
        Calendar day of a value as seen in the local calendar.

        Plain dates are already calendar days. Naive datetimes are taken as
        local wall time, aware ones are converted first.
        """
        if not isinstance(value, datetime):
            return value
        if value.tzinfo is None:
            return value.date()
        tz = tz or DateService.get_local_timezone()
        return value.astimezone(tz).date()

    @staticmethod
    def local_midnight(value: DateLike, tz: Optional[tzinfo] = None) -> datetime:
        """
        Zero the time of day in the local calendar.

        Returns:
            Aware datetime at local 00:00 of the value's calendar day
        """
        tz = tz or DateService.get_local_timezone()
        day = DateService.local_day(value, tz)
        return datetime.combine(day, time.min, tzinfo=tz)

    @staticmethod
    def utc_midnight(value: DateLike, tz: Optional[tzinfo] = None) -> datetime:
        """
        Take the local year/month/day of a value and place it at UTC midnight.

        Used for daily progress so the stored day matches the day the user
        picked regardless of their offset.
        """
        day = DateService.local_day(value, tz)
        return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)

    @staticmethod
    def local_month_range(year: int, month: int, tz: Optional[tzinfo] = None) -> tuple[datetime, datetime]:
        """
        Get the inclusive range of a month in the local calendar.

        Returns:
            Tuple of (first day 00:00:00, last day 23:59:59), both aware
        """
        tz = tz or DateService.get_local_timezone()
        last_day = DateService.days_in_month(year, month)
        start = datetime(year, month, 1, tzinfo=tz)
        end = datetime(year, month, last_day, 23, 59, 59, tzinfo=tz)
        return start, end

    @staticmethod
    def utc_month_range(year: int, month: int) -> tuple[datetime, datetime]:
        """Get the inclusive range of a month on the UTC calendar"""
        last_day = DateService.days_in_month(year, month)
        start = datetime(year, month, 1, tzinfo=timezone.utc)
        end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc)
        return start, end

    @staticmethod
    def to_day_string(dt: DateLike) -> str:
        """Format as yyyy-MM-dd"""
        return dt.strftime("%Y-%m-%d")

    @staticmethod
    def to_iso_string(stored: datetime) -> str:
        """
        Format a stored naive UTC datetime as ISO-8601 with milliseconds.

        Example: datetime(2024, 3, 1) -> "2024-03-01T00:00:00.000Z"
        """
        return stored.strftime("%Y-%m-%dT%H:%M:%S.") + f"{stored.microsecond // 1000:03d}Z"

    @staticmethod
    def days_in_month(year: int, month: int) -> int:
        return calendar.monthrange(year, month)[1]

    @staticmethod
    def month_days(year: int, month: int) -> List[date]:
        """All calendar days of a month, in order"""
        first = date(year, month, 1)
        return [first + timedelta(days=offset) for offset in range(DateService.days_in_month(year, month))]
