"""
Reporting Windows

Maps a period identifier to the concrete, inclusive [start, end] range it
covers in the business time zone. Weeks run Monday to Sunday.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Union

from order_stats.stats.exceptions import InvalidPeriod

DAY_START = time(0, 0, 0)
DAY_END = time(23, 59, 59)
LABEL_FORMAT = "%d-%m-%Y"


class Period(str, Enum):
    """Supported reporting windows; the value doubles as URL segment and cache key"""
    YESTERDAY = "yesterday"
    LAST_WEEK = "last-week"
    LAST_MONTH = "last-month"

    @classmethod
    def parse(cls, value: Union["Period", str]) -> "Period":
        """Coerce a string into a Period, raising InvalidPeriod when unknown"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidPeriod(value) from None


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of zoned timestamps"""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Range start {self.start} is after end {self.end}")

    @property
    def start_label(self) -> str:
        return self.start.strftime(LABEL_FORMAT)

    @property
    def end_label(self) -> str:
        return self.end.strftime(LABEL_FORMAT)


def _day_span(first: date, last: date, tz: tzinfo) -> DateRange:
    return DateRange(
        start=datetime.combine(first, DAY_START, tzinfo=tz),
        end=datetime.combine(last, DAY_END, tzinfo=tz),
    )


def resolve(period: Union[Period, str], now: datetime, tz: tzinfo) -> DateRange:
    """
    Resolve a period into its date range.

    Args:
        period: Period or its string identifier
        now: Reference instant; aware values are converted into ``tz``,
            naive values are read as wall time in ``tz``
        tz: Business time zone

    Returns:
        DateRange for the period

    Raises:
        InvalidPeriod: If the period is not recognized
    """
    period = Period.parse(period)
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    today = now.astimezone(tz).date()

    if period is Period.YESTERDAY:
        day = today - timedelta(days=1)
        return _day_span(day, day, tz)

    if period is Period.LAST_WEEK:
        this_monday = today - timedelta(days=today.weekday())
        monday = this_monday - timedelta(days=7)
        return _day_span(monday, monday + timedelta(days=6), tz)

    # LAST_MONTH
    last_day = today.replace(day=1) - timedelta(days=1)
    return _day_span(last_day.replace(day=1), last_day, tz)
