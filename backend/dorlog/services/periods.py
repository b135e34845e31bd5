"""
Reporting windows.

Two ways a report gets its date range:
1. The dashboard uses a trailing window: [now - 30 days, now]
2. Generated reports carry explicit periods from the client, encoded
   as "YYYY-MM-DD_YYYY-MM-DD" strings (one per selected month/range)

All windows are inclusive at both ends and expressed in UTC.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


@dataclass(frozen=True)
class DateWindow:
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def trailing_window(now: Optional[datetime] = None, days: int = 30) -> DateWindow:
    """The `days`-long window ending at `now`."""
    now = now or utc_now()
    return DateWindow(start=now - timedelta(days=days), end=now)


def parse_period(period: str) -> DateWindow:
    """Parse "YYYY-MM-DD_YYYY-MM-DD" into a start-of-day/end-of-day window.

    Raises:
        ValueError: If the string is malformed or start > end.
    """
    start_str, sep, end_str = period.partition("_")
    if not sep or not start_str or not end_str:
        raise ValueError(f"Invalid period '{period}', expected YYYY-MM-DD_YYYY-MM-DD")

    start_day = date.fromisoformat(start_str)
    end_day = date.fromisoformat(end_str)
    if start_day > end_day:
        raise ValueError(f"Invalid period '{period}': start is after end")

    return DateWindow(
        start=datetime.combine(start_day, time.min, tzinfo=timezone.utc),
        end=datetime.combine(end_day, time.max, tzinfo=timezone.utc),
    )


def validate_periods(periods: list[str]) -> bool:
    """True if every period parses and none is reversed."""
    if not periods:
        return False
    try:
        for period in periods:
            parse_period(period)
    except ValueError:
        return False
    return True


def month_to_period(report_month: str) -> str:
    """Convert "YYYY-MM" into the period string covering that month."""
    year_str, _, month_str = report_month.partition("-")
    year, month = int(year_str), int(month_str)
    first = date(year, month, 1)
    next_first = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    last = next_first - timedelta(days=1)
    return f"{first.isoformat()}_{last.isoformat()}"


def window_to_period(window: DateWindow) -> str:
    return f"{window.start.date().isoformat()}_{window.end.date().isoformat()}"


def format_period_range(window: DateWindow) -> str:
    """Human-readable range in Brazilian date format."""
    return f"{window.start:%d/%m/%Y} - {window.end:%d/%m/%Y}"


def span(windows: list[DateWindow]) -> DateWindow:
    """Smallest window covering all of `windows`."""
    return DateWindow(
        start=min(w.start for w in windows),
        end=max(w.end for w in windows),
    )
