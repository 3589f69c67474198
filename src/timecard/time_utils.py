#!/usr/bin/env python3
"""
Time helpers for Timecard.
Hour rounding, duration arithmetic, Monday-Friday week boundaries and the
display formats shared by every view. All values are naive local datetimes;
stored instants are epoch milliseconds.
"""

import math
from datetime import datetime, timedelta
from typing import Optional

TARGET_HOURS = 486
BASELINE_COMPLETED_MINUTES = 1200
ROUND_STEP_MINUTES = 60

WEEKDAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]
MONDAY_FIRST_DAY_NAMES = WEEKDAY_NAMES[1:] + WEEKDAY_NAMES[:1]
_MONTH_ABBR = [
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
]


def to_datetime(millis: Optional[float]) -> Optional[datetime]:
    """Convert epoch milliseconds to a local datetime (None stays None)."""
    if not millis:
        return None
    return datetime.fromtimestamp(millis / 1000)


def to_millis(dt: datetime) -> int:
    """Convert a local datetime to epoch milliseconds."""
    return int(round(dt.timestamp() * 1000))


def round_up_to_hour(dt: datetime) -> datetime:
    """Ceil to the hour. Exact hours are returned unchanged."""
    rounded = dt.replace(minute=0, second=0, microsecond=0)
    if rounded != dt:
        rounded += timedelta(hours=1)
    return rounded


def round_down_to_hour(dt: datetime) -> datetime:
    """Floor to the hour."""
    return dt.replace(minute=0, second=0, microsecond=0)


def round_up_to_step(dt: datetime, step_minutes: int = ROUND_STEP_MINUTES) -> datetime:
    """Ceil the minute field to a multiple of ``step_minutes``.

    Seconds are dropped before rounding, so 09:00:30 stays 09:00.
    """
    rounded = dt.replace(second=0, microsecond=0)
    following = math.ceil(rounded.minute / step_minutes) * step_minutes
    if following >= 60:
        return rounded.replace(minute=0) + timedelta(hours=1)
    return rounded.replace(minute=following)


def diff_minutes(start: datetime, end: datetime) -> float:
    """Elapsed minutes between two local instants, clamped at zero."""
    return max(0.0, (to_millis(end) - to_millis(start)) / 60000)


def minutes_to_hours(minutes: float) -> float:
    return minutes / 60


def start_of_week_monday(dt: datetime) -> datetime:
    """Local midnight of the Monday on or before ``dt``."""
    monday = dt - timedelta(days=dt.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_week_friday(week_start: datetime) -> datetime:
    """Last millisecond of the Friday four days after ``week_start``."""
    friday = week_start + timedelta(days=4)
    return friday.replace(hour=23, minute=59, second=59, microsecond=999000)


def is_weekday(dt: datetime) -> bool:
    return dt.weekday() < 5


def week_key(dt: datetime) -> str:
    """ISO date of the Monday that starts ``dt``'s week."""
    return start_of_week_monday(dt).date().isoformat()


def day_of_week(dt: datetime) -> int:
    """Day index with 0=Sunday .. 6=Saturday."""
    return (dt.weekday() + 1) % 7


def _hour_12(dt: datetime) -> str:
    hour = dt.hour % 12 or 12
    suffix = "AM" if dt.hour < 12 else "PM"
    return f"{hour}:{dt.minute:02d} {suffix}"


def format_time(dt: datetime) -> str:
    """e.g. ``9:00 AM``"""
    return _hour_12(dt)


def format_date(dt: datetime) -> str:
    """e.g. ``Mon, Feb 02, 2026``"""
    weekday = WEEKDAY_NAMES[day_of_week(dt)][:3]
    month = _MONTH_ABBR[dt.month - 1]
    return f"{weekday}, {month} {dt.day:02d}, {dt.year}"


def format_date_time(dt: datetime) -> str:
    """e.g. ``Mon, Feb 02, 2026, 9:00 AM``"""
    return f"{format_date(dt)}, {_hour_12(dt)}"


def format_hours(hours: float) -> str:
    """e.g. ``6.00 hrs``"""
    return f"{hours:.2f} hrs"


def format_duration(minutes: float) -> str:
    """e.g. ``6h 05m``"""
    total = int(math.floor(minutes + 0.5))
    return f"{total // 60}h {total % 60:02d}m"
