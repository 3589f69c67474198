#!/usr/bin/env python3
"""
Weekly aggregation for Timecard.
Groups sessions into Monday-Friday work weeks and computes per-week and
per-day totals for the dashboard and archive views.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .session import NormalizedSession, session_minutes
from .time_utils import (
    WEEKDAY_NAMES,
    day_of_week,
    end_of_week_friday,
    format_date,
    format_hours,
    minutes_to_hours,
    start_of_week_monday,
    week_key,
)

WORKING_DAYS_PER_WEEK = 5
SORT_OPTIONS = ("date", "date-asc", "hours-asc", "hours-desc", "sessions")


@dataclass
class WeekBucket:
    """Sessions whose time-in falls in one Monday-start week."""

    key: str
    start: datetime
    end: datetime
    sessions: List[NormalizedSession] = field(default_factory=list)


@dataclass
class WeekSummary:
    """A week bucket plus its aggregated totals."""

    key: str
    start: datetime
    end: datetime
    sessions: List[NormalizedSession]
    completed_sessions: List[NormalizedSession]
    total_minutes: float
    total_hours: float
    average_hours: float
    day_totals: Dict[int, float]
    busiest_day: Optional[int]

    @property
    def busiest_day_name(self) -> str:
        if self.busiest_day is None:
            return "N/A"
        return WEEKDAY_NAMES[self.busiest_day]


def day_totals(sessions: Iterable[NormalizedSession]) -> Dict[int, float]:
    """Minutes per day-of-week (0=Sunday) for every session with a time-in.

    Incomplete sessions still register their day with zero minutes.
    """
    totals: Dict[int, float] = {}
    for session in sessions:
        if session.time_in_date is None:
            continue
        day = day_of_week(session.time_in_date)
        totals[day] = totals.get(day, 0.0) + session_minutes(session)
    return totals


def weekly_day_minutes(sessions: Iterable[NormalizedSession]) -> List[float]:
    """Seven-slot list (0=Sunday) of completed minutes per day."""
    minutes = [0.0] * 7
    for session in sessions:
        if session.time_in_date is None or not session.has_rounded_range:
            continue
        minutes[day_of_week(session.time_in_date)] += session_minutes(session)
    return minutes


def busiest_day(totals: Dict[int, float]) -> Optional[int]:
    """Day with the most minutes; ties go to the lowest day index."""
    if not totals:
        return None
    return max(sorted(totals), key=lambda day: totals[day])


def _hours_text(hours: float) -> str:
    if float(hours).is_integer():
        return str(int(hours))
    return repr(hours)


class WeeklyBucketer:
    """Builds week buckets and their summaries from normalized sessions."""

    def bucket_by_week(
        self,
        sessions: Iterable[NormalizedSession],
        archived_only: bool = False,
        current: Optional[datetime] = None,
    ) -> List[WeekBucket]:
        """Group sessions by week, newest week first.

        ``archived_only`` keeps only archived sessions (archive view).
        ``current`` guarantees a bucket for the week containing that instant
        even when it has no sessions (dashboard view).
        """
        buckets: Dict[str, WeekBucket] = {}

        for session in sessions:
            if session.time_in_date is None:
                continue
            if archived_only and not session.is_archived:
                continue
            key = week_key(session.time_in_date)
            if key not in buckets:
                buckets[key] = self._new_bucket(session.time_in_date)
            buckets[key].sessions.append(session)

        if current is not None:
            current_key = week_key(current)
            if current_key not in buckets:
                buckets[current_key] = self._new_bucket(current)

        return sorted(buckets.values(), key=lambda b: b.start, reverse=True)

    @staticmethod
    def _new_bucket(moment: datetime) -> WeekBucket:
        start = start_of_week_monday(moment)
        return WeekBucket(
            key=start.date().isoformat(), start=start, end=end_of_week_friday(start)
        )

    def summarize(self, bucket: WeekBucket) -> WeekSummary:
        """Aggregate one bucket."""
        completed = [s for s in bucket.sessions if s.has_rounded_range]
        total_minutes = sum(session_minutes(s) for s in completed)
        totals = day_totals(bucket.sessions)

        return WeekSummary(
            key=bucket.key,
            start=bucket.start,
            end=bucket.end,
            sessions=list(bucket.sessions),
            completed_sessions=completed,
            total_minutes=total_minutes,
            total_hours=minutes_to_hours(total_minutes),
            average_hours=total_minutes / (WORKING_DAYS_PER_WEEK * 60),
            day_totals=totals,
            busiest_day=busiest_day(totals),
        )

    def summarize_all(self, buckets: Iterable[WeekBucket]) -> List[WeekSummary]:
        return [self.summarize(bucket) for bucket in buckets]

    def archived_weeks(
        self, sessions: Iterable[NormalizedSession]
    ) -> List[WeekSummary]:
        """Summaries of archived sessions by week, newest first."""
        return self.summarize_all(self.bucket_by_week(sessions, archived_only=True))

    @staticmethod
    def find_week(buckets: Iterable[WeekBucket], key: str) -> Optional[WeekBucket]:
        for bucket in buckets:
            if bucket.key == key:
                return bucket
        return None


def sort_weeks(
    weeks: Iterable[WeekSummary], sort_by: str = "date"
) -> List[WeekSummary]:
    """Return a new, re-ordered list; the summaries themselves are untouched."""
    weeks = list(weeks)
    if sort_by == "date":
        return sorted(weeks, key=lambda w: w.start, reverse=True)
    if sort_by == "date-asc":
        return sorted(weeks, key=lambda w: w.start)
    if sort_by == "hours-asc":
        return sorted(weeks, key=lambda w: w.total_minutes)
    if sort_by == "hours-desc":
        return sorted(weeks, key=lambda w: w.total_minutes, reverse=True)
    if sort_by == "sessions":
        return sorted(weeks, key=lambda w: len(w.sessions), reverse=True)
    raise ValueError(
        f"Unknown sort option: {sort_by} (expected one of {', '.join(SORT_OPTIONS)})"
    )


def search_weeks(weeks: Iterable[WeekSummary], term: str) -> List[WeekSummary]:
    """Case-insensitive match on the formatted week dates and hour total."""
    weeks = list(weeks)
    if not term:
        return weeks
    needle = term.lower()
    matches = []
    for week in weeks:
        haystacks = (
            format_date(week.start).lower(),
            format_date(week.end).lower(),
            _hours_text(week.total_hours),
            format_hours(week.total_hours),
        )
        if any(needle in text for text in haystacks):
            matches.append(week)
    return matches
