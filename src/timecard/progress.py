#!/usr/bin/env python3
"""
Goal progress for Timecard.
Combines the baseline carry-over, completed sessions and the running
session into live progress against the target.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from .session import NormalizedSession, open_sessions, session_minutes
from .time_utils import (
    BASELINE_COMPLETED_MINUTES,
    TARGET_HOURS,
    diff_minutes,
    minutes_to_hours,
    round_down_to_hour,
)


@dataclass(frozen=True)
class ProgressSnapshot:
    """Progress figures for one evaluation."""

    completed_minutes: float
    active_minutes: float
    baseline_minutes: float
    total_minutes: float
    total_hours: float
    remaining_hours: float
    progress_percentage: float
    goal_completed: bool
    target_hours: float


class ProgressCalculator:
    """Stateless progress math; "now" is always passed in."""

    def __init__(
        self,
        target_hours: float = TARGET_HOURS,
        baseline_minutes: float = BASELINE_COMPLETED_MINUTES,
    ):
        if target_hours <= 0:
            raise ValueError("target_hours must be positive")
        self.target_hours = target_hours
        self.baseline_minutes = baseline_minutes

    def completed_minutes(self, sessions: Iterable[NormalizedSession]) -> float:
        """Rounded minutes of every timed-out session, archived ones included."""
        return sum(session_minutes(s) for s in sessions if s.time_out)

    def active_minutes(
        self, sessions: Iterable[NormalizedSession], now: Optional[datetime]
    ) -> float:
        """Minutes of the running session up to the last whole hour.

        Zero without ``now``, without an open session, or when more than one
        session is open.
        """
        if now is None:
            return 0.0
        running = open_sessions(sessions)
        if len(running) != 1 or running[0].time_in_rounded_date is None:
            return 0.0
        return diff_minutes(running[0].time_in_rounded_date, round_down_to_hour(now))

    def calculate(
        self, sessions: Iterable[NormalizedSession], now: Optional[datetime] = None
    ) -> ProgressSnapshot:
        sessions = list(sessions)
        completed = self.completed_minutes(sessions)
        active = self.active_minutes(sessions, now)
        total_minutes = completed + active + self.baseline_minutes
        total_hours = minutes_to_hours(total_minutes)

        return ProgressSnapshot(
            completed_minutes=completed,
            active_minutes=active,
            baseline_minutes=self.baseline_minutes,
            total_minutes=total_minutes,
            total_hours=total_hours,
            remaining_hours=max(self.target_hours - total_hours, 0),
            progress_percentage=max(
                0.0, min(total_hours / self.target_hours * 100, 100.0)
            ),
            goal_completed=total_hours >= self.target_hours,
            target_hours=self.target_hours,
        )


def goal_status_message(progress: ProgressSnapshot, status: str = "") -> str:
    """Status line, with the goal notice appended once the target is reached."""
    if progress.goal_completed:
        notice = f"Goal completed! Target of {progress.target_hours:g} hrs reached."
        return f"{status} {notice}" if status else notice
    return status or "Ready to track your time in real time."
