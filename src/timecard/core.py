#!/usr/bin/env python3
"""
Timecard - personal time tracking against a fixed hour target.
Keeps the view state for one signed-in user: the latest session snapshot,
the live clock, and every aggregate derived from them.
"""

import os
import sys
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional

from .auth import AuthClient, AuthUser
from .clock import LiveClock
from .config import Config, get_config
from .data_aggregator import (
    SORT_OPTIONS,
    WeekBucket,
    WeeklyBucketer,
    WeekSummary,
    search_weeks,
    sort_weeks,
    weekly_day_minutes,
)
from .errors import (
    NOT_CONFIGURED_MESSAGE,
    AuthError,
    ConfigurationError,
    TimecardError,
)
from .http_sync import FirestoreSessionStore
from .lifecycle import ActionResult, SessionLifecycleManager
from .logger import TrackerLogger
from .progress import ProgressCalculator, ProgressSnapshot, goal_status_message
from .report import SAMPLE_REFLECTION, WeeklyReportData, WeeklyReportExporter
from .seed import seed_initial_sessions
from .session import (
    NormalizedSession,
    SessionRecord,
    find_active_session,
    normalize_sessions,
    recent_sessions,
    session_minutes,
)
from .storage import InMemorySessionStore, Subscription
from .time_utils import (
    WEEKDAY_NAMES,
    format_date,
    format_hours,
    format_time,
    minutes_to_hours,
    week_key,
)

MAX_NOTICES = 5


@dataclass(frozen=True)
class Notice:
    """Transient message shown after an action."""

    message: str
    variant: str
    created_at: datetime


class TimeTracker:
    """
    Timecard view state - orchestrates store, lifecycle and aggregation.

    Every snapshot replaces the session list and re-runs the whole pipeline
    (normalize, bucket, progress); every clock tick re-runs it with the new
    "now".
    """

    def __init__(
        self,
        store: Any,
        config: Optional[Config] = None,
        auth: Optional[AuthClient] = None,
        clock: Callable[[], datetime] = datetime.now,
        logger: Optional[TrackerLogger] = None,
    ):
        config = config or get_config()
        self.store = store
        self.auth = auth
        self.clock = clock
        self.seed_on_first_use = config.get("seed_on_first_use", True)
        self.logger = logger or TrackerLogger(verbose=config.verbose_logging)

        # Use composition - inject specialized components
        self.calculator = ProgressCalculator(
            target_hours=config.target_hours,
            baseline_minutes=config.baseline_minutes,
        )
        self.bucketer = WeeklyBucketer()
        self.live_clock = LiveClock(
            self.tick, interval=config.tick_interval, clock=clock
        )
        self.exporter = WeeklyReportExporter(config.report_dir, logger=self.logger)

        self._lock = threading.RLock()
        self._listeners: List[Callable[["TimeTracker"], None]] = []
        self._subscription: Optional[Subscription] = None
        self._remove_auth_listener: Optional[Callable[[], None]] = None

        self.user: Optional[AuthUser] = None
        self.lifecycle: Optional[SessionLifecycleManager] = None
        self.records: List[SessionRecord] = []
        self.loading = True
        self.error = ""
        self.status = ""
        self.notices: List[Notice] = []
        self.now = clock()
        self._rederive()

    # Derivation

    def _rederive(self) -> None:
        with self._lock:
            self.normalized: List[NormalizedSession] = normalize_sessions(self.records)
            self.active_session = find_active_session(self.normalized)
            self.progress: ProgressSnapshot = self.calculator.calculate(
                self.normalized, self.now
            )
            self.weekly_buckets: List[WeekBucket] = self.bucketer.bucket_by_week(
                self.normalized, current=self.now
            )
            self.current_week: WeekBucket = self.bucketer.find_week(
                self.weekly_buckets, week_key(self.now)
            )
        for listener in list(self._listeners):
            listener(self)

    def add_listener(self, listener: Callable[["TimeTracker"], None]) -> None:
        """Call ``listener`` after every re-derivation."""
        self._listeners.append(listener)

    def handle_snapshot(self, records: List[SessionRecord]) -> None:
        with self._lock:
            self.records = list(records)
            self.loading = False
            self.error = ""
        self.logger.log_snapshot(len(records))
        self._rederive()

    def handle_error(self, message: str) -> None:
        with self._lock:
            self.error = message or "Failed to load sessions."
            self.loading = False
        self.logger.error(f"Session subscription failed: {self.error}")

    def tick(self, now: datetime) -> None:
        with self._lock:
            self.now = now
        self._rederive()

    @property
    def current_week_summary(self) -> WeekSummary:
        return self.bucketer.summarize(self.current_week)

    @property
    def current_week_day_totals(self) -> List[float]:
        """Completed minutes per day (0=Sunday) for Monday to Friday of this week."""
        week = self.current_week
        in_range = [
            s
            for s in week.sessions
            if s.time_in_date and week.start <= s.time_in_date <= week.end
        ]
        return weekly_day_minutes(in_range)

    @property
    def recent_sessions(self) -> List[NormalizedSession]:
        return recent_sessions(self.normalized)

    @property
    def archived_weeks(self) -> List[WeekSummary]:
        return self.bucketer.archived_weeks(self.normalized)

    @property
    def earliest_time_in(self) -> Optional[datetime]:
        """Earliest time-in across all sessions, archived ones included."""
        starts = [s.time_in_date for s in self.normalized if s.time_in_date]
        return min(starts) if starts else None

    @property
    def status_message(self) -> str:
        return goal_status_message(self.progress, self.status)

    def find_week(self, key: str) -> Optional[WeekBucket]:
        return self.bucketer.find_week(self.weekly_buckets, key)

    # Session wiring

    def attach_auth(self, auth: AuthClient) -> None:
        """Follow the signed-in user of ``auth``."""
        self.auth = auth
        self._remove_auth_listener = auth.on_auth_state_changed(self._on_auth_changed)

    def _on_auth_changed(self, user: Optional[AuthUser]) -> None:
        if user is None:
            self.stop()
        else:
            self.start(user)

    def open(self, user: AuthUser) -> None:
        """Bind to ``user`` without live updates (one-shot use)."""
        self.user = user
        if hasattr(self.store, "auth_token"):
            self.store.auth_token = user.id_token
        self.lifecycle = SessionLifecycleManager(
            self.store,
            user.uid,
            lambda: self.normalized,
            clock=self.clock,
            logger=self.logger,
        )
        if self.seed_on_first_use:
            try:
                created = seed_initial_sessions(self.store, user.uid)
            except TimecardError as e:
                self.logger.error(f"Seeding failed: {e}")
            else:
                if created:
                    self.logger.info(f"Seeded {created} sessions for a new account")

    def start(self, user: AuthUser) -> None:
        """Bind to ``user``, subscribe to its sessions and start the clock."""
        self.stop()
        self.open(user)
        self._subscription = self.store.subscribe(
            user.uid, self.handle_snapshot, self.handle_error
        )
        self.live_clock.start()

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self.live_clock.stop()

    def close(self) -> None:
        self.stop()
        if self._remove_auth_listener:
            self._remove_auth_listener()
            self._remove_auth_listener = None

    def refresh(self) -> None:
        """Read the collection once and treat it as a snapshot."""
        if self.user is None:
            return
        try:
            records = self.store.list_sessions(self.user.uid)
        except TimecardError as e:
            self.handle_error(str(e))
            return
        self.handle_snapshot(records)

    # Actions

    def _notify(self, result: ActionResult) -> ActionResult:
        with self._lock:
            self.status = result.message
            self.notices.append(Notice(result.message, result.variant, self.clock()))
            del self.notices[:-MAX_NOTICES]
        if self._subscription is None or not self._subscription.active:
            self.refresh()
        return result

    def _run(
        self, action: Callable[[SessionLifecycleManager], ActionResult]
    ) -> ActionResult:
        if self.lifecycle is None:
            return self._notify(ActionResult.refused("Sign in to track time."))
        return self._notify(action(self.lifecycle))

    def time_in(self) -> ActionResult:
        return self._run(lambda lc: lc.time_in())

    def time_out(self) -> ActionResult:
        return self._run(lambda lc: lc.time_out())

    def archive(self, session_ids: Iterable[str]) -> ActionResult:
        session_ids = list(session_ids)
        if len(session_ids) == 1:
            return self._run(lambda lc: lc.archive(session_ids[0]))
        return self._run(lambda lc: lc.archive_many(session_ids))

    def unarchive(self, session_ids: Iterable[str]) -> ActionResult:
        session_ids = list(session_ids)
        if len(session_ids) == 1:
            return self._run(lambda lc: lc.unarchive(session_ids[0]))
        return self._run(lambda lc: lc.unarchive_many(session_ids))

    def restore(self, session_ids: Iterable[str]) -> ActionResult:
        return self._run(lambda lc: lc.restore_many(session_ids))

    def delete(self, session_id: str) -> ActionResult:
        return self._run(lambda lc: lc.delete(session_id))

    def build_report(
        self, key: Optional[str] = None, reflection: str = ""
    ) -> WeeklyReportData:
        """Report data for the week starting ``key`` (all sessions without one)."""
        week_start = week_end = None
        if key:
            week = self.find_week(key)
            if week is None:
                raise ValueError(f"No sessions in the week starting {key}")
            week_start, week_end = week.start, week.end
        return WeeklyReportData.build(
            self.normalized,
            now=self.now,
            reflection=reflection,
            week_start=week_start,
            week_end=week_end,
            user_email=self.user.email if self.user else "",
            calculator=self.calculator,
        )

    def export_report(
        self,
        key: Optional[str] = None,
        reflection: str = "",
        output_dir: Optional[Path] = None,
    ) -> ActionResult:
        try:
            data = self.build_report(key, reflection)
        except ValueError as e:
            return self._notify(ActionResult.refused(str(e)))
        if output_dir is not None:
            self.exporter.output_dir = Path(output_dir)
        return self._notify(self.exporter.export(data))


# Console output


def describe_session(session: NormalizedSession) -> str:
    date = format_date(session.time_in_date) if session.time_in_date else "-"
    start = (
        format_time(session.time_in_rounded_date)
        if session.time_in_rounded_date
        else "-"
    )
    if session.has_rounded_range:
        end = format_time(session.time_out_rounded_date)
        length = format_hours(minutes_to_hours(session_minutes(session)))
    else:
        end, length = "-", "Active"
    flag = " [archived]" if session.is_archived else ""
    return f"{session.id}  {date}  {start} -> {end}  {length}{flag}"


def print_status(tracker: TimeTracker) -> None:
    progress = tracker.progress
    print(f"Status: {tracker.status_message}")
    if tracker.error:
        print(f"Error: {tracker.error}")
    print(
        f"Total: {format_hours(progress.total_hours)} of {progress.target_hours:g} hrs "
        f"({progress.progress_percentage:.2f}%), "
        f"remaining {format_hours(progress.remaining_hours)}"
    )
    earliest = tracker.earliest_time_in
    if earliest is not None:
        print(f"Tracking since {format_date(earliest)}")
    active = tracker.active_session
    if active is not None:
        print(
            f"Active since {format_time(active.time_in_rounded_date)} "
            f"- {format_hours(minutes_to_hours(progress.active_minutes))} so far"
        )
    week = tracker.current_week_summary
    print(
        f"This week ({format_date(week.start)} - {format_date(week.end)}): "
        f"{format_hours(week.total_hours)}"
    )
    totals = tracker.current_week_day_totals
    for day in range(1, 6):
        hours = format_hours(minutes_to_hours(totals[day]))
        print(f"  {WEEKDAY_NAMES[day]:<10} {hours}")
    if tracker.recent_sessions:
        print("Recent sessions:")
        for session in tracker.recent_sessions:
            print(f"  {describe_session(session)}")


def print_weeks(weeks: List[WeekSummary]) -> None:
    if not weeks:
        print("No weeks to show")
        return
    for week in weeks:
        print(
            f"{week.key}  {format_date(week.start)} - {format_date(week.end)}  "
            f"{format_hours(week.total_hours)}  avg {week.average_hours:.1f} h/day  "
            f"{len(week.sessions)} sessions  busiest: {week.busiest_day_name}"
        )
        for session in week.sessions:
            print(f"    {describe_session(session)}")


def print_usage() -> None:
    print("Timecard")
    print("Usage: python -m timecard <command> [options]")
    print("Commands:")
    print("  status                 Show progress, this week and recent sessions")
    print("  in                     Record a time in")
    print("  out                    Record a time out")
    print("  weeks                  Show weekly totals")
    print("  archived               Show archived weeks (--search TEXT, --sort KEY)")
    print("  archive ID [ID ...]    Archive sessions")
    print("  unarchive ID [ID ...]  Unarchive sessions")
    print("  restore ID [ID ...]    Send report sessions back to the archive")
    print("  delete ID              Permanently delete a session")
    print("  report                 Export a PDF report")
    print("                         (--week YYYY-MM-DD, --reflection TEXT,")
    print("                          --output DIR)")
    print("  watch                  Show live progress until interrupted")
    print("Options:")
    print("  --email EMAIL          Account email (or TIMECARD_EMAIL)")
    print("  --password PASSWORD    Account password (or TIMECARD_PASSWORD)")
    print("  --signup               Create the account before signing in")
    print("  --demo                 Use an in-memory store with sample sessions")
    print("  --quiet, -q            Only print errors and results")
    print("  --help, -h             Show this help message")
    print(f"Sort keys: {', '.join(SORT_OPTIONS)}")


VALUE_OPTIONS = [
    "--email",
    "--password",
    "--search",
    "--sort",
    "--week",
    "--reflection",
    "--output",
]


def parse_args(argv: List[str]):
    """Split argv into positional arguments, value options and flags."""
    positional: List[str] = []
    options = {}
    flags = set()
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg in VALUE_OPTIONS and i + 1 < len(argv):
            options[arg[2:]] = argv[i + 1]
            i += 2
            continue
        if arg.startswith("-"):
            flags.add(arg)
        else:
            positional.append(arg)
        i += 1
    return positional, options, flags


def sign_in(config: Config, options, signup: bool) -> Optional[AuthUser]:
    email = options.get("email") or config.get("email")
    password = options.get("password") or os.getenv("TIMECARD_PASSWORD", "")
    if not email or not password:
        print("Error: email and password are required (--email/--password).")
        return None

    auth = AuthClient(config.api_key, timeout=config.request_timeout)
    try:
        if signup:
            return auth.sign_up(email, password)
        return auth.sign_in(email, password)
    except ConfigurationError as e:
        print(f"Error: {e}")
    except AuthError as e:
        print(f"Sign-in failed: {e.provider_message}")
    return None


def run_command(tracker: TimeTracker, command: str, args: List[str], options) -> None:
    if command == "status":
        print_status(tracker)
    elif command == "in":
        print(tracker.time_in().message)
    elif command == "out":
        print(tracker.time_out().message)
    elif command == "weeks":
        print_weeks(tracker.bucketer.summarize_all(tracker.weekly_buckets))
    elif command == "archived":
        weeks = search_weeks(tracker.archived_weeks, options.get("search", ""))
        try:
            weeks = sort_weeks(weeks, options.get("sort", "date"))
        except ValueError as e:
            print(f"Error: {e}")
            return
        print_weeks(weeks)
    elif command in ("archive", "unarchive", "restore", "delete"):
        if not args:
            print(f"Error: {command} needs at least one session id")
            return
        if command == "archive":
            print(tracker.archive(args).message)
        elif command == "unarchive":
            print(tracker.unarchive(args).message)
        elif command == "restore":
            print(tracker.restore(args).message)
        else:
            print(tracker.delete(args[0]).message)
    elif command == "report":
        output = options.get("output")
        result = tracker.export_report(
            options.get("week"),
            options.get("reflection", SAMPLE_REFLECTION),
            Path(output) if output else None,
        )
        print(result.message)
    elif command == "watch":
        watch(tracker)
    else:
        print(f"Unknown command: {command}")
        print("Use --help for usage information")


def watch(tracker: TimeTracker) -> None:
    """Print live progress on every tick until interrupted."""

    def show(t: TimeTracker) -> None:
        progress = t.progress
        print(
            f"[{t.now.strftime('%H:%M:%S')}] {format_hours(progress.total_hours)} "
            f"({progress.progress_percentage:.2f}%) - {t.status_message}"
        )

    tracker.add_listener(show)
    tracker.start(tracker.user)
    try:
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        print("\nStopped watching")
    finally:
        tracker.stop()


def main():
    """Main entry point."""
    positional, options, flags = parse_args(sys.argv[1:])

    if not positional or "--help" in flags or "-h" in flags:
        print_usage()
        return

    config = get_config()
    if "--quiet" in flags or "-q" in flags:
        config.verbose_logging = False

    if "--demo" in flags:
        store: Any = InMemorySessionStore()
        user: Optional[AuthUser] = AuthUser(uid="demo", email="demo@localhost")
    else:
        if not config.is_configured:
            print(f"Error: {NOT_CONFIGURED_MESSAGE}")
            print("Use --demo to try Timecard without a backend.")
            return
        user = sign_in(config, options, "--signup" in flags)
        if user is None:
            return
        store = FirestoreSessionStore(
            config.project_id,
            api_key=config.api_key,
            auth_token=user.id_token,
            timeout=config.request_timeout,
            poll_interval=config.poll_interval,
        )

    tracker = TimeTracker(store, config=config)
    tracker.open(user)
    tracker.refresh()

    try:
        run_command(tracker, positional[0], positional[1:], options)
    except KeyboardInterrupt:
        print("\nInterrupted")
    finally:
        tracker.close()


if __name__ == "__main__":
    main()
