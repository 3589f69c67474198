#!/usr/bin/env python3
"""
Session lifecycle for Timecard.
Time-in, time-out, archive, unarchive, restore and delete, with the guards
that keep at most one session open per user. Guards read the last known
snapshot, so the single-open-session rule is best effort across devices.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from .errors import TimecardError
from .logger import TrackerLogger
from .session import NormalizedSession, find_active_session
from .time_utils import format_time, round_down_to_hour, round_up_to_hour, to_millis


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a user action, ready to show as a transient notice."""

    success: bool
    message: str
    variant: str = "success"
    session_id: Optional[str] = None

    @classmethod
    def ok(cls, message: str, session_id: Optional[str] = None) -> "ActionResult":
        return cls(True, message, "success", session_id)

    @classmethod
    def failed(cls, message: str, session_id: Optional[str] = None) -> "ActionResult":
        return cls(False, message, "error", session_id)

    @classmethod
    def refused(cls, message: str, session_id: Optional[str] = None) -> "ActionResult":
        return cls(False, message, "warning", session_id)


class SessionLifecycleManager:
    """Issues session writes for one user after checking lifecycle guards."""

    def __init__(
        self,
        store: Any,
        user_id: str,
        sessions_provider: Callable[[], List[NormalizedSession]],
        clock: Callable[[], datetime] = datetime.now,
        logger: Optional[TrackerLogger] = None,
        max_workers: int = 8,
    ):
        self.store = store
        self.user_id = user_id
        self.sessions_provider = sessions_provider
        self.clock = clock
        self.logger = logger or TrackerLogger(verbose=False)
        self.max_workers = max_workers

        # In-flight state, reset in ``finally`` blocks
        self._lock = threading.Lock()
        self._archiving: Set[str] = set()
        self.deleting_id: Optional[str] = None
        self.bulk_in_progress = False

    @property
    def archiving_ids(self) -> Set[str]:
        with self._lock:
            return set(self._archiving)

    def active_session(self) -> Optional[NormalizedSession]:
        return find_active_session(self.sessions_provider())

    def time_in(self) -> ActionResult:
        """Open a new session unless one is already open."""
        if self.active_session() is not None:
            self.logger.warning("Time in refused: a session is already open")
            return ActionResult.refused("You already have an active time-in.")

        now = self.clock()
        rounded = round_up_to_hour(now)
        fields = {
            "timeIn": to_millis(now),
            "timeInRounded": to_millis(rounded),
            "timeOut": None,
            "timeOutRounded": None,
            "isCompleted": False,
            "createdAt": to_millis(now),
            "archivedAt": None,
        }
        try:
            session_id = self.store.create(self.user_id, fields)
        except TimecardError as e:
            self.logger.error(f"Time in failed: {e}")
            return ActionResult.failed("Error recording time in. Please try again.")

        self.logger.log_time_in(rounded)
        return ActionResult.ok(
            f"Time in recorded at {format_time(rounded)}", session_id
        )

    def time_out(self) -> ActionResult:
        """Close the open session."""
        active = self.active_session()
        if active is None:
            self.logger.warning("Time out refused: no open session")
            return ActionResult.refused("No active time-in found.")

        now = self.clock()
        rounded = round_down_to_hour(now)
        fields = {
            "timeOut": to_millis(now),
            "timeOutRounded": to_millis(rounded),
            "isCompleted": True,
        }
        try:
            self.store.update(self.user_id, active.id, fields)
        except TimecardError as e:
            self.logger.error(f"Time out failed for {active.id}: {e}")
            return ActionResult.failed(
                "Error recording time out. Please try again.", active.id
            )

        self.logger.log_time_out(rounded)
        return ActionResult.ok(
            f"Time out recorded at {format_time(rounded)}", active.id
        )

    def archive(self, session_id: str) -> ActionResult:
        """Archive one session. Repeat requests while one is in flight are skipped."""
        if not session_id:
            return ActionResult.refused("No session selected.")
        with self._lock:
            if session_id in self._archiving:
                return ActionResult.refused(
                    "Session is already being archived.", session_id
                )
            self._archiving.add(session_id)

        try:
            self.store.update(
                self.user_id, session_id, {"archivedAt": to_millis(self.clock())}
            )
            self.logger.info(f"Archived session {session_id}")
            return ActionResult.ok("Session archived.", session_id)
        except TimecardError as e:
            self.logger.error(f"Archive failed for {session_id}: {e}")
            return ActionResult.failed(
                "Failed to archive session. Please try again.", session_id
            )
        finally:
            with self._lock:
                self._archiving.discard(session_id)

    def archive_many(self, session_ids: Iterable[str]) -> ActionResult:
        archived_at = to_millis(self.clock())
        return self._bulk_update(
            "Archive",
            session_ids,
            lambda _session_id: {"archivedAt": archived_at},
            success="Selected sessions archived.",
            failure="Failed to archive selected sessions. Please try again.",
        )

    def unarchive(self, session_id: str) -> ActionResult:
        if not session_id:
            return ActionResult.refused("No session selected.")
        try:
            self.store.update(self.user_id, session_id, {"archivedAt": None})
        except TimecardError as e:
            self.logger.error(f"Unarchive failed for {session_id}: {e}")
            return ActionResult.failed(
                "Failed to unarchive session. Please try again.", session_id
            )
        self.logger.info(f"Unarchived session {session_id}")
        return ActionResult.ok("Session unarchived successfully!", session_id)

    def unarchive_many(self, session_ids: Iterable[str]) -> ActionResult:
        session_ids = list(session_ids)
        return self._bulk_update(
            "Unarchive",
            session_ids,
            lambda _session_id: {"archivedAt": None},
            success=f"{len(session_ids)} sessions unarchived!",
            failure="Failed to unarchive selected sessions.",
        )

    def restore_many(self, session_ids: Iterable[str]) -> ActionResult:
        """Send report sessions back to the archive.

        Sessions that were archived before keep their original archive stamp.
        """
        known: Dict[str, Optional[int]] = {
            s.id: s.archived_at for s in self.sessions_provider()
        }
        restored_at = to_millis(self.clock())
        return self._bulk_update(
            "Restore",
            session_ids,
            lambda session_id: {"archivedAt": known.get(session_id) or restored_at},
            success="Selected sessions restored to archive.",
            failure="Failed to restore selected sessions. Please try again.",
        )

    def delete(self, session_id: str) -> ActionResult:
        """Permanently remove a session."""
        if not session_id:
            return ActionResult.refused("No session selected.")
        self.deleting_id = session_id
        try:
            self.store.delete(self.user_id, session_id)
            self.logger.info(f"Deleted session {session_id}")
            return ActionResult.ok("Session deleted.", session_id)
        except TimecardError as e:
            self.logger.error(f"Delete failed for {session_id}: {e}")
            return ActionResult.failed(
                "Failed to delete session. Please try again.", session_id
            )
        finally:
            self.deleting_id = None

    def _bulk_update(
        self,
        action: str,
        session_ids: Iterable[str],
        fields_for: Callable[[str], Dict[str, Any]],
        success: str,
        failure: str,
    ) -> ActionResult:
        """Write every id concurrently and report all-or-nothing.

        Writes that succeeded before a failure are not rolled back.
        """
        session_ids = list(dict.fromkeys(session_ids))
        if not session_ids:
            return ActionResult.refused("Select at least one session.")

        self.bulk_in_progress = True
        try:
            failed = self._fan_out(session_ids, fields_for)
        finally:
            self.bulk_in_progress = False

        self.logger.log_bulk_result(action, len(session_ids), len(failed))
        if failed:
            return ActionResult.failed(failure)
        return ActionResult.ok(success)

    def _fan_out(
        self, session_ids: List[str], fields_for: Callable[[str], Dict[str, Any]]
    ) -> List[str]:
        workers = max(1, min(self.max_workers, len(session_ids)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                session_id: pool.submit(
                    self.store.update, self.user_id, session_id, fields_for(session_id)
                )
                for session_id in session_ids
            }

        failed = []
        for session_id, future in futures.items():
            error = future.exception()
            if error is None:
                continue
            if not isinstance(error, TimecardError):
                raise error
            self.logger.error(f"Write failed for {session_id}: {error}")
            failed.append(session_id)
        return failed
