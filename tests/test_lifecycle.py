"""Tests for lifecycle module functionality."""

import unittest
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from factories import make_record
from timecard.errors import StoreError
from timecard.lifecycle import ActionResult, SessionLifecycleManager
from timecard.session import normalize_sessions
from timecard.storage import InMemorySessionStore
from timecard.time_utils import to_millis

USER = "user-1"


class FlakyStore(InMemorySessionStore):
    """In-memory store whose updates fail for selected ids."""

    def __init__(self, failing_ids=()):
        super().__init__()
        self.failing_ids = set(failing_ids)

    def update(self, user_id, session_id, fields):
        if session_id in self.failing_ids:
            raise StoreError("permission denied", status_code=403)
        super().update(user_id, session_id, fields)


class LifecycleTestCase(unittest.TestCase):
    """Shared setup: a store, a fixed clock and a manager reading the store."""

    store_class = InMemorySessionStore

    def setUp(self):
        """Set up test fixtures."""
        self.store = self.store_class()
        self.now = datetime(2026, 2, 2, 9, 15)
        self.manager = SessionLifecycleManager(
            self.store,
            USER,
            lambda: normalize_sessions(self.store.list_sessions(USER)),
            clock=lambda: self.now,
        )

    def add(self, record):
        """Insert a prepared record and return its generated id."""
        return self.store.create(USER, record.to_fields())

    def add_completed(self, day, archived=False):
        """Insert an 08:00 to 12:00 session on February ``day``."""
        return self.add(
            make_record(
                "s",
                datetime(2026, 2, day, 8),
                datetime(2026, 2, day, 12),
                archived=archived,
            )
        )

    def get(self, session_id):
        for record in self.store.list_sessions(USER):
            if record.id == session_id:
                return record
        return None


class TestTimeInOut(LifecycleTestCase):
    """Test cases for time_in and time_out."""

    def test_time_in_rounds_up(self):
        """Test time-in at 09:15 counts from 10:00."""
        result = self.manager.time_in()
        self.assertTrue(result.success)
        self.assertEqual(result.message, "Time in recorded at 10:00 AM")
        record = self.get(result.session_id)
        self.assertEqual(record.time_in, to_millis(self.now))
        self.assertEqual(record.time_in_rounded, to_millis(datetime(2026, 2, 2, 10)))
        self.assertIsNone(record.time_out)
        self.assertIsNone(record.archived_at)
        self.assertFalse(record.is_completed)

    def test_second_time_in_refused(self):
        """Test that at most one session can be open."""
        self.manager.time_in()
        result = self.manager.time_in()
        self.assertFalse(result.success)
        self.assertEqual(result.variant, "warning")
        self.assertEqual(result.message, "You already have an active time-in.")
        self.assertEqual(len(self.store.list_sessions(USER)), 1)

    def test_time_out_completes_session(self):
        """Test a 09:15 to 16:45 session is worth 360 minutes."""
        session_id = self.manager.time_in().session_id
        self.now = datetime(2026, 2, 2, 16, 45)

        result = self.manager.time_out()

        self.assertTrue(result.success)
        self.assertEqual(result.message, "Time out recorded at 4:00 PM")
        record = self.get(session_id)
        self.assertTrue(record.is_completed)
        self.assertEqual(record.time_out_rounded, to_millis(datetime(2026, 2, 2, 16)))
        self.assertEqual(
            record.time_out_rounded - record.time_in_rounded, 360 * 60 * 1000
        )
        self.assertIsNone(self.manager.active_session())

    def test_time_out_without_open_session(self):
        """Test time-out is refused when nothing is open."""
        result = self.manager.time_out()
        self.assertFalse(result.success)
        self.assertEqual(result.message, "No active time-in found.")

    def test_archived_open_session_does_not_block_time_in(self):
        """Test archived sessions are ignored by the open-session guard."""
        self.add(make_record("x", datetime(2026, 2, 1, 9), archived=True))
        self.assertTrue(self.manager.time_in().success)

    def test_time_in_store_failure(self):
        """Test a failed write is reported and nothing else happens."""
        self.store.create = MagicMock(side_effect=StoreError("offline"))
        result = self.manager.time_in()
        self.assertFalse(result.success)
        self.assertEqual(result.variant, "error")
        self.assertEqual(result.message, "Error recording time in. Please try again.")


class TestArchive(LifecycleTestCase):
    """Test cases for archive, unarchive and restore."""

    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        self.session_id = self.add_completed(2)

    def test_archive_then_unarchive_round_trip(self):
        """Test archiving and unarchiving restores the original record."""
        before = self.get(self.session_id)

        result = self.manager.archive(self.session_id)
        self.assertEqual(result.message, "Session archived.")
        self.assertIsNotNone(self.get(self.session_id).archived_at)

        result = self.manager.unarchive(self.session_id)
        self.assertEqual(result.message, "Session unarchived successfully!")
        self.assertEqual(self.get(self.session_id), before)

    def test_archive_is_idempotent(self):
        """Test archiving twice keeps the session archived without error."""
        self.manager.archive(self.session_id)
        self.now = datetime(2026, 2, 3, 9)
        result = self.manager.archive(self.session_id)
        self.assertTrue(result.success)
        self.assertIsNotNone(self.get(self.session_id).archived_at)

    def test_unarchive_is_idempotent(self):
        """Test unarchiving an active session leaves it unarchived."""
        self.assertTrue(self.manager.unarchive(self.session_id).success)
        self.assertIsNone(self.get(self.session_id).archived_at)

    def test_archive_in_flight_is_skipped(self):
        """Test a repeat archive request during a write is refused."""
        repeats = []
        original_update = self.store.update

        def update(user_id, session_id, fields):
            repeats.append(self.manager.archive(session_id))
            original_update(user_id, session_id, fields)

        self.store.update = update
        result = self.manager.archive(self.session_id)

        self.assertTrue(result.success)
        self.assertEqual(repeats[0].message, "Session is already being archived.")
        self.assertEqual(self.manager.archiving_ids, set())

    def test_archive_missing_session(self):
        """Test archiving an unknown id reports failure."""
        result = self.manager.archive("missing")
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Failed to archive session. Please try again.")
        self.assertEqual(self.manager.archiving_ids, set())

    def test_unarchive_many(self):
        """Test bulk unarchive reports the count."""
        other = self.add_completed(3, archived=True)
        self.manager.archive(self.session_id)
        result = self.manager.unarchive_many([self.session_id, other])
        self.assertEqual(result.message, "2 sessions unarchived!")
        self.assertIsNone(self.get(other).archived_at)

    def test_restore_keeps_existing_archive_stamp(self):
        """Test restore keeps old stamps and stamps the rest with now."""
        archived = self.add_completed(3, archived=True)
        original_stamp = self.get(archived).archived_at

        result = self.manager.restore_many([self.session_id, archived])

        self.assertEqual(result.message, "Selected sessions restored to archive.")
        self.assertEqual(self.get(archived).archived_at, original_stamp)
        self.assertEqual(self.get(self.session_id).archived_at, to_millis(self.now))

    def test_bulk_requires_selection(self):
        """Test bulk actions with no ids are refused."""
        result = self.manager.archive_many([])
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Select at least one session.")


class TestBulkPartialFailure(LifecycleTestCase):
    """Test cases for bulk writes where one write fails."""

    store_class = FlakyStore

    def test_partial_failure_reports_failure_without_rollback(self):
        """Test the 2nd of 3 writes failing leaves the others archived."""
        ids = [self.add_completed(2 + i) for i in range(3)]
        self.store.failing_ids = {ids[1]}

        result = self.manager.archive_many(ids)

        self.assertFalse(result.success)
        self.assertEqual(
            result.message, "Failed to archive selected sessions. Please try again."
        )
        self.assertIsNotNone(self.get(ids[0]).archived_at)
        self.assertIsNone(self.get(ids[1]).archived_at)
        self.assertIsNotNone(self.get(ids[2]).archived_at)
        self.assertFalse(self.manager.bulk_in_progress)

    def test_unexpected_errors_propagate(self):
        """Test that non-store errors are not swallowed."""
        session_id = self.add_completed(2)
        self.store.update = MagicMock(side_effect=RuntimeError("bug"))
        with pytest.raises(RuntimeError):
            self.manager.archive_many([session_id])
        self.assertFalse(self.manager.bulk_in_progress)


class TestDelete(LifecycleTestCase):
    """Test cases for delete."""

    def test_delete_removes_session(self):
        """Test permanent deletion."""
        session_id = self.add_completed(2)
        result = self.manager.delete(session_id)
        self.assertEqual(result.message, "Session deleted.")
        self.assertIsNone(self.get(session_id))
        self.assertIsNone(self.manager.deleting_id)

    def test_delete_missing_session(self):
        """Test deleting an unknown id reports failure."""
        result = self.manager.delete("missing")
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Failed to delete session. Please try again.")
        self.assertIsNone(self.manager.deleting_id)


class TestActionResult(unittest.TestCase):
    """Test cases for ActionResult constructors."""

    def test_variants(self):
        """Test each constructor sets its variant."""
        self.assertEqual(ActionResult.ok("a").variant, "success")
        self.assertEqual(ActionResult.failed("a").variant, "error")
        self.assertEqual(ActionResult.refused("a").variant, "warning")


if __name__ == "__main__":
    unittest.main()
