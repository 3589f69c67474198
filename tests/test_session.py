"""Tests for session module functionality."""

import os
import time
import unittest
from datetime import datetime

import pytest

from timecard.session import (
    SessionRecord,
    find_active_session,
    normalize_sessions,
    recent_sessions,
    session_minutes,
)
from factories import make_record


class TestSessionRecord(unittest.TestCase):
    """Test cases for SessionRecord."""

    def test_from_dict(self):
        """Test building a record from stored fields."""
        record = SessionRecord.from_dict(
            "s1", {"timeIn": 1000, "isCompleted": True, "unknown": "x"}
        )
        self.assertEqual(record.id, "s1")
        self.assertEqual(record.time_in, 1000)
        self.assertTrue(record.is_completed)
        self.assertIsNone(record.time_out)

    def test_to_fields_round_trip(self):
        """Test that stored fields survive a round trip."""
        record = make_record(
            "s1", datetime(2026, 2, 2, 9, 0), datetime(2026, 2, 2, 12, 0)
        )
        self.assertEqual(SessionRecord.from_dict("s1", record.to_fields()), record)

    def test_apply_partial_update(self):
        """Test that a partial update only touches named fields."""
        record = make_record("s1", datetime(2026, 2, 2, 9, 0))
        record.apply({"archivedAt": 5, "isCompleted": True})
        self.assertEqual(record.archived_at, 5)
        self.assertTrue(record.is_completed)
        self.assertIsNone(record.time_out)


class TestNormalization(unittest.TestCase):
    """Test cases for normalize_sessions and derived helpers."""

    def test_normalize_derives_dates(self):
        """Test that every instant gets a local datetime."""
        start = datetime(2026, 2, 2, 9, 15)
        end = datetime(2026, 2, 2, 16, 45)
        (session,) = normalize_sessions(
            [
                make_record(
                    "s1",
                    start,
                    end,
                    rounded=(datetime(2026, 2, 2, 10), datetime(2026, 2, 2, 16)),
                )
            ]
        )
        self.assertEqual(session.time_in_date, start)
        self.assertEqual(session.time_out_date, end)
        self.assertEqual(session.time_in_rounded_date, datetime(2026, 2, 2, 10))
        self.assertEqual(session_minutes(session), 360)

    def test_missing_instants_are_kept(self):
        """Test records with missing values are normalized, not dropped."""
        sessions = normalize_sessions([SessionRecord(id="empty")])
        self.assertEqual(len(sessions), 1)
        self.assertIsNone(sessions[0].time_in_date)
        self.assertEqual(session_minutes(sessions[0]), 0)

    def test_open_session_has_zero_minutes(self):
        """Test that open sessions contribute nothing."""
        (session,) = normalize_sessions([make_record("s1", datetime(2026, 2, 2, 9))])
        self.assertTrue(session.is_open)
        self.assertEqual(session_minutes(session), 0)

    def test_find_active_skips_archived(self):
        """Test that archived open sessions are not active."""
        sessions = normalize_sessions(
            [
                make_record("archived", datetime(2026, 2, 3, 9), archived=True),
                make_record("open", datetime(2026, 2, 2, 9)),
            ]
        )
        self.assertEqual(find_active_session(sessions).id, "open")

    def test_find_active_none(self):
        """Test that completed sessions leave nothing active."""
        sessions = normalize_sessions(
            [make_record("s1", datetime(2026, 2, 2, 9), datetime(2026, 2, 2, 12))]
        )
        self.assertIsNone(find_active_session(sessions))

    def test_recent_sessions_limit_and_archive_filter(self):
        """Test recent sessions keep six unarchived in order."""
        records = [
            make_record(
                f"s{i}", datetime(2026, 2, 10 - i, 9), datetime(2026, 2, 10 - i, 12)
            )
            for i in range(8)
        ]
        records[1].archived_at = 1
        recent = recent_sessions(normalize_sessions(records))
        self.assertEqual([s.id for s in recent], ["s0", "s2", "s3", "s4", "s5", "s6"])


@pytest.mark.skipif(not hasattr(time, "tzset"), reason="needs time.tzset")
class TestDaylightSaving(unittest.TestCase):
    """Test cases for sessions spanning a clock change."""

    def setUp(self):
        """Pin the local zone to one with a spring-forward night."""
        self.previous_tz = os.environ.get("TZ")
        os.environ["TZ"] = "America/New_York"
        time.tzset()

    def tearDown(self):
        """Restore the local zone."""
        if self.previous_tz is None:
            os.environ.pop("TZ", None)
        else:
            os.environ["TZ"] = self.previous_tz
        time.tzset()

    def test_minutes_follow_elapsed_time(self):
        """Test 01:00 EST to 04:00 EDT counts as two hours."""
        record = make_record(
            "dst", datetime(2026, 3, 8, 0, 30), datetime(2026, 3, 8, 4, 10)
        )
        session = normalize_sessions([record])[0]

        self.assertEqual(record.time_out_rounded - record.time_in_rounded, 7200000)
        self.assertEqual(session_minutes(session), 120)


if __name__ == "__main__":
    unittest.main()
