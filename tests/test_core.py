"""Tests for core module functionality."""

import shutil
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from unittest.mock import Mock, patch

from timecard.auth import AuthClient, AuthUser
from timecard.config import Config
from timecard.core import MAX_NOTICES, TimeTracker
from timecard.storage import InMemorySessionStore

USER = AuthUser(uid="u1", email="me@example.com", id_token="token")


class TrackerTestCase(unittest.TestCase):
    """Shared setup: an in-memory store and a tracker on a controllable clock."""

    seed = False

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.config = Config(config_dir=self.temp_dir)
        self.config.update(
            {
                "verbose_logging": False,
                "seed_on_first_use": self.seed,
                "tick_interval": 60.0,
                "report_dir": self.temp_dir,
            }
        )
        self.now = datetime(2026, 2, 4, 9, 15)
        self.store = InMemorySessionStore()
        self.tracker = TimeTracker(self.store, config=self.config, clock=lambda: self.now)

    def tearDown(self):
        """Clean up test fixtures."""
        self.tracker.close()
        shutil.rmtree(self.temp_dir)


class TestTimeTrackerStart(TrackerTestCase):
    """Test cases for starting a tracker on a new account."""

    seed = True

    def test_start_seeds_and_subscribes(self):
        """Test a new account is seeded and the first snapshot derived."""
        self.assertTrue(self.tracker.loading)

        self.tracker.start(USER)

        self.assertFalse(self.tracker.loading)
        self.assertEqual(len(self.tracker.normalized), 6)
        self.assertTrue(self.tracker.live_clock.running)
        self.assertEqual(self.tracker.progress.completed_minutes, 6 * 240)
        self.assertAlmostEqual(self.tracker.progress.total_hours, (1200 + 1440) / 60)
        self.assertEqual(self.tracker.current_week.key, "2026-02-02")
        self.assertEqual(self.tracker.current_week_day_totals[1], 480)
        self.assertEqual(self.tracker.earliest_time_in, datetime(2026, 2, 2, 8))

        self.tracker.stop()
        self.assertFalse(self.tracker.live_clock.running)

    def test_no_sessions_no_earliest_time_in(self):
        """Test an account without sessions has no tracking start."""
        self.assertIsNone(self.tracker.earliest_time_in)

    def test_restart_does_not_reseed(self):
        """Test seeding happens only once per account."""
        self.tracker.start(USER)
        self.tracker.stop()
        self.tracker.start(USER)
        self.assertEqual(len(self.store.list_sessions(USER.uid)), 6)


class TestTimeTrackerActions(TrackerTestCase):
    """Test cases for actions routed through the tracker."""

    def test_actions_need_a_user(self):
        """Test actions before sign-in are refused."""
        result = self.tracker.time_in()
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Sign in to track time.")

    def test_time_in_tick_time_out(self):
        """Test the running session feeds live progress until time-out."""
        self.tracker.start(USER)

        result = self.tracker.time_in()
        self.assertEqual(result.message, "Time in recorded at 10:00 AM")
        self.assertIsNotNone(self.tracker.active_session)

        self.tracker.tick(datetime(2026, 2, 4, 12, 30))
        self.assertEqual(self.tracker.progress.active_minutes, 120)

        self.now = datetime(2026, 2, 4, 16, 45)
        self.tracker.time_out()

        self.assertIsNone(self.tracker.active_session)
        self.assertEqual(self.tracker.progress.completed_minutes, 360)
        self.assertEqual(self.tracker.current_week_summary.total_minutes, 360)
        self.assertEqual(
            self.tracker.status_message, "Time out recorded at 4:00 PM"
        )

    def test_one_shot_mode_refreshes_after_actions(self):
        """Test actions without a subscription re-read the store."""
        self.tracker.open(USER)
        self.tracker.refresh()

        self.tracker.time_in()

        self.assertEqual(len(self.tracker.normalized), 1)
        self.assertIsNotNone(self.tracker.active_session)

    def test_archive_and_unarchive(self):
        """Test archived sessions move to the archive view and back."""
        self.tracker.start(USER)
        self.tracker.time_in()
        self.now = datetime(2026, 2, 4, 12, 0)
        session_id = self.tracker.time_out().session_id

        self.tracker.archive([session_id])
        self.assertEqual(self.tracker.recent_sessions, [])
        self.assertEqual(len(self.tracker.archived_weeks), 1)
        self.assertEqual(self.tracker.progress.completed_minutes, 120)

        self.tracker.unarchive([session_id])
        self.assertEqual(self.tracker.archived_weeks, [])
        self.assertEqual(len(self.tracker.recent_sessions), 1)

    def test_notices_are_bounded(self):
        """Test only the latest notices are kept."""
        self.tracker.start(USER)
        for _ in range(MAX_NOTICES + 3):
            self.tracker.time_out()
        self.assertEqual(len(self.tracker.notices), MAX_NOTICES)
        self.assertEqual(self.tracker.notices[-1].variant, "warning")

    def test_handle_error(self):
        """Test subscription errors are kept for display."""
        self.tracker.handle_error("HTTP 403 - denied")
        self.assertEqual(self.tracker.error, "HTTP 403 - denied")
        self.assertFalse(self.tracker.loading)

    def test_listeners_see_every_derivation(self):
        """Test listeners run after snapshots and ticks."""
        seen = []
        self.tracker.add_listener(lambda t: seen.append(t.now))
        self.tracker.handle_snapshot([])
        self.tracker.tick(datetime(2026, 2, 4, 10, 0))
        self.assertEqual(len(seen), 2)
        self.assertEqual(seen[-1], datetime(2026, 2, 4, 10, 0))


class TestTimeTrackerReports(TrackerTestCase):
    """Test cases for report export through the tracker."""

    def test_unknown_week_refused(self):
        """Test exporting a week with no bucket."""
        self.tracker.start(USER)
        result = self.tracker.export_report("2020-01-06")
        self.assertFalse(result.success)
        self.assertIn("2020-01-06", result.message)

    @patch("timecard.report.render_pdf")
    def test_export_current_week(self, mock_render):
        """Test exporting the current week writes a file."""
        mock_render.return_value = b"%PDF"
        self.tracker.start(USER)

        result = self.tracker.export_report("2026-02-02", reflection="Done.")

        self.assertTrue(result.success)
        self.assertTrue((Path(self.temp_dir) / "weekly-report-2026-02-04.pdf").exists())


class TestTimeTrackerAuth(TrackerTestCase):
    """Test cases for following the signed-in user."""

    @patch("requests.post")
    def test_follows_auth_state(self, mock_post):
        """Test sign-in starts the tracker and sign-out stops it."""
        response = Mock()
        response.status_code = 200
        response.json.return_value = {
            "localId": "u1",
            "email": "me@example.com",
            "idToken": "token",
        }
        mock_post.return_value = response
        auth = AuthClient(api_key="key")

        self.tracker.attach_auth(auth)
        self.assertIsNone(self.tracker.user)

        auth.sign_in("me@example.com", "secret")
        self.assertEqual(self.tracker.user.uid, "u1")
        self.assertTrue(self.tracker.live_clock.running)

        auth.sign_out()
        self.assertFalse(self.tracker.live_clock.running)


if __name__ == "__main__":
    unittest.main()
