"""Pytest configuration and fixtures."""

import shutil
import tempfile
from datetime import datetime

import pytest


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    temp_path = tempfile.mkdtemp()
    yield temp_path
    shutil.rmtree(temp_path)


@pytest.fixture
def sample_session_fields():
    """Stored fields of a completed 09:15 -> 16:45 session."""
    from timecard.time_utils import to_millis

    start = datetime(2026, 2, 2, 9, 15)
    end = datetime(2026, 2, 2, 16, 45)
    return {
        "timeIn": to_millis(start),
        "timeOut": to_millis(end),
        "timeInRounded": to_millis(datetime(2026, 2, 2, 10, 0)),
        "timeOutRounded": to_millis(datetime(2026, 2, 2, 16, 0)),
        "isCompleted": True,
        "createdAt": to_millis(start),
        "archivedAt": None,
    }


@pytest.fixture
def sample_firestore_document():
    """A session document as the document database returns it."""
    return {
        "name": "projects/demo/databases/(default)/documents/users/u1/sessions/abc123",
        "fields": {
            "timeIn": {"integerValue": "1770023700000"},
            "timeOut": {"nullValue": None},
            "timeInRounded": {"integerValue": "1770026400000"},
            "timeOutRounded": {"nullValue": None},
            "isCompleted": {"booleanValue": False},
            "createdAt": {"integerValue": "1770023700000"},
            "archivedAt": {"nullValue": None},
        },
    }


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "unit: mark test as unit test")
