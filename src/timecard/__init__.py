"""
Timecard - personal time tracking against a fixed hour target.

Records "time in / time out" work sessions in a hosted document store and
derives everything else from them:

- Hour-rounded session durations
- Monday to Friday weekly buckets with per-day totals
- Lifetime progress towards the hour target
- Archive, unarchive and restore of past sessions
- Weekly PDF report export
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .core import TimeTracker
from .http_sync import FirestoreSessionStore
from .storage import InMemorySessionStore

__all__ = [
    "TimeTracker",
    "FirestoreSessionStore",
    "InMemorySessionStore",
]
