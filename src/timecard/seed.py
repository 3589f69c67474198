#!/usr/bin/env python3
"""
First-use seeding for Timecard.
Gives a brand-new account a few historical sessions to look at.
"""

import time
from datetime import datetime
from typing import Any, Dict, List, Tuple

from .time_utils import round_down_to_hour, round_up_to_hour, to_millis

SEED_RANGES: List[Tuple[datetime, datetime]] = [
    (datetime(2026, 2, 2, 8, 0), datetime(2026, 2, 2, 12, 0)),
    (datetime(2026, 2, 2, 13, 0), datetime(2026, 2, 2, 17, 0)),
    (datetime(2026, 2, 3, 13, 0), datetime(2026, 2, 3, 17, 0)),
    (datetime(2026, 2, 4, 8, 0), datetime(2026, 2, 4, 12, 0)),
    (datetime(2026, 2, 4, 13, 0), datetime(2026, 2, 4, 17, 0)),
    (datetime(2026, 2, 5, 8, 0), datetime(2026, 2, 5, 12, 0)),
]


def build_seed_session(start: datetime, end: datetime) -> Dict[str, Any]:
    """Stored fields for one completed seed session."""
    return {
        "timeIn": to_millis(start),
        "timeOut": to_millis(end),
        "timeInRounded": to_millis(round_up_to_hour(start)),
        "timeOutRounded": to_millis(round_down_to_hour(end)),
        "isCompleted": True,
        "createdAt": int(time.time() * 1000),
        "archivedAt": None,
    }


def seed_initial_sessions(store: Any, user_id: str) -> int:
    """Create the seed sessions if the user has none yet.

    Returns the number of sessions created.
    """
    if store.list_first(user_id, 1):
        return 0

    for start, end in SEED_RANGES:
        store.create(user_id, build_seed_session(start, end))
    return len(SEED_RANGES)
