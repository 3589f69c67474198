#!/usr/bin/env python3
"""
Session records and normalization for Timecard.
Converts stored records (epoch millisecond instants) into sessions carrying
local datetimes for every instant.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .time_utils import diff_minutes, to_datetime

# attribute name -> stored field name
FIELD_NAMES = {
    "time_in": "timeIn",
    "time_out": "timeOut",
    "time_in_rounded": "timeInRounded",
    "time_out_rounded": "timeOutRounded",
    "is_completed": "isCompleted",
    "created_at": "createdAt",
    "archived_at": "archivedAt",
}


@dataclass
class SessionRecord:
    """One stored work session, exactly as the store holds it."""

    id: str
    time_in: Optional[int] = None
    time_out: Optional[int] = None
    time_in_rounded: Optional[int] = None
    time_out_rounded: Optional[int] = None
    is_completed: bool = False
    created_at: Optional[int] = None
    archived_at: Optional[int] = None

    @classmethod
    def from_dict(cls, session_id: str, data: Dict[str, Any]) -> "SessionRecord":
        """Build a record from stored (camelCase) fields. Unknown keys are ignored."""
        values = {
            attr: data.get(stored)
            for attr, stored in FIELD_NAMES.items()
            if stored in data
        }
        values["is_completed"] = bool(values.get("is_completed", False))
        return cls(id=session_id, **values)

    def to_fields(self) -> Dict[str, Any]:
        """Stored representation without the id."""
        return {stored: getattr(self, attr) for attr, stored in FIELD_NAMES.items()}

    def apply(self, fields: Dict[str, Any]) -> None:
        """Apply a partial update expressed in stored field names."""
        for attr, stored in FIELD_NAMES.items():
            if stored in fields:
                setattr(self, attr, fields[stored])


@dataclass
class NormalizedSession:
    """A session record plus local datetimes derived from its instants."""

    record: SessionRecord
    time_in_date: Optional[datetime] = None
    time_out_date: Optional[datetime] = None
    time_in_rounded_date: Optional[datetime] = None
    time_out_rounded_date: Optional[datetime] = None

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def time_out(self) -> Optional[int]:
        return self.record.time_out

    @property
    def archived_at(self) -> Optional[int]:
        return self.record.archived_at

    @property
    def is_open(self) -> bool:
        return not self.record.time_out

    @property
    def is_archived(self) -> bool:
        return bool(self.record.archived_at)

    @property
    def has_rounded_range(self) -> bool:
        return (
            self.time_in_rounded_date is not None
            and self.time_out_rounded_date is not None
        )


def normalize_session(record: SessionRecord) -> NormalizedSession:
    return NormalizedSession(
        record=record,
        time_in_date=to_datetime(record.time_in),
        time_out_date=to_datetime(record.time_out),
        time_in_rounded_date=to_datetime(record.time_in_rounded),
        time_out_rounded_date=to_datetime(record.time_out_rounded),
    )


def normalize_sessions(records: Iterable[SessionRecord]) -> List[NormalizedSession]:
    """Normalize records, keeping the store's order.

    Records with missing instants are kept; their derived dates are None.
    """
    return [normalize_session(record) for record in records]


def session_minutes(session: NormalizedSession) -> float:
    """Rounded duration of a completed session, 0 when either bound is missing."""
    if not session.has_rounded_range:
        return 0.0
    return diff_minutes(session.time_in_rounded_date, session.time_out_rounded_date)


def find_active_session(
    sessions: Iterable[NormalizedSession],
) -> Optional[NormalizedSession]:
    """First open, unarchived session in store order."""
    for session in sessions:
        if session.is_open and not session.is_archived:
            return session
    return None


def open_sessions(sessions: Iterable[NormalizedSession]) -> List[NormalizedSession]:
    return [s for s in sessions if s.is_open and not s.is_archived]


def unarchived_sessions(
    sessions: Iterable[NormalizedSession],
) -> List[NormalizedSession]:
    return [s for s in sessions if not s.is_archived]


def recent_sessions(
    sessions: Iterable[NormalizedSession], limit: int = 6
) -> List[NormalizedSession]:
    """The newest ``limit`` unarchived sessions (store order is newest first)."""
    return unarchived_sessions(sessions)[:limit]
