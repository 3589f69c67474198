#!/usr/bin/env python3
"""
Session storage for Timecard.
Subscription handles and an in-process session store that pushes a full
snapshot to subscribers after every mutation.
"""

import threading
import uuid
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import StoreError
from .session import SessionRecord

SnapshotHandler = Callable[[List[SessionRecord]], None]
ErrorHandler = Callable[[str], None]


class Subscription:
    """Handle returned by ``subscribe``; call ``unsubscribe`` to stop updates."""

    def __init__(self, on_cancel: Optional[Callable[[], None]] = None):
        self._on_cancel = on_cancel
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._on_cancel:
            self._on_cancel()


def order_by_time_in(records: List[SessionRecord]) -> List[SessionRecord]:
    """Newest time-in first; records without a time-in go last."""
    return sorted(
        records,
        key=lambda r: (r.time_in is not None, r.time_in or 0),
        reverse=True,
    )


class InMemorySessionStore:
    """Per-user session collections held in memory."""

    def __init__(self):
        self._lock = threading.RLock()
        self._sessions: Dict[str, Dict[str, SessionRecord]] = {}
        self._subscribers: Dict[str, List[Tuple[SnapshotHandler, Subscription]]] = {}

    def _collection(self, user_id: str) -> Dict[str, SessionRecord]:
        return self._sessions.setdefault(user_id, {})

    def list_sessions(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[SessionRecord]:
        with self._lock:
            records = [replace(r) for r in self._collection(user_id).values()]
        ordered = order_by_time_in(records)
        return ordered[:limit] if limit is not None else ordered

    def list_first(self, user_id: str, n: int) -> List[SessionRecord]:
        with self._lock:
            records = list(self._collection(user_id).values())[:n]
            return [replace(r) for r in records]

    def create(self, user_id: str, fields: Dict[str, Any]) -> str:
        session_id = uuid.uuid4().hex
        with self._lock:
            self._collection(user_id)[session_id] = SessionRecord.from_dict(
                session_id, fields
            )
        self._notify(user_id)
        return session_id

    def update(self, user_id: str, session_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            record = self._collection(user_id).get(session_id)
            if record is None:
                raise StoreError(f"Session {session_id} not found", status_code=404)
            record.apply(fields)
        self._notify(user_id)

    def delete(self, user_id: str, session_id: str) -> None:
        with self._lock:
            if self._collection(user_id).pop(session_id, None) is None:
                raise StoreError(f"Session {session_id} not found", status_code=404)
        self._notify(user_id)

    def subscribe(
        self,
        user_id: str,
        on_snapshot: SnapshotHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Subscription:
        """Push the current snapshot now and after every change."""

        def cancel():
            with self._lock:
                handlers = self._subscribers.get(user_id, [])
                if entry in handlers:
                    handlers.remove(entry)

        subscription = Subscription(on_cancel=cancel)
        entry = (on_snapshot, subscription)
        with self._lock:
            self._subscribers.setdefault(user_id, []).append(entry)
        on_snapshot(self.list_sessions(user_id))
        return subscription

    def _notify(self, user_id: str) -> None:
        with self._lock:
            handlers = list(self._subscribers.get(user_id, []))
        for handler, subscription in handlers:
            if subscription.active:
                handler(self.list_sessions(user_id))
