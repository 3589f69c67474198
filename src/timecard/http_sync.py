#!/usr/bin/env python3
"""
HTTP session store for Timecard.
Reads and writes the per-user session collection of the managed document
database through its REST API, and emulates live updates by polling.
"""

import threading
from typing import Any, Callable, Dict, List, Optional

import requests

from .errors import (
    NOT_CONFIGURED_MESSAGE,
    ConfigurationError,
    StoreError,
    TimecardError,
)
from .session import SessionRecord
from .storage import ErrorHandler, SnapshotHandler, Subscription

FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"


class FirestoreValueCodec:
    """Converts between plain Python values and typed document values."""

    @staticmethod
    def encode(value: Any) -> Dict[str, Any]:
        if value is None:
            return {"nullValue": None}
        if isinstance(value, bool):
            return {"booleanValue": value}
        if isinstance(value, int):
            # 64-bit integers travel as strings
            return {"integerValue": str(value)}
        if isinstance(value, float):
            return {"doubleValue": value}
        return {"stringValue": str(value)}

    @staticmethod
    def decode(value: Dict[str, Any]) -> Any:
        if "integerValue" in value:
            return int(value["integerValue"])
        if "doubleValue" in value:
            return float(value["doubleValue"])
        if "booleanValue" in value:
            return bool(value["booleanValue"])
        if "stringValue" in value:
            return value["stringValue"]
        if "timestampValue" in value:
            return value["timestampValue"]
        return None

    def encode_fields(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return {name: self.encode(value) for name, value in fields.items()}

    def decode_document(self, document: Dict[str, Any]) -> SessionRecord:
        session_id = document.get("name", "").rsplit("/", 1)[-1]
        fields = {
            name: self.decode(value)
            for name, value in document.get("fields", {}).items()
        }
        return SessionRecord.from_dict(session_id, fields)


class PollingSubscription(Subscription):
    """Re-reads the collection on an interval and pushes changed snapshots."""

    def __init__(
        self,
        fetch: Callable[[], List[SessionRecord]],
        on_snapshot: SnapshotHandler,
        on_error: Optional[ErrorHandler] = None,
        interval: float = 5.0,
    ):
        super().__init__()
        self.fetch = fetch
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.interval = interval
        self._last: Optional[List[SessionRecord]] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> "PollingSubscription":
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()
        return self

    def poll_once(self) -> bool:
        """Fetch once; returns False when the subscription has ended."""
        if not self.active:
            return False
        try:
            records = self.fetch()
        except TimecardError as e:
            self.active = False
            self._stop_event.set()
            if self.on_error:
                self.on_error(str(e))
            return False

        if records != self._last and self.active:
            self._last = records
            self.on_snapshot(records)
        return True

    def _run(self) -> None:
        while not self._stop_event.is_set():
            if not self.poll_once():
                break
            self._stop_event.wait(self.interval)

    def unsubscribe(self) -> None:
        super().unsubscribe()
        self._stop_event.set()


class FirestoreSessionStore:
    """Session collection under ``users/{uid}/sessions`` over HTTPS."""

    def __init__(
        self,
        project_id: str,
        api_key: str = "",
        auth_token: str = "",  # nosec B107
        timeout: float = 30,
        poll_interval: float = 5.0,
    ):
        self.project_id = project_id
        self.api_key = api_key
        self.auth_token = auth_token
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.codec = FirestoreValueCodec()

    @property
    def is_configured(self) -> bool:
        return bool(self.project_id and self.api_key)

    @property
    def documents_url(self) -> str:
        return (
            f"{FIRESTORE_BASE_URL}/projects/{self.project_id}"
            "/databases/(default)/documents"
        )

    def _collection_url(self, user_id: str) -> str:
        return f"{self.documents_url}/users/{user_id}/sessions"

    def _get_headers(self) -> Dict[str, str]:
        """Get request headers including authentication if configured."""
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def _request(self, method: str, url: str, **kwargs) -> Any:
        if not self.is_configured:
            raise ConfigurationError(NOT_CONFIGURED_MESSAGE)

        try:
            response = requests.request(
                method,
                url,
                headers=self._get_headers(),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.exceptions.RequestException as e:
            raise StoreError(f"Network error: {e}") from e

        if response.status_code not in (200, 201):
            raise StoreError(
                f"HTTP {response.status_code} - {self._error_message(response)}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise StoreError(f"Invalid response: {e}") from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            return response.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            return response.text

    def _run_query(self, user_id: str, structured_query: Dict) -> List[SessionRecord]:
        url = f"{self.documents_url}/users/{user_id}:runQuery"
        rows = self._request("POST", url, json={"structuredQuery": structured_query})
        return [
            self.codec.decode_document(row["document"])
            for row in rows or []
            if "document" in row
        ]

    def list_sessions(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[SessionRecord]:
        """All sessions ordered by time-in, newest first."""
        query: Dict[str, Any] = {
            "from": [{"collectionId": "sessions"}],
            "orderBy": [{"field": {"fieldPath": "timeIn"}, "direction": "DESCENDING"}],
        }
        if limit is not None:
            query["limit"] = limit
        return self._run_query(user_id, query)

    def list_first(self, user_id: str, n: int) -> List[SessionRecord]:
        return self._run_query(
            user_id, {"from": [{"collectionId": "sessions"}], "limit": n}
        )

    def create(self, user_id: str, fields: Dict[str, Any]) -> str:
        document = self._request(
            "POST",
            self._collection_url(user_id),
            json={"fields": self.codec.encode_fields(fields)},
        )
        if not isinstance(document, dict) or "name" not in document:
            raise StoreError("Invalid response: created document has no name")
        return document["name"].rsplit("/", 1)[-1]

    def update(self, user_id: str, session_id: str, fields: Dict[str, Any]) -> None:
        """Partial update; fails if the session does not exist."""
        params = [("updateMask.fieldPaths", name) for name in fields]
        params.append(("currentDocument.exists", "true"))
        self._request(
            "PATCH",
            f"{self._collection_url(user_id)}/{session_id}",
            params=params,
            json={"fields": self.codec.encode_fields(fields)},
        )

    def delete(self, user_id: str, session_id: str) -> None:
        self._request("DELETE", f"{self._collection_url(user_id)}/{session_id}")

    def subscribe(
        self,
        user_id: str,
        on_snapshot: SnapshotHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Subscription:
        """Start polling the ordered collection.

        A missing configuration is reported through ``on_error`` right away.
        """
        if not self.is_configured:
            if on_error:
                on_error(NOT_CONFIGURED_MESSAGE)
            subscription = Subscription()
            subscription.unsubscribe()
            return subscription

        return PollingSubscription(
            lambda: self.list_sessions(user_id),
            on_snapshot,
            on_error,
            interval=self.poll_interval,
        ).start()

    def test_connection(self) -> bool:
        """Test connection to the document database."""
        try:
            response = requests.get(self.documents_url, timeout=10)
            return response.status_code < 500
        except requests.exceptions.RequestException:
            return False
