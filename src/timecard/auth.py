#!/usr/bin/env python3
"""
Identity client for Timecard.
Email/password sign-up and sign-in against the identity provider's REST
API, plus a small observable for the signed-in user.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import requests

from .errors import NOT_CONFIGURED_MESSAGE, AuthError, ConfigurationError

IDENTITY_BASE_URL = "https://identitytoolkit.googleapis.com/v1"

AuthListener = Callable[[Optional["AuthUser"]], None]


@dataclass(frozen=True)
class AuthUser:
    """A signed-in account."""

    uid: str
    email: str
    id_token: str = ""
    refresh_token: str = ""


class AuthClient:
    """Signs users in and notifies listeners when the user changes."""

    def __init__(self, api_key: str = "", timeout: float = 30):
        self.api_key = api_key
        self.timeout = timeout
        self._current_user: Optional[AuthUser] = None
        self._listeners: List[AuthListener] = []

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._current_user

    def on_auth_state_changed(self, listener: AuthListener) -> Callable[[], None]:
        """Register ``listener``; it is called at once with the current user.

        Returns a callable that removes the listener.
        """
        self._listeners.append(listener)
        listener(self._current_user)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _set_user(self, user: Optional[AuthUser]) -> None:
        self._current_user = user
        for listener in list(self._listeners):
            listener(user)

    def _post(self, endpoint: str, payload: Dict) -> Dict:
        if not self.is_configured:
            raise ConfigurationError(NOT_CONFIGURED_MESSAGE)

        try:
            response = requests.post(
                f"{IDENTITY_BASE_URL}/accounts:{endpoint}",
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise AuthError(f"Network error: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code != 200:
            message = (body.get("error") or {}).get("message") or response.text
            raise AuthError(message, status_code=response.status_code)
        return body

    def _authenticate(self, endpoint: str, email: str, password: str) -> AuthUser:
        body = self._post(
            endpoint,
            {"email": email, "password": password, "returnSecureToken": True},
        )
        user = AuthUser(
            uid=body["localId"],
            email=body.get("email", email),
            id_token=body.get("idToken", ""),
            refresh_token=body.get("refreshToken", ""),
        )
        self._set_user(user)
        return user

    def sign_up(self, email: str, password: str) -> AuthUser:
        return self._authenticate("signUp", email, password)

    def sign_in(self, email: str, password: str) -> AuthUser:
        return self._authenticate("signInWithPassword", email, password)

    def sign_out(self) -> None:
        if self._current_user is None:
            return
        self._set_user(None)
