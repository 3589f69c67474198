"""Exception types for Timecard."""

from typing import Optional


class TimecardError(Exception):
    """Base class for all Timecard errors."""


class ConfigurationError(TimecardError):
    """Backend credentials are missing or invalid."""


class StoreError(TimecardError):
    """A read or write against the session store failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthError(TimecardError):
    """The identity provider rejected a request.

    The provider's message (e.g. ``EMAIL_EXISTS``) is kept verbatim so it
    can be shown to the user as-is.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider_message = message
        self.status_code = status_code


NOT_CONFIGURED_MESSAGE = (
    "Backend is not configured. Set TIMECARD_API_KEY and TIMECARD_PROJECT_ID "
    "or add api_key/project_id to settings.json."
)
