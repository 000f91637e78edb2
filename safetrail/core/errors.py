"""Domain exceptions."""

from __future__ import annotations


class SafetrailError(Exception):
    """Base class for safetrail errors."""


class SessionNotFoundError(SafetrailError):
    """Raised when a session id does not exist."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class NotificationError(SafetrailError):
    """Raised when a notification provider cannot deliver a message."""


class ApiError(SafetrailError):
    """Raised by the client when the server answers with an error or is unreachable."""

    def __init__(self, status_code: int | None, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class LocationPermissionError(SafetrailError):
    """Raised when the user has not granted location access."""
