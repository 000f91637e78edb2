"""Client-side collaborators and shared data types.

Platform integrations (geolocation, microphone/WebRTC, secure storage) are
provided by the host application through these protocols.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol


@dataclass
class ContactInfo:
    name: str
    phone: str  # E.164


@dataclass
class ActiveSession:
    """Alert session as tracked by the mobile client."""

    session_id: str
    user_first_name: str
    status: str
    created_at: int
    expires_at: int
    tracking_url: str
    contacts: list[ContactInfo] = field(default_factory=list)


PositionCallback = Callable[[dict[str, Any]], None]


class LocationTracker(Protocol):
    async def request_permission(self) -> bool:
        """Prompt for (background) location access. True if granted."""
        ...

    async def start(self, session_id: str, on_position: PositionCallback) -> None:
        """Start publishing positions ({sessionId, latitude, ...}) to `on_position`."""
        ...

    async def stop(self) -> None:
        ...


class AudioStreamer(Protocol):
    async def start(self, session_id: str) -> None:
        ...

    async def stop(self) -> None:
        ...


class LocalStateStore(Protocol):
    def get_session_id(self) -> str | None:
        ...

    def save_session_id(self, session_id: str) -> None:
        ...

    def clear_session_id(self) -> None:
        ...

    def get_user_first_name(self) -> str | None:
        ...

    def get_contacts(self) -> list[ContactInfo]:
        ...
