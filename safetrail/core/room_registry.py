"""Relay room membership: session id -> connected connection ids."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Live fan-out index for the realtime relay.

    A room is either absent or populated: it is created by the first add
    and removed together with its last member. Nothing here is persisted.
    All methods are synchronous so a mutation never interleaves with
    another one on the event loop.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, set[str]] = {}

    def add(self, session_id: str, connection_id: str) -> bool:
        """Add a member. Returns True if the room was created."""
        members = self._rooms.get(session_id)
        created = members is None
        if created:
            members = self._rooms[session_id] = set()
            logger.info("Room created: session=%s", session_id)
        members.add(connection_id)
        return created

    def remove(self, session_id: str, connection_id: str) -> bool:
        """Remove a member from one room. Returns True if the room was deleted."""
        members = self._rooms.get(session_id)
        if not members:
            return False
        members.discard(connection_id)
        if members:
            return False
        del self._rooms[session_id]
        logger.info("Room removed (empty): session=%s", session_id)
        return True

    def remove_connection(self, connection_id: str) -> list[str]:
        """Remove a connection from every room. Returns the rooms it left."""
        left = [sid for sid, members in self._rooms.items() if connection_id in members]
        for session_id in left:
            self.remove(session_id, connection_id)
        return left

    def members(self, session_id: str) -> frozenset[str]:
        return frozenset(self._rooms.get(session_id, ()))

    def rooms_of(self, connection_id: str) -> list[str]:
        return [sid for sid, members in self._rooms.items() if connection_id in members]

    def participant_count(self, session_id: str) -> int:
        return len(self._rooms.get(session_id, ()))

    def clear(self) -> None:
        self._rooms.clear()

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
