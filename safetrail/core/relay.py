"""Realtime relay for GPS positions and WebRTC signaling.

The mobile app and the web tracking page join the same room (the session
id). Everything a member publishes is forwarded to the other members of
that room; nothing is replayed to members who join later.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, Callable

from fastapi import WebSocket
from starlette.concurrency import run_in_threadpool

from safetrail.core.room_registry import RoomRegistry
from safetrail.core.session_policies import REASON_NOT_FOUND, STATUS_UNKNOWN
from safetrail.schemas.gps import GpsPositionSchema
from safetrail.services.session_service import ValidationResult

logger = logging.getLogger(__name__)

SIGNAL_EVENTS = ("webrtc_offer", "webrtc_answer", "webrtc_ice_candidate")

SessionValidator = Callable[[str], ValidationResult]
PositionRecorder = Callable[[GpsPositionSchema], Any]


class SessionRelay:
    """Tracks realtime connections and fans messages out per session room."""

    def __init__(
        self,
        validate_session: SessionValidator,
        record_position: PositionRecorder,
        rooms: RoomRegistry | None = None,
    ) -> None:
        self.rooms = rooms if rooms is not None else RoomRegistry()
        self._validate_session = validate_session
        self._record_position = record_position
        # connection_id -> websocket
        self._connections: dict[str, WebSocket] = {}
        # in-flight GPS persistence tasks
        self._pending: set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self._connections[connection_id] = websocket
        logger.debug("WS connected: connection=%s (total=%s)", connection_id, self.total_connections)
        return connection_id

    def leave(self, connection_id: str) -> None:
        """Drop a connection and its room memberships."""
        self._connections.pop(connection_id, None)
        left = self.rooms.remove_connection(connection_id)
        logger.debug("WS disconnected: connection=%s rooms=%s (total=%s)", connection_id, left, self.total_connections)

    async def join(self, connection_id: str, session_id: str) -> str:
        """Add a connection to a session room and tell it the session status.

        Invalid sessions may still be joined (read-only "alert ended" view).
        Returns the status sent to the joiner.
        """
        try:
            result = await run_in_threadpool(self._validate_session, session_id)
        except Exception:
            logger.exception("Session check failed on join: session=%s", session_id)
            status = STATUS_UNKNOWN
        else:
            if not result.valid:
                logger.warning("Join on invalid session=%s reason=%s", session_id, result.reason)
            status = result.session.status if result.session is not None else REASON_NOT_FOUND

        if connection_id not in self._connections:
            # Disconnected while the session was being validated
            logger.debug("Join discarded: connection=%s already gone", connection_id)
            return status

        self.rooms.add(session_id, connection_id)
        logger.info(
            "Connection joined: connection=%s session=%s participants=%s",
            connection_id,
            session_id,
            self.rooms.participant_count(session_id),
        )
        await self.send(connection_id, "session_status", {"sessionId": session_id, "status": status})
        return status

    async def publish_gps_position(
        self,
        connection_id: str,
        position: GpsPositionSchema,
        payload: dict[str, Any] | None = None,
    ) -> int:
        """Broadcast a position to the room and persist it in the background.

        Persistence never delays or fails the broadcast.
        """
        self._persist_in_background(position)
        data = payload if payload is not None else position.model_dump(by_alias=True, exclude_none=True)
        return await self.broadcast(position.session_id, "gps_update", data, exclude=connection_id)

    async def relay_signal(self, connection_id: str, kind: str, session_id: str, payload: dict[str, Any]) -> int:
        """Forward an offer / answer / ICE candidate verbatim."""
        if kind not in SIGNAL_EVENTS:
            raise ValueError(f"Unknown signal kind: {kind}")
        logger.debug("Signal %s: session=%s from=%s", kind, session_id, payload.get("from"))
        return await self.broadcast(session_id, kind, payload, exclude=connection_id)

    async def broadcast_status(self, session_id: str, status: str) -> int:
        return await self.broadcast(session_id, "session_status", {"sessionId": session_id, "status": status})

    async def broadcast(self, session_id: str, event: str, data: Any, exclude: str | None = None) -> int:
        """Send an event to every room member except `exclude`. Returns the delivery count."""
        payload = json.dumps({"event": event, "data": data}, default=str)
        delivered = 0
        dead: list[str] = []
        for connection_id in self.rooms.members(session_id):
            if connection_id == exclude:
                continue
            ws = self._connections.get(connection_id)
            if ws is None:
                continue
            try:
                await ws.send_text(payload)
                delivered += 1
            except Exception:
                dead.append(connection_id)
        for connection_id in dead:
            logger.warning("Dropping dead connection=%s from session=%s", connection_id, session_id)
            self.leave(connection_id)
        return delivered

    async def send(self, connection_id: str, event: str, data: Any) -> None:
        ws = self._connections.get(connection_id)
        if ws is None:
            return
        await ws.send_text(json.dumps({"event": event, "data": data}, default=str))

    async def send_error(self, connection_id: str, detail: str) -> None:
        await self.send(connection_id, "error", {"detail": detail})

    def participant_count(self, session_id: str) -> int:
        return self.rooms.participant_count(session_id)

    @property
    def total_connections(self) -> int:
        return len(self._connections)

    async def close(self) -> None:
        """Let in-flight persistence finish, then forget every connection."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        self._connections.clear()
        self.rooms.clear()

    def _persist_in_background(self, position: GpsPositionSchema) -> None:
        task = asyncio.create_task(run_in_threadpool(self._record_position, position))
        self._pending.add(task)
        task.add_done_callback(self._on_persisted)

    def _on_persisted(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("GPS persistence failed: %s", exc, exc_info=exc)
