"""Realtime WebSocket endpoint: session rooms, GPS broadcast, WebRTC signaling."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from safetrail.core.relay import SIGNAL_EVENTS, SessionRelay
from safetrail.db.session import SessionLocal
from safetrail.schemas.gps import GpsPositionSchema
from safetrail.schemas.signal import JoinRequest, SignalEnvelope
from safetrail.services.session_service import ValidationResult, is_session_valid, record_gps_position

logger = logging.getLogger(__name__)

router = APIRouter()


def validate_session(session_id: str) -> ValidationResult:
    """Session check used by the relay on join."""
    db = SessionLocal()
    try:
        return is_session_valid(db, session_id)
    finally:
        db.close()


def record_position(position: GpsPositionSchema) -> bool:
    """GPS persistence used by the relay after each broadcast."""
    db = SessionLocal()
    try:
        return record_gps_position(db, position)
    finally:
        db.close()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint shared by the mobile app and the tracking page.
    Frames are JSON: {"event": <name>, "data": <payload>}.
    Client events: join_session, gps_position, webrtc_offer, webrtc_answer,
    webrtc_ice_candidate. Server events: gps_update, session_status,
    the three webrtc_* events relayed verbatim, and error.
    """
    relay: SessionRelay = websocket.app.state.relay
    connection_id = await relay.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            # Heartbeat
            if raw == "ping":
                await websocket.send_text('{"event":"pong"}')
                continue
            await _dispatch(relay, connection_id, raw)
    except WebSocketDisconnect:
        pass
    finally:
        relay.leave(connection_id)


async def _dispatch(relay: SessionRelay, connection_id: str, raw: str) -> None:
    try:
        message = json.loads(raw)
    except ValueError:
        await relay.send_error(connection_id, "Malformed message: expected JSON")
        return
    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        await relay.send_error(connection_id, "Malformed message: missing event")
        return

    event: str = message["event"]
    data: Any = message.get("data")
    try:
        if event == "join_session":
            if isinstance(data, str):
                data = {"sessionId": data}
            join = JoinRequest.model_validate(data)
            await relay.join(connection_id, join.session_id)
        elif event == "gps_position":
            position = GpsPositionSchema.model_validate(data)
            await relay.publish_gps_position(connection_id, position, payload=data)
        elif event in SIGNAL_EVENTS:
            envelope = SignalEnvelope.model_validate(data)
            await relay.relay_signal(connection_id, event, envelope.session_id, data)
        else:
            logger.debug("Unknown event %r from connection=%s", event, connection_id)
            await relay.send_error(connection_id, f"Unknown event: {event}")
    except ValidationError:
        logger.warning("Invalid %s payload from connection=%s", event, connection_id)
        await relay.send_error(connection_id, f"Invalid {event} payload")
    except WebSocketDisconnect:
        raise
    except Exception:
        # Keep the connection open; the sender gets an error frame
        logger.exception("Failed to handle %s from connection=%s", event, connection_id)
        await relay.send_error(connection_id, f"Could not handle {event}")
