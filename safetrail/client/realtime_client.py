"""Realtime client for the mobile app: GPS publishing and WebRTC signaling.

One background thread exclusively owns the WebSocket: public methods only
enqueue frames into a thread-safe outbox, the thread connects, drains the
outbox, dispatches incoming events and reconnects with backoff.

Usage:
    client = RealtimeClient()
    client.on("webrtc_answer", handle_answer)
    client.connect()
    client.join_session(session_id)
    client.send_gps_position(position)
    client.disconnect()
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from collections import defaultdict
from typing import Any, Callable

import websocket

from safetrail.client.config import client_settings

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], None]

SIGNAL_KINDS = {
    "offer": "webrtc_offer",
    "answer": "webrtc_answer",
    "ice-candidate": "webrtc_ice_candidate",
}


class RealtimeClient:
    """Session room client with bounded automatic reconnection."""

    # Old frames are dropped when the outbox is full
    QUEUE_SIZE = 200
    RECV_TIMEOUT = 0.05
    DRAIN_BATCH = 10

    def __init__(
        self,
        url: str | None = None,
        max_attempts: int | None = None,
        reconnect_delay: float | None = None,
        max_reconnect_delay: float | None = None,
        connection_factory: Callable[..., Any] | None = None,
    ) -> None:
        self._url = url or client_settings.socket_url
        self._max_attempts = max_attempts or client_settings.reconnect_attempts
        self._reconnect_delay = reconnect_delay if reconnect_delay is not None else client_settings.reconnect_delay_seconds
        self._max_reconnect_delay = max_reconnect_delay or client_settings.max_reconnect_delay_seconds
        self._connection_factory = connection_factory or websocket.create_connection

        self._ws: Any = None
        self._thread: threading.Thread | None = None
        self._connected = threading.Event()
        self._stop_event = threading.Event()
        self._outbox: queue.Queue[str] = queue.Queue(maxsize=self.QUEUE_SIZE)
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        # Sessions rejoined after every reconnect
        self._sessions: set[str] = set()
        # Guards _sessions together with the connected flag so each join is sent once
        self._join_lock = threading.Lock()
        self.gave_up = False

    # ── Public API ────────────────────────────────────────────────────

    def connect(self, timeout: float = 8.0) -> bool:
        """Start the background connection. True if connected within `timeout`."""
        if self._thread and self._thread.is_alive():
            return self._connected.wait(timeout=timeout)

        self._stop_event.clear()
        self._connected.clear()
        self.gave_up = False
        self._thread = threading.Thread(target=self._run_forever, name="safetrail-realtime", daemon=True)
        self._thread.start()

        connected = self._connected.wait(timeout=timeout)
        if not connected:
            logger.warning("Realtime server not reachable yet, retrying in background")
        return connected

    def disconnect(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=5.0)
        with self._join_lock:
            self._connected.clear()
            self._sessions.clear()
        logger.info("Realtime client disconnected")

    def on(self, event: str, handler: EventHandler) -> None:
        """Register a handler for a server event (gps_update, session_status, webrtc_*)."""
        self._handlers[event].append(handler)

    def join_session(self, session_id: str) -> None:
        with self._join_lock:
            if session_id in self._sessions:
                return
            self._sessions.add(session_id)
            # Not connected yet: the thread sends it on connect
            if self._connected.is_set():
                self._enqueue("join_session", session_id)

    def send_gps_position(self, position: dict[str, Any]) -> bool:
        return self._enqueue("gps_position", position)

    def send_signal(self, kind: str, session_id: str, body: dict[str, Any], sender: str = "app") -> bool:
        """Send an offer / answer / ice-candidate. `body` carries `sdp` or `candidate`."""
        event = SIGNAL_KINDS.get(kind)
        if event is None:
            raise ValueError(f"Unknown signal kind: {kind}")
        return self._enqueue(event, {"sessionId": session_id, **body, "from": sender})

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    # ── Internal: the background thread owns the WebSocket ────────────

    def _enqueue(self, event: str, data: Any) -> bool:
        frame = json.dumps({"event": event, "data": data})
        try:
            self._outbox.put_nowait(frame)
            return True
        except queue.Full:
            try:
                self._outbox.get_nowait()
            except queue.Empty:
                pass
            try:
                self._outbox.put_nowait(frame)
                return True
            except queue.Full:
                return False

    def _run_forever(self) -> None:
        delay = self._reconnect_delay
        failures = 0

        while not self._stop_event.is_set():
            try:
                ws = self._connection_factory(self._url, timeout=15)
            except Exception as exc:
                failures += 1
                if failures >= self._max_attempts:
                    logger.error("Realtime connection failed %s times, giving up: %s", failures, exc)
                    self.gave_up = True
                    break
                logger.warning("Realtime connection failed (%s/%s): %s, retrying in %.1fs", failures, self._max_attempts, exc, delay)
                self._stop_event.wait(timeout=delay)
                delay = min(delay * 1.5, self._max_reconnect_delay)
                continue

            failures = 0
            delay = self._reconnect_delay
            self._ws = ws
            with self._join_lock:
                self._connected.set()
                rejoin = list(self._sessions)
            logger.info("Realtime link established: %s", self._url)

            try:
                for session_id in rejoin:
                    ws.send(json.dumps({"event": "join_session", "data": session_id}))
                self._pump(ws)
            except Exception as exc:
                logger.warning("Realtime connection lost: %s", exc)
            finally:
                self._connected.clear()
                self._close_socket()

        self._connected.clear()
        self._close_socket()

    def _pump(self, ws: Any) -> None:
        ws.settimeout(self.RECV_TIMEOUT)
        while not self._stop_event.is_set():
            for _ in range(self.DRAIN_BATCH):
                try:
                    frame = self._outbox.get_nowait()
                except queue.Empty:
                    break
                ws.send(frame)

            try:
                raw = ws.recv()
            except websocket.WebSocketTimeoutException:
                continue
            if raw:
                self._dispatch(raw)

    def _dispatch(self, raw: str | bytes) -> None:
        try:
            message = json.loads(raw)
            event = message["event"]
        except (ValueError, KeyError, TypeError):
            logger.debug("Ignoring malformed realtime frame")
            return
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(message.get("data"))
            except Exception:
                logger.exception("Handler for %s failed", event)

    def _close_socket(self) -> None:
        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            ws.close()
        except Exception:
            logger.debug("Error closing realtime socket", exc_info=True)
