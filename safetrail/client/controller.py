"""SOS trigger flow on the mobile client.

trigger():
  1. location permission (blocking: GPS is the point of the alert)
  2. create the session on the server and remember its id locally
  3. join the realtime room and start publishing GPS
  4. start audio streaming (best-effort)
  5. countdown -> send the alert to every contact
"""

from __future__ import annotations

import asyncio
import logging

from safetrail.client.api_client import SessionApiClient
from safetrail.client.countdown import AlertCountdown
from safetrail.client.interfaces import (
    ActiveSession,
    AudioStreamer,
    ContactInfo,
    LocalStateStore,
    LocationTracker,
)
from safetrail.client.realtime_client import RealtimeClient
from safetrail.core.errors import ApiError, LocationPermissionError
from safetrail.core.session_policies import STATUS_ACTIVE

logger = logging.getLogger(__name__)


class AlertController:
    def __init__(
        self,
        api: SessionApiClient,
        realtime: RealtimeClient,
        location: LocationTracker,
        audio: AudioStreamer,
        store: LocalStateStore,
        countdown: AlertCountdown | None = None,
    ) -> None:
        self.api = api
        self.realtime = realtime
        self.location = location
        self.audio = audio
        self.store = store
        self.countdown = countdown or AlertCountdown()
        self.session: ActiveSession | None = None
        self.last_alert_result: dict | None = None

    @property
    def is_active(self) -> bool:
        return self.session is not None

    async def trigger(
        self,
        user_first_name: str,
        contacts: list[ContactInfo],
        pin_code: str,
        duration_minutes: int | None = None,
    ) -> ActiveSession:
        """Start an alert. Raises LocationPermissionError or ApiError."""
        if not await self.location.request_permission():
            raise LocationPermissionError(
                "Location access is required to share your position with your contacts. "
                "Enable it in your device settings."
            )

        created = await self.api.create_session(user_first_name, contacts, pin_code, duration_minutes)
        session = ActiveSession(
            session_id=created["sessionId"],
            user_first_name=user_first_name,
            status=STATUS_ACTIVE,
            created_at=created.get("createdAt", 0),
            expires_at=created["expiresAt"],
            tracking_url=created["trackingUrl"],
            contacts=list(contacts),
        )
        self.session = session
        self.store.save_session_id(session.session_id)

        await self._attach(session.session_id)
        self.countdown.start(lambda: self._send_alert(session.session_id))
        logger.info("SOS triggered: session=%s", session.session_id)
        return session

    async def resume(self, session: ActiveSession) -> None:
        """Reattach to a session that is still active on the server."""
        self.session = session
        if await self.location.request_permission():
            await self._attach(session.session_id)
        else:
            # Keep the room so the tracking page still gets status updates
            logger.warning("Location permission missing, GPS not resumed: session=%s", session.session_id)
            await self._connect_realtime(session.session_id)
            await self._start_audio(session.session_id)

    def cancel_countdown(self) -> bool:
        """Stop the countdown before contacts are notified."""
        return self.countdown.cancel()

    async def deactivate(self, pin: str) -> bool:
        """End the alert with the PIN. False if the server refuses it."""
        if self.session is None:
            return False
        session_id = self.session.session_id
        try:
            await self.api.deactivate_session(session_id, pin)
        except ApiError as exc:
            logger.warning("Deactivation refused: session=%s status=%s", session_id, exc.status_code)
            return False

        self.countdown.cancel()
        await self.location.stop()
        await self.audio.stop()
        # disconnect() joins the socket thread
        await asyncio.to_thread(self.realtime.disconnect)
        self.store.clear_session_id()
        self.session = None
        logger.info("Alert deactivated: session=%s", session_id)
        return True

    async def _attach(self, session_id: str) -> None:
        await self._connect_realtime(session_id)
        await self.location.start(session_id, self.realtime.send_gps_position)
        await self._start_audio(session_id)

    async def _connect_realtime(self, session_id: str) -> None:
        # connect() blocks until the first link or its timeout
        await asyncio.to_thread(self.realtime.connect)
        self.realtime.join_session(session_id)

    async def _start_audio(self, session_id: str) -> None:
        try:
            await self.audio.start(session_id)
        except Exception:
            # The alert works without audio
            logger.warning("Audio streaming unavailable: session=%s", session_id, exc_info=True)

    async def _send_alert(self, session_id: str) -> None:
        try:
            self.last_alert_result = await self.api.send_alert(session_id)
        except ApiError as exc:
            logger.error("Sending alerts failed: session=%s error=%s", session_id, exc.message)
            return
        logger.info(
            "Alerts sent: session=%s sent=%s failed=%s",
            session_id,
            self.last_alert_result.get("sent"),
            self.last_alert_result.get("failed"),
        )
