"""Reattach to an in-progress alert after the app restarts."""

from __future__ import annotations

import logging

from safetrail.client.config import client_settings
from safetrail.client.controller import AlertController
from safetrail.client.interfaces import ActiveSession
from safetrail.core.session_policies import STATUS_ACTIVE

logger = logging.getLogger(__name__)


class SessionRecovery:
    """Runs at most once: later calls are no-ops returning None."""

    def __init__(self, controller: AlertController, web_base_url: str | None = None) -> None:
        self.controller = controller
        self.web_base_url = (web_base_url or client_settings.web_base_url).rstrip("/")
        self._attempted = False

    @property
    def attempted(self) -> bool:
        return self._attempted

    async def recover(self) -> ActiveSession | None:
        if self._attempted:
            return None
        self._attempted = True

        store = self.controller.store
        session_id = store.get_session_id()
        if not session_id:
            return None

        try:
            data = await self.controller.api.get_session(session_id)
            if data is None or data.get("status") != STATUS_ACTIVE:
                logger.info("Stored session no longer active, clearing: session=%s", session_id)
                store.clear_session_id()
                return None

            session = ActiveSession(
                session_id=session_id,
                user_first_name=store.get_user_first_name() or data.get("userFirstName", ""),
                status=STATUS_ACTIVE,
                created_at=data["createdAt"],
                expires_at=data["expiresAt"],
                tracking_url=f"{self.web_base_url}/s/{session_id}",
                contacts=store.get_contacts(),
            )
            await self.controller.resume(session)
        except Exception:
            logger.exception("Session recovery failed: session=%s", session_id)
            store.clear_session_id()
            return None

        logger.info("Session recovered: session=%s", session_id)
        return session
