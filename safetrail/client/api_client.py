"""HTTP client for the safetrail API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from safetrail.client.config import client_settings
from safetrail.client.interfaces import ContactInfo
from safetrail.core.errors import ApiError

logger = logging.getLogger(__name__)


class SessionApiClient:
    """Async wrapper around the session and alert endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=base_url or client_settings.api_base_url,
            timeout=timeout or client_settings.request_timeout_seconds,
        )

    async def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            raise ApiError(None, f"Request to {path} failed: {exc}") from exc

        if response.is_error:
            try:
                message = response.json().get("error")
            except ValueError:
                message = None
            raise ApiError(response.status_code, message or response.reason_phrase)
        return response.json()

    async def create_session(
        self,
        user_first_name: str,
        contacts: list[ContactInfo],
        pin_code: str,
        duration_minutes: int | None = None,
    ) -> dict[str, Any]:
        """Returns {sessionId, expiresAt, trackingUrl}."""
        body: dict[str, Any] = {
            "userFirstName": user_first_name,
            "contacts": [{"name": c.name, "phone": c.phone} for c in contacts],
            "pinCode": pin_code,
        }
        if duration_minutes is not None:
            body["durationMinutes"] = duration_minutes
        return await self._request("POST", "/session", json=body)

    async def get_session(self, session_id: str) -> dict[str, Any] | None:
        """Public session info, or None if the server does not know the id."""
        try:
            return await self._request("GET", f"/session/{session_id}")
        except ApiError as exc:
            if exc.status_code == 404:
                return None
            raise

    async def get_track(self, session_id: str) -> list[dict[str, Any]]:
        data = await self._request("GET", f"/session/{session_id}/track")
        return data.get("positions", [])

    async def deactivate_session(self, session_id: str, pin: str) -> None:
        await self._request("POST", f"/session/{session_id}/deactivate", json={"pin": pin})

    async def send_alert(self, session_id: str) -> dict[str, Any]:
        """Returns {sent, failed, message}."""
        return await self._request("POST", "/alert/send", json={"sessionId": session_id})

    async def aclose(self) -> None:
        await self._client.aclose()
