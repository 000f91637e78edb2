"""Twilio notifier - WhatsApp and SMS delivery over the Twilio REST API.

Channel selection:
  1. Twilio Lookup v2 (line_type_intelligence) classifies the number
  2. mobile / personal lines get WhatsApp (approved Meta template if configured)
  3. anything else, or a failed lookup, falls back to plain SMS
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from twilio.base.exceptions import TwilioException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from safetrail.core.config import Settings, build_tracking_url, settings as default_settings
from safetrail.core.errors import NotificationError
from safetrail.core.session_policies import CHANNEL_SMS, CHANNEL_WHATSAPP
from safetrail.models.alert_session import AlertSession
from safetrail.models.session_contact import SessionContact

logger = logging.getLogger(__name__)

WHATSAPP_LINE_TYPES = {"mobile", "personal"}


class NotificationProvider(Protocol):
    """Delivery channel used by the alert dispatcher."""

    def detect_channel(self, phone: str) -> str:
        ...

    def send(self, channel: str, contact: SessionContact, session: AlertSession) -> str:
        """Deliver the alert and return the provider message id."""
        ...


def build_alert_body(session: AlertSession, channel: str) -> str:
    tracking_url = build_tracking_url(session.session_id)
    if channel == CHANNEL_WHATSAPP:
        return (
            f"SAFETRAIL ALERT\n{session.user_first_name} needs help!\n"
            f"Follow their live position:\n{tracking_url}\n\n"
            "Open the link or call 112 (emergency services)"
        )
    return (
        f"SAFETRAIL ALERT\n{session.user_first_name} needs help!\n"
        f"Follow their position: {tracking_url}\n\nEmergency: 112"
    )


class TwilioNotifier:
    """NotificationProvider backed by Twilio Lookup and Messages."""

    def __init__(self, config: Settings | None = None, client: Any = None) -> None:
        self.config = config or default_settings
        self._client = client

    @property
    def client(self) -> Client:
        """Twilio REST client, created on first use."""
        if self._client is None:
            if not self.config.twilio_account_sid or not self.config.twilio_auth_token:
                raise NotificationError("Twilio credentials are not configured")
            self._client = Client(
                self.config.twilio_account_sid,
                self.config.twilio_auth_token,
                http_client=TwilioHttpClient(timeout=self.config.twilio_timeout_seconds),
            )
        return self._client

    def detect_channel(self, phone: str) -> str:
        """Return 'whatsapp' for mobile lines, 'sms' otherwise or on lookup failure."""
        if not self.config.twilio_lookup_enabled or not self.config.twilio_whatsapp_number:
            return CHANNEL_SMS
        try:
            lookup = self.client.lookups.v2.phone_numbers(phone).fetch(fields="line_type_intelligence")
            line_type = (lookup.line_type_intelligence or {}).get("type")
        except (TwilioException, NotificationError) as exc:
            logger.warning("Lookup failed for %s, falling back to SMS: %s", phone, exc)
            return CHANNEL_SMS

        logger.debug("Lookup %s: line_type=%s", phone, line_type)
        return CHANNEL_WHATSAPP if line_type in WHATSAPP_LINE_TYPES else CHANNEL_SMS

    def send(self, channel: str, contact: SessionContact, session: AlertSession) -> str:
        if channel == CHANNEL_WHATSAPP:
            params = self._whatsapp_params(contact, session)
        else:
            if not self.config.twilio_phone_number:
                raise NotificationError("Twilio SMS sender number is not configured")
            params = {
                "from_": self.config.twilio_phone_number,
                "to": contact.phone,
                "body": build_alert_body(session, CHANNEL_SMS),
            }

        try:
            message = self.client.messages.create(**params)
        except TwilioException as exc:
            raise NotificationError(f"Twilio {channel} send failed: {exc}") from exc

        logger.info("%s sent: to=%s sid=%s", channel, contact.phone, message.sid)
        return message.sid

    def _whatsapp_params(self, contact: SessionContact, session: AlertSession) -> dict[str, str]:
        params = {
            "from_": self.config.twilio_whatsapp_number,
            "to": f"whatsapp:{contact.phone}",
        }
        if self.config.whatsapp_template_sid:
            # Pre-approved utility template: {{1}} first name, {{2}} tracking link
            params["content_sid"] = self.config.whatsapp_template_sid
            params["content_variables"] = json.dumps(
                {"1": session.user_first_name, "2": build_tracking_url(session.session_id)}
            )
        else:
            # Free-form body only works in the Twilio sandbox
            params["body"] = build_alert_body(session, CHANNEL_WHATSAPP)
        return params
