"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Request

from safetrail.core.relay import SessionRelay
from safetrail.services.twilio_service import NotificationProvider, TwilioNotifier


@lru_cache
def get_notifier() -> NotificationProvider:
    """Notification provider used by the alert dispatcher."""
    return TwilioNotifier()


def get_relay(request: Request) -> SessionRelay:
    """Relay instance owned by the running application."""
    return request.app.state.relay
