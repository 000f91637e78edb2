"""SQLAlchemy models."""

from __future__ import annotations

from safetrail.models.alert import Alert
from safetrail.models.alert_session import AlertSession
from safetrail.models.gps_position import GpsPosition
from safetrail.models.session_contact import SessionContact

__all__ = [
    "Alert",
    "AlertSession",
    "GpsPosition",
    "SessionContact",
]
