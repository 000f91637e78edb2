"""Session store: session records, status transitions, expiry and PIN checks."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Iterable, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from safetrail.core.config import settings
from safetrail.core.errors import SessionNotFoundError
from safetrail.core.security import hash_pin, verify_pin
from safetrail.core.session_policies import (
    REASON_INCORRECT_PIN,
    REASON_NOT_FOUND,
    STATUS_ACTIVE,
    STATUS_DEACTIVATED,
    STATUS_EXPIRED,
    TERMINAL_STATUSES,
)
from safetrail.models.alert_session import AlertSession
from safetrail.models.gps_position import GpsPosition
from safetrail.models.session_contact import SessionContact
from safetrail.schemas.gps import GpsPositionSchema

logger = logging.getLogger(__name__)


class ContactLike(Protocol):
    name: str
    phone: str


@dataclass
class ValidationResult:
    """Outcome of a session validity check."""

    valid: bool
    session: AlertSession | None
    reason: str | None = None  # not-found | expired | deactivated


@dataclass
class DeactivationResult:
    success: bool
    reason: str | None = None  # not-found | incorrect-pin


def now_ms() -> int:
    """Current time in milliseconds since epoch."""
    return int(time.time() * 1000)


def create_session(
    db: Session,
    user_first_name: str,
    contacts: Iterable[ContactLike],
    pin_code: str,
    duration_minutes: int | None = None,
) -> AlertSession:
    """Create an active session. Input shape is validated by the caller."""
    session_id = str(uuid.uuid4())
    created_at = now_ms()
    minutes = duration_minutes or settings.default_session_minutes

    session = AlertSession(
        session_id=session_id,
        user_first_name=user_first_name,
        status=STATUS_ACTIVE,
        pin_hash=hash_pin(pin_code),
        created_at=created_at,
        expires_at=created_at + minutes * 60_000,
    )
    session.contacts = [
        SessionContact(id=str(uuid.uuid4()), position=i, name=c.name, phone=c.phone)
        for i, c in enumerate(contacts)
    ]
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info(
        "Session created: session=%s user=%s contacts=%s expires_at=%s",
        session_id,
        user_first_name,
        len(session.contacts),
        session.expires_at,
    )
    return session


def get_session(db: Session, session_id: str) -> AlertSession | None:
    """Get session by id."""
    return db.get(AlertSession, session_id)


def _transition_from_active(db: Session, session_id: str, status: str) -> bool:
    """Move an active session to a terminal status.

    The update is conditional on the stored status still being active, so
    concurrent transitions cannot leave a terminal state. Returns True if
    this call performed the transition.
    """
    result = db.execute(
        update(AlertSession)
        .where(AlertSession.session_id == session_id, AlertSession.status == STATUS_ACTIVE)
        .values(status=status)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def is_session_valid(db: Session, session_id: str) -> ValidationResult:
    """Check whether a session is active, lazily expiring it if overdue."""
    session = get_session(db, session_id)
    if session is None:
        return ValidationResult(valid=False, session=None, reason=REASON_NOT_FOUND)
    if session.status in TERMINAL_STATUSES:
        return ValidationResult(valid=False, session=session, reason=session.status)

    if now_ms() > session.expires_at:
        if _transition_from_active(db, session_id, STATUS_EXPIRED):
            logger.info("Session expired: session=%s", session_id)
        db.refresh(session)
        return ValidationResult(valid=False, session=session, reason=session.status)

    return ValidationResult(valid=True, session=session)


def deactivate_session(db: Session, session_id: str, pin: str) -> DeactivationResult:
    """Deactivate a session if the PIN matches.

    A correct PIN on a session that is already terminal is a no-op success.
    """
    session = get_session(db, session_id)
    if session is None:
        logger.warning("Deactivation for unknown session=%s", session_id)
        return DeactivationResult(success=False, reason=REASON_NOT_FOUND)

    if not verify_pin(pin, session.pin_hash):
        logger.warning("Deactivation with incorrect PIN: session=%s", session_id)
        return DeactivationResult(success=False, reason=REASON_INCORRECT_PIN)

    if session.status not in TERMINAL_STATUSES and _transition_from_active(db, session_id, STATUS_DEACTIVATED):
        logger.info("Session deactivated: session=%s", session_id)
    else:
        db.refresh(session)
        logger.info("Deactivation no-op: session=%s already %s", session_id, session.status)
    return DeactivationResult(success=True)


def record_gps_position(db: Session, position: GpsPositionSchema) -> bool:
    """Append a GPS sample and bump the session's last_gps_update.

    Writes to terminal sessions are accepted. A sample whose
    (session_id, timestamp) already exists is ignored and False is returned.
    """
    session = get_session(db, position.session_id)
    if session is None:
        raise SessionNotFoundError(position.session_id)

    key = (position.session_id, position.timestamp)
    if db.get(GpsPosition, key) is not None:
        logger.debug("Duplicate GPS sample ignored: session=%s ts=%s", *key)
        return False

    db.add(GpsPosition(**position.model_dump()))
    if session.last_gps_update is None or position.timestamp > session.last_gps_update:
        session.last_gps_update = position.timestamp
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.debug("Duplicate GPS sample ignored: session=%s ts=%s", *key)
        return False
    return True


def get_session_track(db: Session, session_id: str, limit: int | None = None) -> list[GpsPosition]:
    """Most recent positions of a session, ascending by timestamp."""
    limit = limit or settings.track_limit
    stmt = (
        select(GpsPosition)
        .where(GpsPosition.session_id == session_id)
        .order_by(GpsPosition.timestamp.desc())
        .limit(limit)
    )
    latest = list(db.execute(stmt).scalars().all())
    latest.reverse()
    return latest


def mark_alert_sent(db: Session, session_id: str, sent_at: int) -> None:
    """Stamp alert_sent_at on a session."""
    db.execute(
        update(AlertSession)
        .where(AlertSession.session_id == session_id)
        .values(alert_sent_at=sent_at)
        .execution_options(synchronize_session=False)
    )
    db.commit()


def sweep_expired_sessions(db: Session) -> int:
    """Expire every active session past its expires_at. Returns the count."""
    result = db.execute(
        update(AlertSession)
        .where(AlertSession.status == STATUS_ACTIVE, AlertSession.expires_at < now_ms())
        .values(status=STATUS_EXPIRED)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    count = result.rowcount or 0
    logger.info("Expired sessions swept: count=%s", count)
    return count
