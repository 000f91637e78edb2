"""Alert dispatcher: notify every contact of a session, one at a time."""

from __future__ import annotations

import logging
import time
from typing import Callable

from sqlalchemy.orm import Session

from safetrail.core.config import settings
from safetrail.core.session_policies import ALERT_FAILED, ALERT_SENT, CHANNEL_SMS
from safetrail.models.alert import Alert
from safetrail.models.alert_session import AlertSession
from safetrail.services.session_service import mark_alert_sent, now_ms
from safetrail.services.twilio_service import NotificationProvider

logger = logging.getLogger(__name__)


def send_alerts_to_contacts(
    db: Session,
    session: AlertSession,
    notifier: NotificationProvider,
    delay_seconds: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> list[Alert]:
    """Send the alert to each contact sequentially.

    A failure for one contact is recorded as a failed Alert and the batch
    continues. alert_sent_at is stamped once after the loop whatever the
    individual outcomes were. Sending is not aborted if the session is
    deactivated mid-batch.
    """
    delay = settings.alert_send_delay_seconds if delay_seconds is None else delay_seconds
    alerts: list[Alert] = []

    for index, contact in enumerate(list(session.contacts)):
        if index > 0 and delay > 0:
            # Provider rate limits
            sleep(delay)

        channel = CHANNEL_SMS
        try:
            channel = notifier.detect_channel(contact.phone)
            message_id = notifier.send(channel, contact, session)
        except Exception:
            logger.exception("Alert delivery failed: session=%s to=%s", session.session_id, contact.phone)
            alert = Alert(
                session_id=session.session_id,
                contact_phone=contact.phone,
                channel=channel,
                status=ALERT_FAILED,
                sent_at=now_ms(),
            )
        else:
            alert = Alert(
                session_id=session.session_id,
                contact_phone=contact.phone,
                channel=channel,
                status=ALERT_SENT,
                provider_message_id=message_id,
                sent_at=now_ms(),
            )

        db.add(alert)
        db.commit()
        alerts.append(alert)

    mark_alert_sent(db, session.session_id, now_ms())

    sent = sum(1 for a in alerts if a.status == ALERT_SENT)
    logger.info("Alerts dispatched: session=%s sent=%s/%s", session.session_id, sent, len(alerts))
    return alerts


def summarize(alerts: list[Alert]) -> tuple[int, int, str]:
    """Return (sent, failed, human readable message) for a dispatched batch."""
    sent = sum(1 for a in alerts if a.status == ALERT_SENT)
    failed = sum(1 for a in alerts if a.status == ALERT_FAILED)
    message = f"{sent} alert(s) sent"
    if failed:
        message += f", {failed} failed"
    return sent, failed, message
