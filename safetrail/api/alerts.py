"""Alert dispatch API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from safetrail.core.config import settings
from safetrail.core.deps import get_notifier
from safetrail.core.rate_limit import limiter
from safetrail.db.session import get_db
from safetrail.schemas.alert import AlertSendRequest, AlertSendResponse
from safetrail.services.alert_service import send_alerts_to_contacts, summarize
from safetrail.services.session_service import is_session_valid
from safetrail.services.twilio_service import NotificationProvider

router = APIRouter(prefix="/alert", tags=["alert"])


@router.post("/send", response_model=AlertSendResponse)
@limiter.limit(
    settings.rate_limit_alert_send,
    error_message="Too many alerts sent. Try again in an hour.",
)
def send_alert(
    request: Request,
    data: AlertSendRequest,
    db: Session = Depends(get_db),
    notifier: NotificationProvider = Depends(get_notifier),
):
    """Notify every contact of an active session.

    Partial or total provider failure still answers 200 with the counts.
    """
    result = is_session_valid(db, data.session_id)
    if not result.valid:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=result.reason)

    alerts = send_alerts_to_contacts(db, result.session, notifier)
    sent, failed, message = summarize(alerts)
    return AlertSendResponse(sent=sent, failed=failed, message=message)
