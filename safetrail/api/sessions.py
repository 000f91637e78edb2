"""Alert session API."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from safetrail.core.config import build_tracking_url, settings
from safetrail.core.deps import get_relay
from safetrail.core.rate_limit import limiter
from safetrail.core.relay import SessionRelay
from safetrail.db.session import get_db
from safetrail.schemas.gps import GpsPositionSchema, TrackResponse
from safetrail.schemas.session import (
    DeactivateRequest,
    DeactivateResponse,
    SessionCreate,
    SessionCreated,
    SessionPublic,
)
from safetrail.services.session_service import (
    create_session,
    deactivate_session,
    get_session,
    get_session_track,
    is_session_valid,
)

router = APIRouter(prefix="/session", tags=["session"])


@router.post("", response_model=SessionCreated, status_code=status.HTTP_201_CREATED)
@limiter.limit(
    settings.rate_limit_session_create,
    error_message="Too many sessions created. Try again in an hour.",
)
def create(
    request: Request,
    data: SessionCreate,
    db: Session = Depends(get_db),
):
    """Start an alert session for the mobile client."""
    session = create_session(
        db,
        user_first_name=data.user_first_name,
        contacts=data.contacts,
        pin_code=data.pin_code,
        duration_minutes=data.duration_minutes,
    )
    return SessionCreated(
        session_id=session.session_id,
        expires_at=session.expires_at,
        tracking_url=build_tracking_url(session.session_id),
    )


@router.get("/{session_id}", response_model=SessionPublic, response_model_exclude_none=True)
def read(session_id: str, db: Session = Depends(get_db)):
    """Public session info for the tracking page. Lazily expires overdue sessions."""
    result = is_session_valid(db, session_id)
    session = result.session
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return SessionPublic(
        session_id=session.session_id,
        user_first_name=session.user_first_name,
        status=session.status,
        valid=result.valid,
        reason=result.reason,
        created_at=session.created_at,
        expires_at=session.expires_at,
        last_gps_update=session.last_gps_update,
    )


@router.get("/{session_id}/track", response_model=TrackResponse, response_model_exclude_none=True)
def track(session_id: str, db: Session = Depends(get_db)):
    """Recorded GPS trail, oldest first, bounded to the most recent positions."""
    positions = get_session_track(db, session_id)
    return TrackResponse(
        session_id=session_id,
        positions=[GpsPositionSchema.model_validate(p) for p in positions],
    )


@router.post("/{session_id}/deactivate", response_model=DeactivateResponse)
def deactivate(
    session_id: str,
    data: DeactivateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    relay: SessionRelay = Depends(get_relay),
):
    """End a session with its PIN and tell the room."""
    result = deactivate_session(db, session_id, data.pin)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=result.reason)

    session = get_session(db, session_id)
    background_tasks.add_task(relay.broadcast_status, session_id, session.status)
    return DeactivateResponse(success=True, message="Session deactivated")
