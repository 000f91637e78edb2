"""Alert dispatch schemas."""

from pydantic import Field

from safetrail.schemas.base import CamelModel


class AlertSendRequest(CamelModel):
    session_id: str = Field(..., min_length=1)


class AlertSendResponse(CamelModel):
    success: bool = True
    sent: int
    failed: int
    message: str
