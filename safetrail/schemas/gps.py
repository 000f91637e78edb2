"""GPS position schemas."""

from pydantic import Field

from safetrail.schemas.base import CamelModel


class GpsPositionSchema(CamelModel):
    session_id: str = Field(..., min_length=1)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: float = Field(ge=0)  # meters
    speed: float | None = None  # m/s
    heading: float | None = None  # degrees
    battery: int | None = Field(default=None, ge=0, le=100)
    timestamp: int = Field(ge=0)  # ms since epoch


class TrackResponse(CamelModel):
    session_id: str
    positions: list[GpsPositionSchema]
