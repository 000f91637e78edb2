"""Realtime signaling schemas.

Signal bodies (SDP, ICE candidates) are relayed verbatim; only the
routing fields are validated.
"""

from typing import Literal

from pydantic import ConfigDict, Field

from safetrail.schemas.base import CamelModel


class SignalEnvelope(CamelModel):
    model_config = ConfigDict(extra="allow")

    session_id: str = Field(..., min_length=1)
    from_: Literal["app", "web"] | None = Field(default=None, alias="from")


class JoinRequest(CamelModel):
    session_id: str = Field(..., min_length=1)
