"""Session request and response schemas."""

from __future__ import annotations

import re
from typing import Annotated

from pydantic import AfterValidator, AliasChoices, Field, field_validator, model_validator

from safetrail.core.config import settings
from safetrail.core.session_policies import MAX_CONTACTS, MIN_CONTACTS, PHONE_PATTERN, PIN_PATTERN
from safetrail.schemas.base import CamelModel

_PHONE_RE = re.compile(PHONE_PATTERN)
_PIN_RE = re.compile(PIN_PATTERN)


def _check_pin(v: str) -> str:
    if not _PIN_RE.fullmatch(v):
        raise ValueError("PIN must be exactly 4 digits")
    return v


PinCode = Annotated[str, AfterValidator(_check_pin)]


class ContactIn(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str

    @model_validator(mode="after")
    def check_phone(self) -> "ContactIn":
        if not _PHONE_RE.fullmatch(self.phone):
            raise ValueError(
                f"Invalid phone number for {self.name}. Expected E.164 format, e.g. +33612345678"
            )
        return self


class ContactOut(CamelModel):
    id: str
    name: str
    phone: str


class SessionCreate(CamelModel):
    user_first_name: str = Field(..., max_length=100)
    contacts: list[ContactIn] = Field(..., min_length=MIN_CONTACTS, max_length=MAX_CONTACTS)
    pin_code: PinCode
    duration_minutes: int | None = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("durationMinutes", "sessionDurationMinutes", "duration_minutes"),
    )

    @field_validator("user_first_name")
    @classmethod
    def first_name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("First name is required")
        return v

    @field_validator("duration_minutes")
    @classmethod
    def duration_within_max(cls, v: int | None) -> int | None:
        if v is not None and v > settings.max_session_minutes:
            raise ValueError(f"Session duration cannot exceed {settings.max_session_minutes} minutes")
        return v


class SessionCreated(CamelModel):
    session_id: str
    expires_at: int
    tracking_url: str


class SessionPublic(CamelModel):
    """Session as shown to the tracking page. Never carries the PIN hash."""

    session_id: str
    user_first_name: str
    status: str
    valid: bool
    reason: str | None = None
    created_at: int
    expires_at: int
    last_gps_update: int | None = None


class DeactivateRequest(CamelModel):
    pin: PinCode


class DeactivateResponse(CamelModel):
    success: bool
    message: str
