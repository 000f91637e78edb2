"""Alert session model - one emergency episode."""

from __future__ import annotations

from sqlalchemy import BigInteger, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from safetrail.db.base import Base
from safetrail.models.session_contact import SessionContact


class AlertSession(Base):
    """Emergency session triggered from the mobile client."""

    __tablename__ = "sessions"
    __table_args__ = (Index("ix_sessions_status_expires_at", "status", "expires_at"),)

    session_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")  # active | expired | deactivated
    pin_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    # Timestamps are milliseconds since epoch
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_gps_update: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    alert_sent_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    contacts: Mapped[list[SessionContact]] = relationship(
        order_by=SessionContact.position,
        cascade="all, delete-orphan",
        lazy="selectin",
    )
