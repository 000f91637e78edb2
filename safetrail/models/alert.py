"""Alert delivery attempt model."""

from sqlalchemy import BigInteger, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from safetrail.db.base import Base


class Alert(Base):
    """One delivery attempt to one contact. Never updated after insert."""

    __tablename__ = "alerts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("sessions.session_id", ondelete="CASCADE"), nullable=False, index=True
    )
    contact_phone: Mapped[str] = mapped_column(String(20), nullable=False)
    channel: Mapped[str] = mapped_column(String(20), nullable=False)  # whatsapp | sms
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # sent | failed | delivered
    provider_message_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sent_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
