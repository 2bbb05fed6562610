"""SQLAlchemy models for delivery reports and one-shot notifications."""

from datetime import datetime

from sqlalchemy import VARCHAR, BigInteger, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from post_emitter.db.session import Base
from post_emitter.db.time import utcnow


class DeliveryReport(Base):
    """Permanent record of one job's outcome across its receivers."""

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    job_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    action: Mapped[str] = mapped_column(VARCHAR(20), nullable=False, default="send")
    report_data: Mapped[str] = mapped_column(Text, nullable=False)  # Serialized Report
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )


class ReportNotification(Base):
    """Short-lived copy of the latest report, consumed on first read."""

    __tablename__ = "report_notifications"

    post_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    report_data: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
