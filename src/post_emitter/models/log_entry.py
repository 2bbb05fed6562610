"""SQLAlchemy model for persisted log records."""

from datetime import datetime

from sqlalchemy import VARCHAR, BigInteger, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from post_emitter.db.session import Base
from post_emitter.db.time import utcnow


class LogEntry(Base):
    """Append-only log line written by the database log handler."""

    __tablename__ = "logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    level: Mapped[str] = mapped_column(VARCHAR(20), nullable=False, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON object
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
    actor_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
