"""SQLAlchemy model for configured receiver endpoints."""

from datetime import datetime

from sqlalchemy import VARCHAR, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from post_emitter.db.session import Base
from post_emitter.db.time import utcnow

RECEIVER_ACTIVE = "active"
RECEIVER_INACTIVE = "inactive"


class Receiver(Base):
    """A remote site that accepts replicated posts."""

    __tablename__ = "receivers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(VARCHAR(255), nullable=False)
    url: Mapped[str] = mapped_column(VARCHAR(500), nullable=False)
    # Ciphertext produced by the credential vault; never plaintext.
    auth_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        VARCHAR(20), nullable=False, default=RECEIVER_ACTIVE, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
