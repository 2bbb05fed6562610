"""SQLAlchemy model for queued replication jobs."""

from datetime import datetime

from sqlalchemy import VARCHAR, BigInteger, DateTime, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from post_emitter.db.session import Base
from post_emitter.db.time import utcnow

JOB_PENDING = "pending"
JOB_PROCESSING = "processing"
JOB_COMPLETED = "completed"
JOB_CANCELLED = "cancelled"
JOB_FAILED = "failed"

JOB_STATUSES = (JOB_PENDING, JOB_PROCESSING, JOB_COMPLETED, JOB_CANCELLED, JOB_FAILED)


class ReplicationJob(Base):
    """One post event waiting to be delivered to a list of receivers."""

    __tablename__ = "replication_queue"
    __table_args__ = (Index("ix_replication_queue_status_created", "status", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    action: Mapped[str] = mapped_column(VARCHAR(20), nullable=False, default="send")
    payload: Mapped[str] = mapped_column(Text, nullable=False)  # Serialized JobEnvelope
    receivers: Mapped[str] = mapped_column(Text, nullable=False)  # Serialized snapshots
    status: Mapped[str] = mapped_column(VARCHAR(20), nullable=False, default=JOB_PENDING)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    # Set when a processing cycle claims the job; cleared if the claim goes stale.
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
