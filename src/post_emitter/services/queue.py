"""Durable replication queue stored in the ``replication_queue`` table."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from post_emitter.db.session import SessionFactory
from post_emitter.db.time import days_ago, seconds_from_now, utcnow
from post_emitter.models import ReplicationJob
from post_emitter.models.queue import (
    JOB_CANCELLED,
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_PENDING,
    JOB_PROCESSING,
    JOB_STATUSES,
)
from post_emitter.schemas.operations import (
    JobEnvelope,
    Operation,
    ReceiverSnapshot,
    receiver_snapshots_adapter,
)
from post_emitter.schemas.queue import QueueStats

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10


class ReplicationQueue:
    """Persistence operations over queued replication jobs.

    Jobs move ``pending -> processing -> completed`` (or ``failed`` when the
    stored row cannot be decoded). Only pending jobs can be cancelled, and
    only completed jobs are removed by :meth:`cleanup`.

    A claim is identified by the row's ``claimed_at``. Holders keep it fresh
    with :meth:`renew_claim`; a claim left alone past the timeout is released
    by :meth:`release_stale_claims` and can then be won by another cycle.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def enqueue(
        self,
        operation: Operation,
        receivers: Sequence[ReceiverSnapshot],
        post_id: int | None = None,
        action: str | None = None,
    ) -> bool:
        """Persist a job. Returns False, after logging, if the write fails."""
        post_id = post_id if post_id is not None else operation.post_id
        action = action or operation.action
        job = ReplicationJob(
            post_id=post_id,
            action=action,
            payload=JobEnvelope(operation=operation).model_dump_json(),
            receivers=receiver_snapshots_adapter.dump_json(list(receivers)).decode("utf-8"),
            status=JOB_PENDING,
        )

        try:
            with self._session_factory() as db:
                db.add(job)
                db.commit()
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to enqueue %s for post %s: %s",
                action,
                post_id,
                exc,
                extra={"context": {"post_id": post_id, "action": action}},
            )
            return False

        logger.info(
            "Queued %s for post %s to %d receiver(s)",
            action,
            post_id,
            len(receivers),
            extra={"context": {"post_id": post_id, "action": action, "job_id": job.id}},
        )
        return True

    def get(self, job_id: int) -> ReplicationJob | None:
        with self._session_factory() as db:
            return db.get(ReplicationJob, job_id)

    def dequeue_batch(self, limit: int = DEFAULT_BATCH_SIZE) -> list[ReplicationJob]:
        """Return up to ``limit`` pending jobs, oldest first."""
        if limit <= 0:
            return []
        with self._session_factory() as db:
            stmt = (
                select(ReplicationJob)
                .where(ReplicationJob.status == JOB_PENDING)
                .order_by(ReplicationJob.created_at.asc(), ReplicationJob.id.asc())
                .limit(limit)
            )
            return list(db.scalars(stmt))

    def claim_batch(self, limit: int = DEFAULT_BATCH_SIZE) -> list[ReplicationJob]:
        """Move up to ``limit`` pending jobs to processing and return the ones won.

        Each row is claimed with a conditional update, so a job read by two
        overlapping cycles is handed to exactly one of them.
        """
        return [job for job in self.dequeue_batch(limit) if self._claim(job)]

    def claim_next(self) -> ReplicationJob | None:
        """Claim the oldest pending job, or return None when none is left."""
        while True:
            candidates = self.dequeue_batch(1)
            if not candidates:
                return None
            if self._claim(candidates[0]):
                return candidates[0]

    def renew_claim(self, job: ReplicationJob) -> bool:
        """Refresh ``claimed_at`` while ``job`` is still held by this claim.

        Returns False when the claim was released or taken by another cycle.
        """
        claimed_at = utcnow()
        with self._session_factory() as db:
            result = db.execute(
                update(ReplicationJob)
                .where(*self._held_by(job))
                .values(claimed_at=claimed_at)
            )
            db.commit()
        if result.rowcount != 1:
            return False
        job.claimed_at = claimed_at
        return True

    def _claim(self, job: ReplicationJob) -> bool:
        claimed_at = utcnow()
        with self._session_factory() as db:
            result = db.execute(
                update(ReplicationJob)
                .where(ReplicationJob.id == job.id, ReplicationJob.status == JOB_PENDING)
                .values(status=JOB_PROCESSING, claimed_at=claimed_at)
            )
            db.commit()
        if result.rowcount != 1:
            logger.debug("Job %s was claimed by another cycle", job.id)
            return False
        job.status = JOB_PROCESSING
        job.claimed_at = claimed_at
        return True

    @staticmethod
    def _held_by(job: ReplicationJob) -> tuple:
        return (
            ReplicationJob.id == job.id,
            ReplicationJob.status == JOB_PROCESSING,
            ReplicationJob.claimed_at == job.claimed_at,
        )

    def release_stale_claims(self, timeout_seconds: float) -> int:
        """Return jobs stuck in processing longer than ``timeout_seconds`` to pending."""
        cutoff = seconds_from_now(-timeout_seconds)
        with self._session_factory() as db:
            result = db.execute(
                update(ReplicationJob)
                .where(
                    ReplicationJob.status == JOB_PROCESSING,
                    ReplicationJob.claimed_at < cutoff,
                )
                .values(status=JOB_PENDING, claimed_at=None)
            )
            db.commit()
        if result.rowcount:
            logger.warning("Released %d stale job claim(s)", result.rowcount)
        return result.rowcount

    def mark_completed(self, job: ReplicationJob | int) -> bool:
        return self._finish(job, JOB_COMPLETED)

    def mark_failed(self, job: ReplicationJob | int) -> bool:
        return self._finish(job, JOB_FAILED)

    def _finish(self, job: ReplicationJob | int, status: str) -> bool:
        """Close a job. A claimed job is only closed while the claim still holds."""
        if not isinstance(job, ReplicationJob):
            conditions = (ReplicationJob.id == job,)
        elif job.claimed_at is None:
            conditions = (ReplicationJob.id == job.id,)
        else:
            conditions = self._held_by(job)
        with self._session_factory() as db:
            result = db.execute(
                update(ReplicationJob)
                .where(*conditions)
                .values(status=status, processed_at=utcnow())
            )
            db.commit()
        return result.rowcount == 1

    def cancel(self, job_id: int) -> bool:
        """Cancel a pending job. Returns False if it is not pending."""
        with self._session_factory() as db:
            result = db.execute(
                update(ReplicationJob)
                .where(ReplicationJob.id == job_id, ReplicationJob.status == JOB_PENDING)
                .values(status=JOB_CANCELLED)
            )
            db.commit()
        cancelled = result.rowcount == 1
        if cancelled:
            logger.info("Cancelled job %s", job_id, extra={"context": {"job_id": job_id}})
        return cancelled

    def cleanup(self, retention_days: int = 7) -> int:
        """Delete completed jobs processed more than ``retention_days`` ago."""
        cutoff = days_ago(retention_days)
        with self._session_factory() as db:
            result = db.execute(
                delete(ReplicationJob).where(
                    ReplicationJob.status == JOB_COMPLETED,
                    ReplicationJob.processed_at < cutoff,
                )
            )
            db.commit()
        if result.rowcount:
            logger.info("Removed %d completed job(s) from the queue", result.rowcount)
        return result.rowcount

    def stats(self) -> QueueStats:
        with self._session_factory() as db:
            rows = db.execute(
                select(ReplicationJob.status, func.count(ReplicationJob.id)).group_by(
                    ReplicationJob.status
                )
            ).all()

        counts = {status: 0 for status in JOB_STATUSES}
        for status, count in rows:
            counts[status] = count
        return QueueStats(**counts, total=sum(counts.values()))
