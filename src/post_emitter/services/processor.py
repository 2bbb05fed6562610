"""Queue processing: one delivery cycle plus the periodic background worker."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from post_emitter.models import ReplicationJob
from post_emitter.schemas.delivery import DeliveryResult
from post_emitter.schemas.operations import JobEnvelope, receiver_snapshots_adapter
from post_emitter.schemas.queue import CleanupResponse
from post_emitter.services.crypto import CredentialVault
from post_emitter.services.delivery import DeliveryClient
from post_emitter.services.logs import LogStore
from post_emitter.services.queue import ReplicationQueue
from post_emitter.services.receivers import ReceiverCredentials
from post_emitter.services.reports import ReportStore

logger = logging.getLogger(__name__)


class QueueProcessor:
    """Claims pending jobs and delivers each one to its stored receivers."""

    def __init__(
        self,
        queue: ReplicationQueue,
        vault: CredentialVault,
        delivery: DeliveryClient,
        reports: ReportStore,
        log_store: LogStore,
        *,
        batch_size: int = 10,
        claim_timeout_seconds: float = 600,
        queue_retention_days: int = 7,
        log_retention_days: int = 30,
    ) -> None:
        self._queue = queue
        self._vault = vault
        self._delivery = delivery
        self._reports = reports
        self._log_store = log_store
        self._batch_size = batch_size
        self._claim_timeout_seconds = claim_timeout_seconds
        self._queue_retention_days = queue_retention_days
        self._log_retention_days = log_retention_days

    async def process_batch(self) -> int:
        """Run one processing cycle and return the number of jobs handled.

        Jobs are claimed one at a time, right before delivery, and the claim
        is renewed while the job's receivers are contacted. A database error
        on one job is logged and the cycle moves on to the next job.
        """
        self._queue.release_stale_claims(self._claim_timeout_seconds)

        handled = 0
        while handled < self._batch_size:
            job = self._queue.claim_next()
            if job is None:
                break
            handled += 1
            try:
                await self._process_claimed(job)
            except SQLAlchemyError as exc:
                logger.error(
                    "Job %s hit a database error and stays claimed until it expires: %s",
                    job.id,
                    exc,
                    extra={"context": {"job_id": job.id, "post_id": job.post_id}},
                )

        logger.debug("Handled %d job(s)", handled)
        return handled

    async def _process_claimed(self, job: ReplicationJob) -> None:
        heartbeat = asyncio.create_task(self._hold_claim(job))
        try:
            await self._process_job(job)
        finally:
            heartbeat.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await heartbeat

    async def _hold_claim(self, job: ReplicationJob) -> None:
        """Renew ``job``'s claim until cancelled or until the claim is lost."""
        interval = self._claim_timeout_seconds / 3
        while True:
            await asyncio.sleep(interval)
            try:
                if not self._queue.renew_claim(job):
                    return
            except SQLAlchemyError as exc:
                logger.warning("Could not renew the claim on job %s: %s", job.id, exc)

    def _lost_claim(self, job: ReplicationJob) -> None:
        logger.warning(
            "Job %s lost its claim to another cycle",
            job.id,
            extra={"context": {"job_id": job.id, "post_id": job.post_id}},
        )

    async def _process_job(self, job: ReplicationJob) -> None:
        try:
            envelope = JobEnvelope.model_validate_json(job.payload)
            snapshots = receiver_snapshots_adapter.validate_json(job.receivers)
        except (ValidationError, ValueError) as exc:
            self._queue.mark_failed(job)
            logger.error(
                "Job %s could not be decoded and was marked failed: %s",
                job.id,
                exc,
                extra={"context": {"job_id": job.id, "post_id": job.post_id}},
            )
            return

        operation = envelope.operation
        results: list[DeliveryResult] = []
        for snapshot in snapshots:
            # Never contact a receiver for a job this cycle no longer holds.
            if not self._queue.renew_claim(job):
                self._lost_claim(job)
                return
            receiver = ReceiverCredentials(
                id=snapshot.id,
                name=snapshot.name,
                url=snapshot.url,
                auth_token=self._vault.decrypt(snapshot.auth_token),
            )
            results.append(await self._delivery.dispatch(operation, receiver))

        if not self._queue.mark_completed(job):
            self._lost_claim(job)
        report = self._reports.record(
            job.post_id, results, action=operation.action, job_id=job.id
        )

        summary = report.summary
        context = {
            "job_id": job.id,
            "post_id": job.post_id,
            "action": operation.action,
            "summary": summary.model_dump(),
        }
        if summary.errors:
            logger.warning(
                "Job %s (%s post %s) finished with %d of %d receiver(s) failing",
                job.id,
                operation.action,
                job.post_id,
                summary.errors,
                summary.total,
                extra={"context": context},
            )
        else:
            logger.info(
                "Job %s (%s post %s) delivered to %d receiver(s)",
                job.id,
                operation.action,
                job.post_id,
                summary.total,
                extra={"context": context},
            )

    def run_cleanup(self) -> CleanupResponse:
        """Apply the queue, log and notification retention policies."""
        cleanup = CleanupResponse(
            jobs_removed=self._queue.cleanup(self._queue_retention_days),
            logs_removed=self._log_store.cleanup(self._log_retention_days),
            notifications_removed=self._reports.purge_expired_notifications(),
        )
        logger.info(
            "Retention sweep removed %d job(s), %d log entr(ies), %d notification(s)",
            cleanup.jobs_removed,
            cleanup.logs_removed,
            cleanup.notifications_removed,
        )
        return cleanup


class QueueWorker:
    """Runs :meth:`QueueProcessor.process_batch` on a fixed cadence.

    The retention sweep runs every ``cleanup_interval`` seconds from the
    same loop. Errors inside a cycle are logged and the loop carries on.
    """

    def __init__(
        self,
        processor: QueueProcessor,
        *,
        interval: float = 60.0,
        cleanup_interval: float = 3600.0,
    ) -> None:
        self.processor = processor
        self._interval = interval
        self._cleanup_interval = cleanup_interval
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()
        self._last_cleanup = 0.0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background processing loop."""
        if not self.running:
            self._stopping.clear()
            self._last_cleanup = time.monotonic()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background processing loop."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        interval = max(0.1, float(self._interval))

        while not self._stopping.is_set():
            await self.run_once()

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except TimeoutError:
                continue

    async def run_once(self) -> None:
        """Run one processing cycle, and the retention sweep when it is due."""
        try:
            await self.processor.process_batch()
        except SQLAlchemyError as e:
            logger.error("QueueWorker encountered database error: %s", e)
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.error("QueueWorker encountered processing error: %s", e, exc_info=True)

        if time.monotonic() - self._last_cleanup >= self._cleanup_interval:
            self._last_cleanup = time.monotonic()
            try:
                self.processor.run_cleanup()
            except SQLAlchemyError as e:
                logger.error("QueueWorker retention sweep failed: %s", e)
