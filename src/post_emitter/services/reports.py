"""Delivery report history and one-shot report notifications."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from post_emitter.db.session import SessionFactory
from post_emitter.db.time import seconds_from_now, utcnow
from post_emitter.models import DeliveryReport, ReportNotification
from post_emitter.schemas.delivery import DeliveryResult
from post_emitter.schemas.report import GeneralStats, Report, ReportSummary

logger = logging.getLogger(__name__)

DEFAULT_NOTIFICATION_TTL_SECONDS = 12 * 60 * 60


def _load_report(raw: str) -> Report | None:
    try:
        return Report.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("Skipping unreadable report data: %s", exc)
        return None


class ReportStore:
    """Stores per-job delivery reports and aggregates their outcomes.

    Every recorded report is kept in the ``reports`` table and also written
    as the post's notification, which expires after ``notification_ttl``
    seconds and is deleted the first time it is read.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        notification_ttl: int = DEFAULT_NOTIFICATION_TTL_SECONDS,
    ) -> None:
        self._session_factory = session_factory
        self._notification_ttl = notification_ttl

    def record(
        self,
        post_id: int,
        results: Sequence[DeliveryResult],
        *,
        action: str = "send",
        job_id: int | None = None,
    ) -> Report:
        """Build the report for ``results`` and persist it.

        A storage failure is logged; the report is returned either way.
        """
        report = Report(
            post_id=post_id,
            timestamp=utcnow(),
            action=action,
            job_id=job_id,
            results=list(results),
            summary=ReportSummary.from_results(results),
        )
        report_data = report.model_dump_json()

        try:
            with self._session_factory() as db:
                db.add(
                    DeliveryReport(
                        post_id=post_id, job_id=job_id, action=action, report_data=report_data
                    )
                )
                db.merge(
                    ReportNotification(
                        post_id=post_id,
                        report_data=report_data,
                        expires_at=seconds_from_now(self._notification_ttl),
                    )
                )
                db.commit()
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to store report for post %s: %s",
                post_id,
                exc,
                extra={"context": {"post_id": post_id, "job_id": job_id}},
            )

        return report

    def get_latest(self, post_id: int) -> Report | None:
        with self._session_factory() as db:
            raw = db.scalar(
                select(DeliveryReport.report_data)
                .where(DeliveryReport.post_id == post_id)
                .order_by(DeliveryReport.created_at.desc(), DeliveryReport.id.desc())
                .limit(1)
            )
        return _load_report(raw) if raw is not None else None

    def get_recent(self, limit: int = 10) -> list[Report]:
        with self._session_factory() as db:
            rows = db.scalars(
                select(DeliveryReport.report_data)
                .order_by(DeliveryReport.created_at.desc(), DeliveryReport.id.desc())
                .limit(limit)
            ).all()
        return [report for raw in rows if (report := _load_report(raw)) is not None]

    def general_stats(self) -> GeneralStats:
        """Aggregate receiver outcomes across every stored report."""
        with self._session_factory() as db:
            rows = db.scalars(select(DeliveryReport.report_data)).all()

        stats = GeneralStats(total_reports=len(rows))
        attempts = 0
        successes = 0
        for raw in rows:
            report = _load_report(raw)
            if report is None:
                continue
            attempts += report.summary.total
            successes += report.summary.success

        stats.success_count = successes
        stats.error_count = attempts - successes
        stats.success_rate = round(successes / attempts * 100, 2) if attempts else 0
        return stats

    def pop_notification(self, post_id: int) -> Report | None:
        """Return and consume the post's pending notification, if it has not expired."""
        with self._session_factory() as db:
            live = db.scalar(
                select(ReportNotification.report_data).where(
                    ReportNotification.post_id == post_id,
                    ReportNotification.expires_at > utcnow(),
                )
            )
            result = db.execute(
                delete(ReportNotification).where(ReportNotification.post_id == post_id)
            )
            db.commit()

        # A concurrent reader that deleted the row first wins the notification.
        if live is None or result.rowcount != 1:
            return None
        return _load_report(live)

    def purge_expired_notifications(self) -> int:
        with self._session_factory() as db:
            result = db.execute(
                delete(ReportNotification).where(ReportNotification.expires_at <= utcnow())
            )
            db.commit()
        return result.rowcount
