"""Report schemas returned by the report store."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from pydantic import BaseModel, Field

from post_emitter.schemas.delivery import DeliveryResult


class ReportSummary(BaseModel):
    """Aggregate counts for one report."""

    total: int = 0
    success: int = 0
    errors: int = 0
    success_rate: float = 0

    @classmethod
    def from_results(cls, results: Sequence[DeliveryResult]) -> ReportSummary:
        total = len(results)
        success = sum(1 for result in results if result.ok)
        return cls(
            total=total,
            success=success,
            errors=total - success,
            success_rate=round(success / total * 100, 2) if total else 0,
        )


class Report(BaseModel):
    """Delivery outcome of one job across all its receivers."""

    post_id: int
    timestamp: datetime
    action: str = "send"
    job_id: int | None = None
    results: list[DeliveryResult] = Field(default_factory=list)
    summary: ReportSummary = Field(default_factory=ReportSummary)


class GeneralStats(BaseModel):
    """Totals across every stored report."""

    total_reports: int = 0
    success_count: int = 0
    error_count: int = 0
    success_rate: float = 0
