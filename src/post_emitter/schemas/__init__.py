"""Pydantic schemas for the Post Emitter service."""

from .delivery import DELIVERY_FAIL, DELIVERY_OK, DeliveryResult
from .operations import (
    DeleteOperation,
    JobEnvelope,
    Operation,
    PostSnapshot,
    ReceiverSnapshot,
    SendOperation,
    UpdateStatusOperation,
)
from .report import GeneralStats, Report, ReportSummary

__all__ = [
    "DELIVERY_FAIL",
    "DELIVERY_OK",
    "DeleteOperation",
    "DeliveryResult",
    "GeneralStats",
    "JobEnvelope",
    "Operation",
    "PostSnapshot",
    "ReceiverSnapshot",
    "Report",
    "ReportSummary",
    "SendOperation",
    "UpdateStatusOperation",
]
