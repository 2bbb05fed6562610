"""SQLAlchemy models for the Post Emitter service."""

from .log_entry import LogEntry
from .option import Option
from .queue import ReplicationJob
from .receiver import Receiver
from .report import DeliveryReport, ReportNotification

__all__ = [
    "DeliveryReport",
    "LogEntry",
    "Option",
    "Receiver",
    "ReplicationJob",
    "ReportNotification",
]
