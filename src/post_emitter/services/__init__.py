"""Business logic services for the Post Emitter service."""

from .crypto import CredentialVault
from .delivery import DeliveryClient
from .events import PostEventHandler
from .logs import DatabaseLogHandler, LogStore
from .processor import QueueProcessor, QueueWorker
from .queue import ReplicationQueue
from .receivers import ReceiverCredentials, ReceiverNotFoundError, ReceiverRegistry
from .reports import ReportStore
from .translation import Translator
from .validation import InvalidReceiverError

__all__ = [
    "CredentialVault",
    "DeliveryClient",
    "ReplicationQueue",
    "QueueProcessor",
    "QueueWorker",
    "ReceiverRegistry",
    "ReceiverCredentials",
    "ReceiverNotFoundError",
    "InvalidReceiverError",
    "ReportStore",
    "LogStore",
    "DatabaseLogHandler",
    "PostEventHandler",
    "Translator",
]
