"""API endpoint modules for version 1."""

from .logs import router as logs_router
from .queue import router as queue_router
from .receivers import router as receivers_router
from .reports import router as reports_router
from .system import router as system_router

__all__ = [
    "receivers_router",
    "queue_router",
    "reports_router",
    "logs_router",
    "system_router",
]
