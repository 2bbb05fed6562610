"""Version 1 API endpoints."""

from .endpoints import (
    logs_router,
    queue_router,
    receivers_router,
    reports_router,
    system_router,
)

__all__ = [
    "receivers_router",
    "queue_router",
    "reports_router",
    "logs_router",
    "system_router",
]
