"""System status endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from post_emitter.api.v1.dependencies import ContextDep

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/status")
async def system_status(context: ContextDep) -> dict[str, Any]:
    """Return queue counts, worker state and delivery metrics.

    Secrets and connection strings are never included.
    """
    settings = context.settings
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
        },
        "queue": context.queue.stats().model_dump(),
        "worker": {
            "enabled": settings.worker_enabled,
            "running": context.worker.running,
            "interval_seconds": settings.queue_process_interval_seconds,
            "batch_size": settings.queue_batch_size,
        },
        "encryption": {"enabled": context.vault.encrypting},
        "translation": {
            "enabled": settings.translation_enabled,
            "target_language": settings.target_language,
        },
        "delivery": context.delivery.get_metrics(),
    }
