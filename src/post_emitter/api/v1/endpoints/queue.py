"""Replication queue endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from post_emitter.api.v1.dependencies import ContextDep
from post_emitter.models.queue import JOB_PENDING
from post_emitter.schemas.queue import (
    CleanupResponse,
    EnqueueRequest,
    EnqueueResponse,
    ProcessResponse,
    QueueStats,
)

router = APIRouter(prefix="/queue", tags=["queue"])


@router.post("/jobs", response_model=EnqueueResponse, status_code=status.HTTP_202_ACCEPTED)
async def enqueue_job(payload: EnqueueRequest, context: ContextDep) -> EnqueueResponse:
    """Queue a post event for the selected receivers.

    ``update_status`` uses ``post.status`` as the new status and
    ``old_status`` (default ``publish``) as the previous one.
    """
    events = context.events
    if payload.action == "send":
        queued = await events.publish(payload.post, payload.receiver_indices)
    elif payload.action == "update_status":
        queued = await events.status_changed(
            payload.post,
            payload.post.status,
            payload.old_status or "publish",
            payload.receiver_indices,
        )
    else:
        queued = events.deleted(payload.post.post_id, payload.receiver_indices)
    return EnqueueResponse(queued=queued)


@router.get("/stats", response_model=QueueStats)
async def queue_stats(context: ContextDep) -> QueueStats:
    return context.queue.stats()


@router.post("/{job_id}/cancel")
async def cancel_job(job_id: int, context: ContextDep) -> dict[str, bool]:
    """Cancel a job that has not been processed yet."""
    job = context.queue.get(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    if job.status != JOB_PENDING or not context.queue.cancel(job_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Only pending jobs can be cancelled"
        )
    return {"cancelled": True}


@router.post("/process", response_model=ProcessResponse)
async def process_queue(context: ContextDep) -> ProcessResponse:
    """Run one processing cycle immediately."""
    processed = await context.processor.process_batch()
    return ProcessResponse(processed=processed)


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_queue(context: ContextDep) -> CleanupResponse:
    """Apply the retention policies now."""
    return context.processor.run_cleanup()
