"""Queue-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, Field

from post_emitter.schemas.operations import PostSnapshot


class EnqueueRequest(BaseModel):
    """Event raised by the content producer."""

    action: Literal["send", "update_status", "delete"] = "send"
    post: PostSnapshot
    receiver_indices: list[int] = Field(default_factory=list)
    old_status: str | None = Field(None, description="Previous status for status changes")


class EnqueueResponse(BaseModel):
    queued: bool


class QueueStats(BaseModel):
    """Job counts per status."""

    pending: int = 0
    processing: int = 0
    completed: int = 0
    cancelled: int = 0
    failed: int = 0
    total: int = 0


class ProcessResponse(BaseModel):
    processed: int


class CleanupResponse(BaseModel):
    jobs_removed: int
    logs_removed: int
    notifications_removed: int
