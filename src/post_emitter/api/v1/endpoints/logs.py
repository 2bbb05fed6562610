"""Log inspection endpoint."""

from __future__ import annotations

from typing import Annotated, Literal

from fastapi import APIRouter, Query

from post_emitter.api.v1.dependencies import ContextDep
from post_emitter.schemas.logs import LogEntryResponse

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("/", response_model=list[LogEntryResponse])
async def list_logs(
    context: ContextDep,
    level: Literal["debug", "info", "warning", "error"] | None = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> list[LogEntryResponse]:
    """Return stored log entries, newest first."""
    return context.log_store.get_logs(level=level, limit=limit)
