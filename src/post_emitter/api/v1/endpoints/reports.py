"""Delivery report endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from post_emitter.api.v1.dependencies import ContextDep
from post_emitter.schemas.report import GeneralStats, Report

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/recent", response_model=list[Report])
async def recent_reports(
    context: ContextDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> list[Report]:
    return context.reports.get_recent(limit)


@router.get("/stats", response_model=GeneralStats)
async def report_stats(context: ContextDep) -> GeneralStats:
    return context.reports.general_stats()


@router.get("/posts/{post_id}", response_model=Report)
async def latest_report(post_id: int, context: ContextDep) -> Report:
    report = context.reports.get_latest(post_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No report for post")
    return report


@router.get("/posts/{post_id}/notification", response_model=Report)
async def pop_notification(post_id: int, context: ContextDep) -> Report:
    """Return the post's latest report once; later calls get 404 until the next delivery."""
    report = context.reports.pop_notification(post_id)
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No pending notification"
        )
    return report
