"""Progress logging, retrieval, summaries and trends for the authenticated user."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from fitness_api.auth import require_user
from fitness_api.db import get_session
from fitness_api.tracker import service
from fitness_api.tracker.models import (
    GetProgressResponse,
    GetProgressSummaryResponse,
    GetProgressTrendResponse,
    LogProgressRequest,
    LogProgressResponse,
    MetricType,
    ProgressQuery,
)

router = APIRouter(prefix="/progress", tags=["progress"])


def _window_query(
    metric_types: list[MetricType] = Query(default=[], description="Repeat to filter by several metrics"),
    start_date: datetime | None = Query(default=None, description="ISO 8601, inclusive"),
    end_date: datetime | None = Query(default=None, description="ISO 8601, inclusive"),
) -> ProgressQuery:
    return ProgressQuery(metric_types=metric_types, start_date=start_date, end_date=end_date)


@router.post("", response_model=LogProgressResponse, status_code=201)
async def log_progress(
    request: LogProgressRequest,
    session: AsyncSession = Depends(get_session),
    username: str = Depends(require_user),
) -> LogProgressResponse:
    return await service.log_progress(session, username, request)


@router.get("/me", response_model=GetProgressResponse)
async def get_progress(
    session: AsyncSession = Depends(get_session),
    username: str = Depends(require_user),
    window: ProgressQuery = Depends(_window_query),
    limit: int | None = Query(default=None, description="Maximum number of entries"),
    sort_order: str = Query(default="desc", description="asc or desc (newest first)"),
) -> GetProgressResponse:
    query = window.model_copy(update={"limit": limit, "sort_order": sort_order})
    return await service.get_progress(session, username, query)


@router.get("/me/summary", response_model=GetProgressSummaryResponse)
async def get_progress_summary(
    session: AsyncSession = Depends(get_session),
    username: str = Depends(require_user),
    window: ProgressQuery = Depends(_window_query),
) -> GetProgressSummaryResponse:
    return await service.get_progress_summary(session, username, window)


@router.get("/me/trend", response_model=GetProgressTrendResponse)
async def get_progress_trend(
    session: AsyncSession = Depends(get_session),
    username: str = Depends(require_user),
    window: ProgressQuery = Depends(_window_query),
) -> GetProgressTrendResponse:
    return await service.get_progress_trend(session, username, window)


@router.delete("", status_code=204)
async def delete_progress(
    session: AsyncSession = Depends(get_session),
    username: str = Depends(require_user),
    entry_id: str = Query(..., description="Progress entry to delete"),
) -> Response:
    await service.delete_progress(session, username, entry_id)
    return Response(status_code=204)
