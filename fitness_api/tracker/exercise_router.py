"""Exercise catalog: public browse/search plus admin management."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from fitness_api.auth import require_admin
from fitness_api.config import settings
from fitness_api.db import get_session
from fitness_api.tracker import service
from fitness_api.tracker.models import (
    CreateExerciseRequest,
    Difficulty,
    Exercise,
    ExerciseFilter,
    ExerciseListResponse,
    ExerciseSearchResponse,
    UpdateExerciseRequest,
)

router = APIRouter(prefix="/exercises", tags=["exercises"])
admin_router = APIRouter(prefix="/admin/exercises", tags=["admin"])


# ---------------------------------------------------------------------------
# Public catalog
# ---------------------------------------------------------------------------


@router.get("", response_model=ExerciseListResponse)
async def list_exercises(
    session: AsyncSession = Depends(get_session),
    query: str = Query(default="", description="Case-insensitive substring of the name"),
    primary_muscle_groups: list[str] = Query(default=[]),
    supporting_muscle_groups: list[str] = Query(default=[]),
    equipment: list[str] = Query(default=[]),
    difficulty: Difficulty | None = Query(default=None),
    exercise_type: str | None = Query(default=None),
    skip: int = Query(default=0),
    limit: int | None = Query(default=None, description="Page size (default 20)"),
    sort_by: str = Query(default="name"),
    sort_order: str = Query(default="asc", description="asc or desc"),
) -> ExerciseListResponse:
    page_size = settings.default_page_size if limit is None else min(limit, settings.max_page_size)
    filt = ExerciseFilter(
        query=query,
        primary_muscle_groups=primary_muscle_groups,
        supporting_muscle_groups=supporting_muscle_groups,
        equipment=equipment,
        difficulty=difficulty,
        exercise_type=exercise_type,
        skip=skip,
        limit=page_size,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return await service.list_exercises(session, filt)


@router.get("/search", response_model=ExerciseSearchResponse)
async def search_exercises(
    session: AsyncSession = Depends(get_session),
    query: str = Query(default="", description="Name fragment, at least 2 characters"),
) -> ExerciseSearchResponse:
    return await service.search_exercises(session, query)


@router.get("/name/{name}", response_model=Exercise)
async def get_exercise_by_name(
    name: str,
    session: AsyncSession = Depends(get_session),
) -> Exercise:
    return await service.get_exercise_by_name(session, name)


@router.get("/{exercise_id}", response_model=Exercise)
async def get_exercise(
    exercise_id: str,
    session: AsyncSession = Depends(get_session),
) -> Exercise:
    return await service.get_exercise(session, exercise_id)


# ---------------------------------------------------------------------------
# Admin management
# ---------------------------------------------------------------------------


@admin_router.post("", response_model=Exercise, status_code=201)
async def create_exercise(
    request: CreateExerciseRequest,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(require_admin),
) -> Exercise:
    return await service.create_exercise(session, request)


@admin_router.put("/{exercise_id}", response_model=Exercise)
async def update_exercise(
    exercise_id: str,
    request: UpdateExerciseRequest,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(require_admin),
) -> Exercise:
    return await service.update_exercise(session, exercise_id, request)


@admin_router.delete("/{exercise_id}", status_code=204)
async def delete_exercise(
    exercise_id: str,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(require_admin),
) -> Response:
    await service.delete_exercise(session, exercise_id)
    return Response(status_code=204)
