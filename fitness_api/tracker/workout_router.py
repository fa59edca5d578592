"""Workout plan endpoints: one plan per authenticated user."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from fitness_api.auth import require_user
from fitness_api.db import get_session
from fitness_api.tracker import service
from fitness_api.tracker.models import (
    CreateWorkoutPlanRequest,
    DailyWorkoutVolumeResponse,
    UpdateWorkoutPlanRequest,
    WorkoutPlan,
)

router = APIRouter(prefix="/workout", tags=["workout"])


@router.post("/manual", response_model=WorkoutPlan, status_code=201)
async def create_manual_workout(
    request: CreateWorkoutPlanRequest,
    session: AsyncSession = Depends(get_session),
    username: str = Depends(require_user),
) -> WorkoutPlan:
    return await service.create_workout_plan(session, username, request)


@router.get("/me", response_model=WorkoutPlan)
async def get_workout_plan(
    session: AsyncSession = Depends(get_session),
    username: str = Depends(require_user),
) -> WorkoutPlan:
    return await service.get_workout_plan(session, username)


@router.put("/me", response_model=WorkoutPlan)
async def update_workout_plan(
    request: UpdateWorkoutPlanRequest,
    session: AsyncSession = Depends(get_session),
    username: str = Depends(require_user),
) -> WorkoutPlan:
    return await service.update_workout_plan(session, username, request)


@router.delete("/me", status_code=204)
async def delete_workout_plan(
    session: AsyncSession = Depends(get_session),
    username: str = Depends(require_user),
) -> Response:
    await service.delete_workout_plan(session, username)
    return Response(status_code=204)


@router.get("/volume", response_model=DailyWorkoutVolumeResponse)
async def get_daily_workout_volume(
    session: AsyncSession = Depends(get_session),
    username: str = Depends(require_user),
    day: int | None = Query(default=None, description="1 = Monday .. 7 = Sunday (omit for all days)"),
) -> DailyWorkoutVolumeResponse:
    return await service.get_daily_volume(session, username, day)
