"""Tracker operations: the layer between routers and the connector.

Each operation resolves the caller, validates, calls the connector and
shapes the response. Missing entities raise NotFoundError, name/plan
collisions raise ConflictError. Storage errors propagate unchanged.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fitness_api.config import settings
from fitness_api.errors import ConflictError, NotFoundError, ValidationError
from fitness_api.tracker import analytics, connector
from fitness_api.tracker.filters import page_number
from fitness_api.tracker.models import (
    CreateExerciseRequest,
    CreateWorkoutPlanRequest,
    DailyWorkoutVolumeResponse,
    Exercise,
    ExerciseFilter,
    ExerciseListResponse,
    ExerciseSearchResponse,
    GetProgressResponse,
    GetProgressSummaryResponse,
    GetProgressTrendResponse,
    LogProgressRequest,
    LogProgressResponse,
    ProgressEntry,
    ProgressQuery,
    UpdateExerciseRequest,
    UpdateWorkoutPlanRequest,
    User,
    UserRegistrationRequest,
    UserUpdateRequest,
    Workout,
    WorkoutPlan,
    apply_patch,
    as_utc,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


async def get_user(session: AsyncSession, username: str) -> User:
    user = await connector.fetch_user_by_username(session, username)
    if user is None:
        logger.warning("User not found", extra={"username": username})
        raise NotFoundError(f"No user found with username '{username}'")
    return user


async def create_user(session: AsyncSession, username: str, request: UserRegistrationRequest) -> User:
    logger.info("Creating user", extra={"username": username, "email": request.email})

    if await connector.fetch_user_by_username(session, username) is not None:
        raise ConflictError(f"A profile already exists for '{username}'")

    now = _now()
    user = User(id=_new_id(), username=username, created_at=now, updated_at=now, **request.model_dump())
    try:
        await connector.insert_user(session, user)
    except IntegrityError:
        await session.rollback()
        raise ConflictError(f"A profile already exists for '{username}'")

    logger.info("User created", extra={"user_id": user.id, "username": username})
    return user


async def update_user(session: AsyncSession, username: str, request: UserUpdateRequest) -> User:
    logger.info("Updating user", extra={"username": username})
    existing = await get_user(session, username)

    updated = apply_patch(existing, request)
    updated.updated_at = _now()
    if not await connector.replace_user(session, updated):
        raise NotFoundError(f"No user found with username '{username}'")

    logger.info("User updated", extra={"user_id": updated.id})
    return updated


async def delete_user(session: AsyncSession, username: str) -> None:
    logger.info("Deleting user", extra={"username": username})
    user = await get_user(session, username)
    if not await connector.delete_user(session, user.id):
        raise NotFoundError(f"No user found with username '{username}'")
    logger.info("User deleted", extra={"user_id": user.id})


# ---------------------------------------------------------------------------
# Exercises
# ---------------------------------------------------------------------------


async def get_exercise(session: AsyncSession, exercise_id: str) -> Exercise:
    exercise = await connector.fetch_exercise_by_id(session, exercise_id)
    if exercise is None:
        logger.warning("Exercise not found", extra={"exercise_id": exercise_id})
        raise NotFoundError("exercise not found")
    return exercise


async def get_exercise_by_name(session: AsyncSession, name: str) -> Exercise:
    exercise = await connector.fetch_exercise_by_name(session, name)
    if exercise is None:
        raise NotFoundError("exercise not found")
    return exercise


async def list_exercises(session: AsyncSession, filt: ExerciseFilter) -> ExerciseListResponse:
    exercises = await connector.fetch_exercises(session, filt)
    logger.debug("Exercise list retrieved", extra={"count": len(exercises)})
    # total is the page length, not a full count of matches
    return ExerciseListResponse(
        exercises=exercises,
        total=len(exercises),
        page=page_number(filt.skip, filt.limit),
        page_size=filt.limit,
    )


async def search_exercises(session: AsyncSession, query: str) -> ExerciseSearchResponse:
    """Name-only search with a fixed result cap, sorted by name."""
    query = query.strip()
    if not query:
        raise ValidationError("Query parameter is required for search")
    if len(query) < settings.search_min_query_length:
        raise ValidationError(
            f"Search query must be at least {settings.search_min_query_length} characters long"
        )

    result = await list_exercises(
        session,
        ExerciseFilter(query=query, limit=settings.search_result_limit, sort_by="name", sort_order="asc"),
    )
    return ExerciseSearchResponse(exercises=result.exercises, total=result.total)


async def create_exercise(session: AsyncSession, request: CreateExerciseRequest) -> Exercise:
    logger.info("Creating exercise", extra={"exercise_name": request.name})

    # Check-then-insert; the unique index on lower(name) catches concurrent creates.
    if await connector.fetch_exercise_by_name(session, request.name) is not None:
        logger.warning("Exercise name taken", extra={"exercise_name": request.name})
        raise ConflictError("exercise with this name already exists")

    exercise = Exercise(id=_new_id(), **request.model_dump())
    try:
        await connector.insert_exercise(session, exercise, _now())
    except IntegrityError:
        await session.rollback()
        raise ConflictError("exercise with this name already exists")

    logger.info("Exercise created", extra={"exercise_id": exercise.id, "exercise_name": exercise.name})
    return exercise


async def update_exercise(session: AsyncSession, exercise_id: str, request: UpdateExerciseRequest) -> Exercise:
    logger.info("Updating exercise", extra={"exercise_id": exercise_id})
    existing = await get_exercise(session, exercise_id)

    if request.name.lower() != existing.name.lower():
        other = await connector.fetch_exercise_by_name(session, request.name)
        if other is not None and other.id != exercise_id:
            raise ConflictError("another exercise with this name already exists")

    exercise = Exercise(id=exercise_id, **request.model_dump())
    try:
        replaced = await connector.replace_exercise(session, exercise, _now())
    except IntegrityError:
        await session.rollback()
        raise ConflictError("another exercise with this name already exists")
    if not replaced:
        raise NotFoundError("exercise not found")

    logger.info("Exercise updated", extra={"exercise_id": exercise_id})
    return exercise


async def delete_exercise(session: AsyncSession, exercise_id: str) -> None:
    logger.info("Deleting exercise", extra={"exercise_id": exercise_id})
    if not await connector.delete_exercise(session, exercise_id):
        raise NotFoundError("exercise not found")


# ---------------------------------------------------------------------------
# Workout plans
# ---------------------------------------------------------------------------


def _stamp_workouts(workouts: list[Workout], now: datetime) -> list[Workout]:
    return [w if w.added_at is not None else w.model_copy(update={"added_at": now}) for w in workouts]


async def _populate_exercises(session: AsyncSession, plan: WorkoutPlan) -> WorkoutPlan:
    """Attach catalog details to each workout; unknown ids stay unpopulated."""
    catalog = await connector.fetch_exercises_by_ids(session, [w.exercise_id for w in plan.workouts])
    workouts = [w.model_copy(update={"exercise": catalog.get(w.exercise_id)}) for w in plan.workouts]
    return plan.model_copy(update={"workouts": workouts})


async def _load_plan(session: AsyncSession, user: User) -> WorkoutPlan:
    plan = await connector.fetch_workout_plan(session, user.id)
    if plan is None:
        logger.debug("No workout plan found", extra={"user_id": user.id})
        raise NotFoundError("No workout plan found for this user")
    return plan


async def create_workout_plan(
    session: AsyncSession, username: str, request: CreateWorkoutPlanRequest
) -> WorkoutPlan:
    user = await get_user(session, username)
    logger.info("Creating workout plan", extra={"user_id": user.id, "plan_name": request.name})

    if await connector.fetch_workout_plan(session, user.id) is not None:
        raise ConflictError("A workout plan already exists for this user")

    now = _now()
    plan = WorkoutPlan(
        id=_new_id(),
        user_id=user.id,
        name=request.name,
        description=request.description,
        workouts=_stamp_workouts(request.workouts, now),
        created_at=now,
        updated_at=now,
    )
    try:
        await connector.insert_workout_plan(session, plan)
    except IntegrityError:
        await session.rollback()
        raise ConflictError("A workout plan already exists for this user")

    logger.info("Workout plan created", extra={"user_id": user.id, "plan_id": plan.id})
    return await _populate_exercises(session, plan)


async def get_workout_plan(session: AsyncSession, username: str) -> WorkoutPlan:
    user = await get_user(session, username)
    plan = await _load_plan(session, user)
    return await _populate_exercises(session, plan)


async def update_workout_plan(
    session: AsyncSession, username: str, request: UpdateWorkoutPlanRequest
) -> WorkoutPlan:
    user = await get_user(session, username)
    logger.info("Updating workout plan", extra={"user_id": user.id})
    existing = await _load_plan(session, user)

    now = _now()
    updated = apply_patch(existing, request)
    updated.workouts = _stamp_workouts(updated.workouts, now)
    updated.updated_at = now
    if not await connector.replace_workout_plan(session, updated):
        raise NotFoundError("No workout plan found for this user")

    logger.info("Workout plan updated", extra={"user_id": user.id, "plan_id": updated.id})
    return await _populate_exercises(session, updated)


async def delete_workout_plan(session: AsyncSession, username: str) -> None:
    user = await get_user(session, username)
    logger.info("Deleting workout plan", extra={"user_id": user.id})
    if not await connector.delete_workout_plan(session, user.id):
        raise NotFoundError("No workout plan found for this user")


async def get_daily_volume(session: AsyncSession, username: str, day: int | None = None) -> DailyWorkoutVolumeResponse:
    if day is not None and not 1 <= day <= 7:
        raise ValidationError("Day must be an integer between 1 and 7")

    user = await get_user(session, username)
    plan = await _load_plan(session, user)
    catalog = await connector.fetch_exercises_by_ids(session, [w.exercise_id for w in plan.workouts])
    names = {exercise_id: exercise.name for exercise_id, exercise in catalog.items()}

    volumes = analytics.daily_volume(plan, names, day)
    return DailyWorkoutVolumeResponse(
        user_id=user.id,
        daily_volumes=volumes,
        total_weekly_volume=sum(v.total_sets for v in volumes),
    )


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


async def log_progress(session: AsyncSession, username: str, request: LogProgressRequest) -> LogProgressResponse:
    user = await get_user(session, username)
    logger.info("Logging progress", extra={"user_id": user.id, "metric_type": request.metric_type.value})

    now = _now()
    entry = ProgressEntry(
        id=_new_id(),
        user_id=user.id,
        metric_type=request.metric_type,
        value=request.value,
        unit=request.unit,
        recorded_at=as_utc(request.recorded_at) if request.recorded_at else now,
        notes=request.notes,
        location=request.location,
        measure_area=request.measure_area,
    )
    await connector.insert_progress(session, entry, now)

    logger.info("Progress logged", extra={"user_id": user.id, "progress_id": entry.id})
    return LogProgressResponse(**entry.model_dump(), created_at=now)


async def get_progress(session: AsyncSession, username: str, query: ProgressQuery) -> GetProgressResponse:
    user = await get_user(session, username)
    entries = await connector.fetch_progress(session, user.id, query)
    logger.debug("Progress entries retrieved", extra={"user_id": user.id, "count": len(entries)})
    return GetProgressResponse(entries=entries, total=len(entries))


def _window(query: ProgressQuery) -> ProgressQuery:
    # Summary and trend both read newest-first over the whole filtered window.
    return query.model_copy(update={"sort_order": "desc", "limit": None})


async def get_progress_summary(
    session: AsyncSession, username: str, query: ProgressQuery | None = None
) -> GetProgressSummaryResponse:
    user = await get_user(session, username)
    entries = await connector.fetch_progress(session, user.id, _window(query or ProgressQuery()))
    summaries = analytics.summarize(entries)
    logger.debug("Progress summary computed", extra={"user_id": user.id, "summary_count": len(summaries)})
    return GetProgressSummaryResponse(summaries=summaries, user_id=user.id)


async def get_progress_trend(
    session: AsyncSession, username: str, query: ProgressQuery | None = None
) -> GetProgressTrendResponse:
    user = await get_user(session, username)
    entries = await connector.fetch_progress(session, user.id, _window(query or ProgressQuery()))
    trends = analytics.compute_trends(entries)
    logger.debug("Progress trends computed", extra={"user_id": user.id, "trend_count": len(trends)})
    return GetProgressTrendResponse(trends=trends, user_id=user.id)


async def delete_progress(session: AsyncSession, username: str, entry_id: str) -> None:
    user = await get_user(session, username)
    logger.info("Deleting progress entry", extra={"user_id": user.id, "progress_id": entry_id})
    if not await connector.delete_progress(session, user.id, entry_id):
        raise NotFoundError("Progress entry not found")
