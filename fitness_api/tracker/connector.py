"""Database connector: async access to users, exercises, workout_plans, progress_entries.

Tag sets are text[] columns; nested user documents and plan workouts are JSONB.
Lookups return None / empty lists when nothing is found. Driver errors
propagate unchanged.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fitness_api.tracker.filters import (
    EXERCISE_COLUMNS,
    PROGRESS_COLUMNS,
    QuerySpec,
    build_exercise_query,
    build_progress_query,
)
from fitness_api.tracker.models import (
    Exercise,
    ExerciseFilter,
    ProgressEntry,
    ProgressQuery,
    User,
    WorkoutPlan,
)

logger = logging.getLogger(__name__)

USER_COLUMNS = (
    "id, username, name, email, age, sex, weight, height, current_fitness, goals, "
    "created_at, updated_at"
)

PLAN_COLUMNS = "id, user_id, name, description, workouts, created_at, updated_at"


def _jsonb(value: Any) -> str:
    return json.dumps(value)


def _without(params: dict[str, Any], *keys: str) -> dict[str, Any]:
    return {k: v for k, v in params.items() if k not in keys}


async def _execute(session: AsyncSession, spec: QuerySpec):
    try:
        return await session.execute(text(spec.sql), spec.params)
    except SQLAlchemyError:
        logger.exception("Query failed", extra={"sql": spec.sql})
        raise


async def _fetch_all(session: AsyncSession, spec: QuerySpec) -> list[dict[str, Any]]:
    result = await _execute(session, spec)
    columns = result.keys()
    return [dict(zip(columns, r)) for r in result.fetchall()]


async def _fetch_one(session: AsyncSession, spec: QuerySpec) -> dict[str, Any] | None:
    result = await _execute(session, spec)
    row = result.fetchone()
    if row is None:
        return None
    return dict(zip(result.keys(), row))


async def _write(session: AsyncSession, spec: QuerySpec) -> bool:
    """Run a write with ``RETURNING id`` and commit. True when a row was touched."""
    result = await _execute(session, spec)
    row = result.fetchone()
    await session.commit()
    return row is not None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


async def fetch_user_by_username(session: AsyncSession, username: str) -> User | None:
    row = await _fetch_one(
        session,
        QuerySpec(f"SELECT {USER_COLUMNS} FROM users WHERE username = :username", {"username": username}),
    )
    return User.model_validate(row) if row else None


def _user_params(user: User) -> dict[str, Any]:
    data = user.model_dump(mode="json")
    params = {k: getattr(user, k) for k in ("id", "username", "name", "email", "age", "weight", "height")}
    params["sex"] = user.sex.value
    params["current_fitness"] = _jsonb(data["current_fitness"])
    params["goals"] = _jsonb(data["goals"])
    params["created_at"] = user.created_at
    params["updated_at"] = user.updated_at
    return params


async def insert_user(session: AsyncSession, user: User) -> None:
    sql = (
        f"INSERT INTO users ({USER_COLUMNS}) VALUES ("
        ":id, :username, :name, :email, :age, :sex, :weight, :height, "
        "CAST(:current_fitness AS jsonb), CAST(:goals AS jsonb), :created_at, :updated_at"
        ") RETURNING id"
    )
    await _write(session, QuerySpec(sql, _user_params(user)))


async def replace_user(session: AsyncSession, user: User) -> bool:
    sql = (
        "UPDATE users SET name = :name, email = :email, age = :age, sex = :sex, "
        "weight = :weight, height = :height, "
        "current_fitness = CAST(:current_fitness AS jsonb), goals = CAST(:goals AS jsonb), "
        "updated_at = :updated_at "
        "WHERE id = :id AND username = :username RETURNING id"
    )
    return await _write(session, QuerySpec(sql, _without(_user_params(user), "created_at")))


async def delete_user(session: AsyncSession, user_id: str) -> bool:
    return await _write(
        session, QuerySpec("DELETE FROM users WHERE id = :id RETURNING id", {"id": user_id})
    )


# ---------------------------------------------------------------------------
# Exercises
# ---------------------------------------------------------------------------


async def fetch_exercise_by_id(session: AsyncSession, exercise_id: str) -> Exercise | None:
    row = await _fetch_one(
        session,
        QuerySpec(f"SELECT {EXERCISE_COLUMNS} FROM exercises WHERE id = :id", {"id": exercise_id}),
    )
    return Exercise.model_validate(row) if row else None


async def fetch_exercise_by_name(session: AsyncSession, name: str) -> Exercise | None:
    """Case-insensitive exact name match."""
    row = await _fetch_one(
        session,
        QuerySpec(
            f"SELECT {EXERCISE_COLUMNS} FROM exercises WHERE lower(name) = lower(:name) LIMIT 1",
            {"name": name},
        ),
    )
    return Exercise.model_validate(row) if row else None


async def fetch_exercises(session: AsyncSession, filt: ExerciseFilter) -> list[Exercise]:
    spec = build_exercise_query(filt)
    logger.debug("Listing exercises", extra={"params": spec.params})
    rows = await _fetch_all(session, spec)
    return [Exercise.model_validate(r) for r in rows]


async def fetch_exercises_by_ids(session: AsyncSession, ids: Sequence[str]) -> dict[str, Exercise]:
    if not ids:
        return {}
    rows = await _fetch_all(
        session,
        QuerySpec(
            f"SELECT {EXERCISE_COLUMNS} FROM exercises WHERE id = ANY(CAST(:ids AS text[]))",
            {"ids": sorted(set(ids))},
        ),
    )
    exercises = [Exercise.model_validate(r) for r in rows]
    return {e.id: e for e in exercises}


def _exercise_params(exercise: Exercise) -> dict[str, Any]:
    params = exercise.model_dump()
    params["difficulty"] = exercise.difficulty.value
    return params


async def insert_exercise(session: AsyncSession, exercise: Exercise, now: datetime) -> None:
    sql = (
        f"INSERT INTO exercises ({EXERCISE_COLUMNS}, created_at, updated_at) VALUES ("
        ":id, :name, :description, :primary_muscle_groups, :supporting_muscle_groups, "
        ":equipment, :difficulty, :exercise_type, :demo_video_url, :demo_image_url, "
        ":instructions, :recommended_for, :now, :now) RETURNING id"
    )
    await _write(session, QuerySpec(sql, {**_exercise_params(exercise), "now": now}))


async def replace_exercise(session: AsyncSession, exercise: Exercise, now: datetime) -> bool:
    sql = (
        "UPDATE exercises SET name = :name, description = :description, "
        "primary_muscle_groups = :primary_muscle_groups, "
        "supporting_muscle_groups = :supporting_muscle_groups, equipment = :equipment, "
        "difficulty = :difficulty, exercise_type = :exercise_type, "
        "demo_video_url = :demo_video_url, demo_image_url = :demo_image_url, "
        "instructions = :instructions, recommended_for = :recommended_for, updated_at = :now "
        "WHERE id = :id RETURNING id"
    )
    return await _write(session, QuerySpec(sql, {**_exercise_params(exercise), "now": now}))


async def delete_exercise(session: AsyncSession, exercise_id: str) -> bool:
    return await _write(
        session, QuerySpec("DELETE FROM exercises WHERE id = :id RETURNING id", {"id": exercise_id})
    )


# ---------------------------------------------------------------------------
# Workout plans
# ---------------------------------------------------------------------------


async def fetch_workout_plan(session: AsyncSession, user_id: str) -> WorkoutPlan | None:
    row = await _fetch_one(
        session,
        QuerySpec(f"SELECT {PLAN_COLUMNS} FROM workout_plans WHERE user_id = :user_id", {"user_id": user_id}),
    )
    return WorkoutPlan.model_validate(row) if row else None


def _plan_params(plan: WorkoutPlan) -> dict[str, Any]:
    # Catalog details are joined on read, never stored with the plan.
    workouts = [w.model_dump(mode="json", exclude={"exercise"}) for w in plan.workouts]
    return {
        "id": plan.id,
        "user_id": plan.user_id,
        "name": plan.name,
        "description": plan.description,
        "workouts": _jsonb(workouts),
        "created_at": plan.created_at,
        "updated_at": plan.updated_at,
    }


async def insert_workout_plan(session: AsyncSession, plan: WorkoutPlan) -> None:
    sql = (
        f"INSERT INTO workout_plans ({PLAN_COLUMNS}) VALUES ("
        ":id, :user_id, :name, :description, CAST(:workouts AS jsonb), :created_at, :updated_at"
        ") RETURNING id"
    )
    await _write(session, QuerySpec(sql, _plan_params(plan)))


async def replace_workout_plan(session: AsyncSession, plan: WorkoutPlan) -> bool:
    sql = (
        "UPDATE workout_plans SET name = :name, description = :description, "
        "workouts = CAST(:workouts AS jsonb), updated_at = :updated_at "
        "WHERE id = :id AND user_id = :user_id RETURNING id"
    )
    return await _write(session, QuerySpec(sql, _without(_plan_params(plan), "created_at")))


async def delete_workout_plan(session: AsyncSession, user_id: str) -> bool:
    return await _write(
        session,
        QuerySpec("DELETE FROM workout_plans WHERE user_id = :user_id RETURNING id", {"user_id": user_id}),
    )


# ---------------------------------------------------------------------------
# Progress entries
# ---------------------------------------------------------------------------


async def insert_progress(session: AsyncSession, entry: ProgressEntry, created_at: datetime) -> None:
    sql = (
        f"INSERT INTO progress_entries ({PROGRESS_COLUMNS}, created_at) VALUES ("
        ":id, :user_id, :metric_type, :value, :unit, :recorded_at, :notes, :location, "
        ":measure_area, :created_at) RETURNING id"
    )
    params = entry.model_dump()
    params["metric_type"] = entry.metric_type.value
    params["created_at"] = created_at
    await _write(session, QuerySpec(sql, params))


async def fetch_progress(session: AsyncSession, user_id: str, query: ProgressQuery) -> list[ProgressEntry]:
    """Entries ordered by recorded_at in ``query.sort_order`` (default newest first)."""
    rows = await _fetch_all(session, build_progress_query(user_id, query))
    return [ProgressEntry.model_validate(r) for r in rows]


async def delete_progress(session: AsyncSession, user_id: str, entry_id: str) -> bool:
    """Delete one entry, only if it belongs to ``user_id``."""
    return await _write(
        session,
        QuerySpec(
            "DELETE FROM progress_entries WHERE id = :id AND user_id = :user_id RETURNING id",
            {"id": entry_id, "user_id": user_id},
        ),
    )
