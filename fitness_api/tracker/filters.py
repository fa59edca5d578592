"""Filter/sort/pagination specs -> parameterised SQL against the entity tables.

Every builder is deterministic: the same filter always yields the same SQL text,
the same params and (via an ``id`` tie-breaker) the same row order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from fitness_api.errors import ValidationError
from fitness_api.tracker.models import ExerciseFilter, ProgressQuery

EXERCISE_COLUMNS = (
    "id, name, description, primary_muscle_groups, supporting_muscle_groups, "
    "equipment, difficulty, exercise_type, demo_video_url, demo_image_url, "
    "instructions, recommended_for"
)

PROGRESS_COLUMNS = (
    "id, user_id, metric_type, value, unit, recorded_at, notes, location, measure_area"
)

# Set-membership dimensions: entity tag set must intersect the supplied set.
EXERCISE_TAG_FIELDS = ("primary_muscle_groups", "supporting_muscle_groups", "equipment")

SORTABLE_EXERCISE_FIELDS = frozenset({"name", "difficulty", "exercise_type", "created_at", "updated_at"})

SORT_DIRECTIONS = {"asc": "ASC", "desc": "DESC"}


@dataclass(frozen=True, slots=True)
class QuerySpec:
    sql: str
    params: dict[str, Any] = field(default_factory=dict)


def sort_direction(value: str | None, default: str = "asc") -> str:
    """Map ``asc``/``desc`` to SQL. Empty means ``default``; anything else is rejected."""
    key = value or default
    try:
        return SORT_DIRECTIONS[key]
    except KeyError:
        raise ValidationError(f"Sort order must be 'asc' or 'desc', got {value!r}")


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the value matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def page_number(skip: int, limit: int) -> int:
    """1-based page for a skip/limit window."""
    if skip > 0 and limit > 0:
        return skip // limit + 1
    return 1


def build_exercise_query(filt: ExerciseFilter) -> QuerySpec:
    if filt.limit <= 0:
        raise ValidationError("limit must be a positive integer")
    if filt.skip < 0:
        raise ValidationError("skip must not be negative")
    if filt.sort_by not in SORTABLE_EXERCISE_FIELDS:
        raise ValidationError(f"Cannot sort exercises by {filt.sort_by!r}")
    direction = sort_direction(filt.sort_order, "asc")

    clauses: list[str] = []
    params: dict[str, Any] = {}

    # Case-insensitive substring match on the name
    if filt.query:
        clauses.append("lower(name) LIKE :name_pattern ESCAPE '\\'")
        params["name_pattern"] = f"%{escape_like(filt.query.lower())}%"

    for tag_field in EXERCISE_TAG_FIELDS:
        values = getattr(filt, tag_field)
        if values:
            clauses.append(f"{tag_field} && CAST(:{tag_field} AS text[])")
            params[tag_field] = list(values)

    if filt.difficulty is not None:
        clauses.append("difficulty = :difficulty")
        params["difficulty"] = filt.difficulty.value

    if filt.exercise_type:
        clauses.append("exercise_type = :exercise_type")
        params["exercise_type"] = filt.exercise_type

    sql = f"SELECT {EXERCISE_COLUMNS} FROM exercises"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += f" ORDER BY {filt.sort_by} {direction}, id ASC LIMIT :limit OFFSET :skip"
    params["limit"] = filt.limit
    params["skip"] = filt.skip

    return QuerySpec(sql, params)


def build_progress_query(user_id: str, query: ProgressQuery) -> QuerySpec:
    """Entries of one user, ordered by ``recorded_at`` in the requested direction."""
    direction = sort_direction(query.sort_order, "desc")
    if query.limit is not None and query.limit <= 0:
        raise ValidationError("limit must be a positive integer")
    if query.start_date and query.end_date and query.start_date > query.end_date:
        raise ValidationError("start_date must not be after end_date")

    sql = f"SELECT {PROGRESS_COLUMNS} FROM progress_entries WHERE user_id = :user_id"
    params: dict[str, Any] = {"user_id": user_id}

    if query.metric_types:
        sql += " AND metric_type = ANY(CAST(:metric_types AS text[]))"
        params["metric_types"] = [m.value for m in query.metric_types]
    if query.start_date is not None:
        sql += " AND recorded_at >= :start_date"
        params["start_date"] = query.start_date
    if query.end_date is not None:
        sql += " AND recorded_at <= :end_date"
        params["end_date"] = query.end_date

    sql += f" ORDER BY recorded_at {direction}, id {direction}"
    if query.limit is not None:
        sql += " LIMIT :limit"
        params["limit"] = query.limit

    return QuerySpec(sql, params)
