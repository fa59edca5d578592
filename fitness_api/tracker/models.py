"""Request/response contracts: Pydantic v2 models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import TypeVar

from pydantic import BaseModel, Field, field_validator

ModelT = TypeVar("ModelT", bound=BaseModel)


def as_utc(dt: datetime) -> datetime:
    """Naive timestamps are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class MetricType(str, Enum):
    # Declaration order is the output order of summaries and trends.
    weight = "weight"
    body_fat = "body_fat"
    deadlift_pr = "deadlift_pr"
    squat_pr = "squat_pr"
    bench_pr = "bench_pr"
    body_measure = "body_measure"
    custom = "custom"


class TrendType(str, Enum):
    increasing = "increasing"
    decreasing = "decreasing"
    stable = "stable"


class Difficulty(str, Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class Sex(str, Enum):
    male = "male"
    female = "female"
    other = "other"


class ErrorResponse(BaseModel):
    error: str
    message: str


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class PersonalRecords(BaseModel):
    deadlift: float = 0.0  # kg
    squat: float = 0.0
    bench: float = 0.0


class CurrentFitness(BaseModel):
    fitness_level: Difficulty
    training_frequency: int = Field(ge=1, le=7)  # days per week
    body_fat_percentage: float | None = None
    personal_records: PersonalRecords = Field(default_factory=PersonalRecords)


class FitnessGoals(BaseModel):
    goal_types: list[str]  # "weight loss", "muscle gain", ...
    target_weight: float | None = None
    target_body_fat: float | None = None
    target_personal_records: PersonalRecords = Field(default_factory=PersonalRecords)


class UserRegistrationRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    age: int = Field(ge=13)
    sex: Sex
    weight: float  # kg
    height: float  # cm
    current_fitness: CurrentFitness
    goals: FitnessGoals


class UserUpdateRequest(BaseModel):
    """Partial update. Only fields present in the body are applied."""

    name: str | None = Field(default=None, min_length=1)
    email: str | None = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    age: int | None = Field(default=None, ge=13)
    sex: Sex | None = None
    weight: float | None = None
    height: float | None = None
    current_fitness: CurrentFitness | None = None
    goals: FitnessGoals | None = None


class User(BaseModel):
    id: str
    username: str
    name: str
    email: str
    age: int
    sex: Sex
    weight: float
    height: float
    current_fitness: CurrentFitness
    goals: FitnessGoals
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Exercises
# ---------------------------------------------------------------------------


class Exercise(BaseModel):
    id: str
    name: str
    description: str = ""
    primary_muscle_groups: list[str] = Field(default_factory=list)
    supporting_muscle_groups: list[str] = Field(default_factory=list)
    equipment: list[str] = Field(default_factory=list)
    difficulty: Difficulty
    exercise_type: str  # strength, cardio, flexibility, ...
    demo_video_url: str = ""
    demo_image_url: str = ""
    instructions: list[str] = Field(default_factory=list)
    recommended_for: list[str] = Field(default_factory=list)


class CreateExerciseRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    primary_muscle_groups: list[str] = Field(min_length=1)
    supporting_muscle_groups: list[str] = Field(default_factory=list)
    equipment: list[str] = Field(default_factory=list)
    difficulty: Difficulty
    exercise_type: str = Field(min_length=1)
    demo_video_url: str = ""
    demo_image_url: str = ""
    instructions: list[str] = Field(default_factory=list)
    recommended_for: list[str] = Field(default_factory=list)


class UpdateExerciseRequest(CreateExerciseRequest):
    """Exercise updates replace the whole catalog item."""


class ExerciseFilter(BaseModel):
    query: str = ""
    primary_muscle_groups: list[str] = Field(default_factory=list)
    supporting_muscle_groups: list[str] = Field(default_factory=list)
    equipment: list[str] = Field(default_factory=list)
    difficulty: Difficulty | None = None
    exercise_type: str | None = None
    skip: int = 0
    limit: int = 20
    sort_by: str = "name"
    sort_order: str = "asc"  # validated by the query builder


class ExerciseListResponse(BaseModel):
    exercises: list[Exercise]
    total: int  # size of the returned page
    page: int
    page_size: int


class ExerciseSearchResponse(BaseModel):
    exercises: list[Exercise]
    total: int


# ---------------------------------------------------------------------------
# Workout plans
# ---------------------------------------------------------------------------


class SetDetails(BaseModel):
    set_number: int = Field(ge=1)
    reps: int = 0
    weight: float = 0.0  # kg
    rpe: int | None = Field(default=None, ge=1, le=10)
    rest_duration: int = 0  # seconds
    is_warm_up: bool = False
    notes: str = ""


class Workout(BaseModel):
    name: str = Field(min_length=1)
    exercise_id: str = Field(min_length=1)
    exercise: Exercise | None = None  # populated on read
    muscles_targeted: list[str]
    day: int = Field(ge=1, le=7)  # 1 = Monday, 7 = Sunday
    set_details: list[SetDetails]
    added_at: datetime | None = None
    notes: str = ""
    order: int = 0


class CreateWorkoutPlanRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    workouts: list[Workout]


class UpdateWorkoutPlanRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    workouts: list[Workout] | None = None


class WorkoutPlan(BaseModel):
    id: str
    user_id: str
    name: str
    description: str = ""
    workouts: list[Workout] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class ExerciseVolume(BaseModel):
    exercise_id: str
    exercise_name: str
    total_sets: int


class DayWorkoutVolume(BaseModel):
    day: int
    day_name: str
    total_sets: int
    exercises: list[ExerciseVolume] = Field(default_factory=list)


class DailyWorkoutVolumeResponse(BaseModel):
    user_id: str
    daily_volumes: list[DayWorkoutVolume]
    total_weekly_volume: int


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


class ProgressEntry(BaseModel):
    id: str
    user_id: str
    metric_type: MetricType
    value: float = Field(allow_inf_nan=False)
    unit: str
    recorded_at: datetime
    notes: str = ""
    location: str = ""
    measure_area: str = ""  # chest, bicep, waist, ... for body_measure


class LogProgressRequest(BaseModel):
    metric_type: MetricType
    value: float = Field(allow_inf_nan=False)
    unit: str = Field(min_length=1)
    recorded_at: datetime | None = None  # defaults to now
    notes: str = ""
    location: str = ""
    measure_area: str = ""


class LogProgressResponse(ProgressEntry):
    created_at: datetime


class ProgressQuery(BaseModel):
    metric_types: list[MetricType] = Field(default_factory=list)
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int | None = None
    sort_order: str = "desc"  # validated by the query builder

    @field_validator("start_date", "end_date")
    @classmethod
    def _bounds_in_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None


class GetProgressResponse(BaseModel):
    entries: list[ProgressEntry]
    total: int


class ProgressSummary(BaseModel):
    metric_type: MetricType
    current_value: float
    previous_value: float
    change: float
    percentage_change: float
    unit: str
    last_measured_at: datetime
    measurements_since: datetime  # earliest entry in the queried window
    total_measurements: int


class GetProgressSummaryResponse(BaseModel):
    summaries: list[ProgressSummary]
    user_id: str


class ProgressTrend(BaseModel):
    metric_type: MetricType
    trend_type: TrendType
    start_value: float
    end_value: float
    current_value: float  # alias of end_value
    start_date: datetime
    end_date: datetime
    total_change: float
    percent_change: float
    weekly_rate: float
    monthly_rate: float
    unit: str
    data_points: int


class GetProgressTrendResponse(BaseModel):
    trends: list[ProgressTrend]
    user_id: str


def apply_patch(base: ModelT, patch: BaseModel) -> ModelT:
    """Copy the fields explicitly present in ``patch`` over ``base``.

    Absent fields keep the loaded value; the result is re-validated.
    """
    changes = patch.model_dump(exclude_unset=True, exclude_none=True)
    merged = {**base.model_dump(), **changes}
    return type(base).model_validate(merged)
