"""Tests for request contracts and patch merging."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from fitness_api.tracker.models import (
    CreateExerciseRequest,
    CurrentFitness,
    Difficulty,
    LogProgressRequest,
    MetricType,
    ProgressQuery,
    UpdateWorkoutPlanRequest,
    UserRegistrationRequest,
    UserUpdateRequest,
    apply_patch,
)

from tests.conftest import make_plan, make_user, make_workout


def _registration(**overrides) -> dict:
    body = dict(
        name="Bob",
        email="bob@example.com",
        age=25,
        sex="male",
        weight=80.0,
        height=180.0,
        current_fitness={"fitness_level": "beginner", "training_frequency": 3},
        goals={"goal_types": ["weight loss"]},
    )
    body.update(overrides)
    return body


class TestRegistration:
    def test_valid(self):
        req = UserRegistrationRequest.model_validate(_registration())
        assert req.current_fitness.personal_records.deadlift == 0.0

    @pytest.mark.parametrize(
        "overrides",
        [
            {"email": "not-an-email"},
            {"age": 12},
            {"sex": "unknown"},
            {"current_fitness": {"fitness_level": "beginner", "training_frequency": 8}},
        ],
    )
    def test_invalid(self, overrides):
        with pytest.raises(PydanticValidationError):
            UserRegistrationRequest.model_validate(_registration(**overrides))


class TestApplyPatch:
    def test_only_present_fields_change(self):
        user = make_user()
        updated = apply_patch(user, UserUpdateRequest(weight=64.5))
        assert updated.weight == 64.5
        assert updated.name == user.name
        assert updated.goals == user.goals
        assert updated.id == user.id

    def test_explicit_null_keeps_value(self):
        user = make_user()
        patch = UserUpdateRequest.model_validate({"name": None, "age": 31})
        updated = apply_patch(user, patch)
        assert updated.name == "Alice"
        assert updated.age == 31

    def test_nested_object_replaced(self):
        user = make_user()
        fitness = CurrentFitness(fitness_level=Difficulty.advanced, training_frequency=6)
        updated = apply_patch(user, UserUpdateRequest(current_fitness=fitness))
        assert updated.current_fitness == fitness

    def test_base_untouched(self):
        user = make_user()
        apply_patch(user, UserUpdateRequest(weight=99.0))
        assert user.weight == 62.0

    def test_plan_workouts_replaced(self):
        plan = make_plan([make_workout("ex-1", day=1, sets=3)])
        new_workouts = [make_workout("ex-2", day=2, sets=4)]
        updated = apply_patch(plan, UpdateWorkoutPlanRequest(workouts=new_workouts))
        assert [w.exercise_id for w in updated.workouts] == ["ex-2"]
        assert updated.name == plan.name


class TestOtherContracts:
    def test_exercise_needs_primary_muscle(self):
        with pytest.raises(PydanticValidationError):
            CreateExerciseRequest(
                name="Plank",
                primary_muscle_groups=[],
                difficulty=Difficulty.beginner,
                exercise_type="strength",
            )

    def test_progress_recorded_at_optional(self):
        req = LogProgressRequest(metric_type=MetricType.weight, value=70.0, unit="kg")
        assert req.recorded_at is None

    def test_unknown_metric_rejected(self):
        with pytest.raises(PydanticValidationError):
            LogProgressRequest.model_validate({"metric_type": "mood", "value": 1, "unit": "pts"})

    @pytest.mark.parametrize("raw", ["NaN", "Infinity", "-Infinity"])
    def test_progress_value_must_be_finite(self, raw):
        body = json.loads(f'{{"metric_type": "weight", "value": {raw}, "unit": "kg"}}')
        with pytest.raises(PydanticValidationError):
            LogProgressRequest.model_validate(body)

    def test_window_bounds_normalised_to_utc(self):
        query = ProgressQuery(
            start_date=datetime(2026, 1, 1),
            end_date=datetime(2026, 2, 1, 2, 0, tzinfo=timezone(timedelta(hours=2))),
        )
        assert query.start_date == datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert query.end_date.tzinfo == timezone.utc
        assert query.end_date.hour == 0
