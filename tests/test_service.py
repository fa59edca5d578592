"""Service-layer tests with the connector mocked out."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from fitness_api.errors import ConflictError, NotFoundError, ValidationError
from fitness_api.tracker import service
from fitness_api.tracker.models import (
    CreateExerciseRequest,
    CreateWorkoutPlanRequest,
    Difficulty,
    ExerciseFilter,
    LogProgressRequest,
    MetricType,
    ProgressQuery,
    UpdateExerciseRequest,
    UpdateWorkoutPlanRequest,
    UserRegistrationRequest,
    UserUpdateRequest,
)

from tests.conftest import FakeSession, make_entry, make_exercise, make_plan, make_user, make_workout

C = "fitness_api.tracker.service.connector"


def _exercise_request(name: str = "Bench Press") -> CreateExerciseRequest:
    return CreateExerciseRequest(
        name=name,
        primary_muscle_groups=["chest"],
        difficulty=Difficulty.intermediate,
        exercise_type="strength",
    )


class TestUsers:
    @pytest.mark.asyncio
    async def test_missing_user(self):
        with patch(f"{C}.fetch_user_by_username", return_value=None):
            with pytest.raises(NotFoundError):
                await service.get_user(FakeSession(), "ghost")

    @pytest.mark.asyncio
    async def test_update_merges_and_stamps(self):
        user = make_user()
        with (
            patch(f"{C}.fetch_user_by_username", return_value=user),
            patch(f"{C}.replace_user", return_value=True) as replace,
        ):
            updated = await service.update_user(FakeSession(), "alice", UserUpdateRequest(weight=65.0))
        assert updated.weight == 65.0
        assert updated.email == user.email
        assert updated.updated_at > user.updated_at
        replace.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_conflict_on_integrity_error(self):
        session = FakeSession()
        request = UserRegistrationRequest.model_validate(
            make_user().model_dump(include={"name", "email", "age", "sex", "weight", "height", "current_fitness", "goals"})
        )
        with (
            patch(f"{C}.fetch_user_by_username", return_value=None),
            patch(f"{C}.insert_user", AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception("dup")))),
        ):
            with pytest.raises(ConflictError):
                await service.create_user(session, "alice", request)
        assert session.rollbacks == 1


class TestExercises:
    @pytest.mark.asyncio
    async def test_list_page_metadata(self):
        page = [make_exercise("ex-1"), make_exercise("ex-2", name="Incline Press")]
        with patch(f"{C}.fetch_exercises", return_value=page):
            result = await service.list_exercises(FakeSession(), ExerciseFilter(skip=40, limit=20))
        assert result.total == 2
        assert result.page == 3
        assert result.page_size == 20

    @pytest.mark.asyncio
    async def test_search_too_short(self):
        with pytest.raises(ValidationError):
            await service.search_exercises(FakeSession(), " a ")

    @pytest.mark.asyncio
    async def test_search_empty(self):
        with pytest.raises(ValidationError, match="required"):
            await service.search_exercises(FakeSession(), "   ")

    @pytest.mark.asyncio
    async def test_search_caps_results(self):
        with patch(f"{C}.fetch_exercises", return_value=[make_exercise()]) as fetch:
            result = await service.search_exercises(FakeSession(), "bench")
        filt = fetch.await_args.args[1]
        assert filt.limit == 5
        assert filt.query == "bench"
        assert result.total == 1

    @pytest.mark.asyncio
    async def test_create_duplicate_name(self):
        with patch(f"{C}.fetch_exercise_by_name", return_value=make_exercise()):
            with pytest.raises(ConflictError):
                await service.create_exercise(FakeSession(), _exercise_request("bench press"))

    @pytest.mark.asyncio
    async def test_create(self):
        with (
            patch(f"{C}.fetch_exercise_by_name", return_value=None),
            patch(f"{C}.insert_exercise", return_value=None) as insert,
        ):
            exercise = await service.create_exercise(FakeSession(), _exercise_request())
        assert exercise.id
        assert exercise.name == "Bench Press"
        insert.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_rename_collision(self):
        with (
            patch(f"{C}.fetch_exercise_by_id", return_value=make_exercise("ex-1")),
            patch(f"{C}.fetch_exercise_by_name", return_value=make_exercise("ex-2", name="Squat")),
        ):
            with pytest.raises(ConflictError):
                await service.update_exercise(
                    FakeSession(), "ex-1", UpdateExerciseRequest(**_exercise_request("Squat").model_dump())
                )

    @pytest.mark.asyncio
    async def test_update_same_name_other_case(self):
        with (
            patch(f"{C}.fetch_exercise_by_id", return_value=make_exercise("ex-1")),
            patch(f"{C}.fetch_exercise_by_name") as by_name,
            patch(f"{C}.replace_exercise", return_value=True),
        ):
            updated = await service.update_exercise(
                FakeSession(), "ex-1", UpdateExerciseRequest(**_exercise_request("BENCH PRESS").model_dump())
            )
        assert updated.name == "BENCH PRESS"
        by_name.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_missing(self):
        with patch(f"{C}.delete_exercise", return_value=False):
            with pytest.raises(NotFoundError):
                await service.delete_exercise(FakeSession(), "ex-404")


class TestWorkoutPlans:
    @pytest.mark.asyncio
    async def test_create_conflict(self):
        request = CreateWorkoutPlanRequest(name="PPL", workouts=[make_workout("ex-1", day=1, sets=3)])
        with (
            patch(f"{C}.fetch_user_by_username", return_value=make_user()),
            patch(f"{C}.fetch_workout_plan", return_value=make_plan([])),
        ):
            with pytest.raises(ConflictError):
                await service.create_workout_plan(FakeSession(), "alice", request)

    @pytest.mark.asyncio
    async def test_create_stamps_and_populates(self):
        request = CreateWorkoutPlanRequest(
            name="PPL",
            workouts=[make_workout("ex-1", day=1, sets=3), make_workout("ex-missing", day=2, sets=2)],
        )
        with (
            patch(f"{C}.fetch_user_by_username", return_value=make_user()),
            patch(f"{C}.fetch_workout_plan", return_value=None),
            patch(f"{C}.insert_workout_plan", return_value=None),
            patch(f"{C}.fetch_exercises_by_ids", return_value={"ex-1": make_exercise()}),
        ):
            plan = await service.create_workout_plan(FakeSession(), "alice", request)
        assert plan.user_id == "u-1"
        assert all(w.added_at is not None for w in plan.workouts)
        assert plan.workouts[0].exercise.name == "Bench Press"
        assert plan.workouts[1].exercise is None

    @pytest.mark.asyncio
    async def test_get_missing_plan(self):
        with (
            patch(f"{C}.fetch_user_by_username", return_value=make_user()),
            patch(f"{C}.fetch_workout_plan", return_value=None),
        ):
            with pytest.raises(NotFoundError):
                await service.get_workout_plan(FakeSession(), "alice")

    @pytest.mark.asyncio
    async def test_update_keeps_unsent_fields(self):
        existing = make_plan([make_workout("ex-1", day=1, sets=3)])
        with (
            patch(f"{C}.fetch_user_by_username", return_value=make_user()),
            patch(f"{C}.fetch_workout_plan", return_value=existing),
            patch(f"{C}.replace_workout_plan", return_value=True),
            patch(f"{C}.fetch_exercises_by_ids", return_value={}),
        ):
            plan = await service.update_workout_plan(
                FakeSession(), "alice", UpdateWorkoutPlanRequest(name="Upper/Lower")
            )
        assert plan.name == "Upper/Lower"
        assert [w.exercise_id for w in plan.workouts] == ["ex-1"]
        assert plan.workouts[0].added_at is not None

    @pytest.mark.asyncio
    async def test_daily_volume(self):
        plan = make_plan([make_workout("ex-1", day=1, sets=3), make_workout("ex-2", day=5, sets=4)])
        with (
            patch(f"{C}.fetch_user_by_username", return_value=make_user()),
            patch(f"{C}.fetch_workout_plan", return_value=plan),
            patch(f"{C}.fetch_exercises_by_ids", return_value={"ex-1": make_exercise()}),
        ):
            result = await service.get_daily_volume(FakeSession(), "alice")
        assert len(result.daily_volumes) == 7
        assert result.total_weekly_volume == 7
        assert result.daily_volumes[0].exercises[0].exercise_name == "Bench Press"

    @pytest.mark.asyncio
    async def test_daily_volume_bad_day(self):
        with pytest.raises(ValidationError):
            await service.get_daily_volume(FakeSession(), "alice", day=8)


class TestProgress:
    @pytest.mark.asyncio
    async def test_log_defaults_recorded_at(self):
        with (
            patch(f"{C}.fetch_user_by_username", return_value=make_user()),
            patch(f"{C}.insert_progress", return_value=None) as insert,
        ):
            resp = await service.log_progress(
                FakeSession(), "alice", LogProgressRequest(metric_type=MetricType.weight, value=70.0, unit="kg")
            )
        assert resp.recorded_at == resp.created_at
        assert resp.user_id == "u-1"
        insert.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_log_naive_timestamp_is_utc(self):
        with (
            patch(f"{C}.fetch_user_by_username", return_value=make_user()),
            patch(f"{C}.insert_progress", return_value=None),
        ):
            resp = await service.log_progress(
                FakeSession(),
                "alice",
                LogProgressRequest(
                    metric_type=MetricType.weight, value=70.0, unit="kg", recorded_at=datetime(2026, 1, 5, 8, 0)
                ),
            )
        assert resp.recorded_at == datetime(2026, 1, 5, 8, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_summary_forces_descending_window(self):
        entries = [make_entry(MetricType.weight, 75.0, 0), make_entry(MetricType.weight, 78.0, 3)]
        with (
            patch(f"{C}.fetch_user_by_username", return_value=make_user()),
            patch(f"{C}.fetch_progress", return_value=entries) as fetch,
        ):
            resp = await service.get_progress_summary(
                FakeSession(), "alice", ProgressQuery(sort_order="asc", limit=1)
            )
        query = fetch.await_args.args[2]
        assert query.sort_order == "desc"
        assert query.limit is None
        assert resp.summaries[0].current_value == 75.0
        assert resp.user_id == "u-1"

    @pytest.mark.asyncio
    async def test_trend_unknown_user(self):
        with patch(f"{C}.fetch_user_by_username", return_value=None):
            with pytest.raises(NotFoundError):
                await service.get_progress_trend(FakeSession(), "ghost")

    @pytest.mark.asyncio
    async def test_get_progress_total(self):
        entries = [make_entry(MetricType.weight, 75.0, 0, "p-2"), make_entry(MetricType.weight, 78.0, 3, "p-1")]
        with (
            patch(f"{C}.fetch_user_by_username", return_value=make_user()),
            patch(f"{C}.fetch_progress", return_value=entries),
        ):
            resp = await service.get_progress(FakeSession(), "alice", ProgressQuery())
        assert resp.total == 2

    @pytest.mark.asyncio
    async def test_delete_other_users_entry(self):
        with (
            patch(f"{C}.fetch_user_by_username", return_value=make_user()),
            patch(f"{C}.delete_progress", return_value=False),
        ):
            with pytest.raises(NotFoundError):
                await service.delete_progress(FakeSession(), "alice", "p-someone-else")
