"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any
import pytest
from httpx import ASGITransport, AsyncClient

from fitness_api.auth import CredentialStore
from fitness_api.db import get_session
from fitness_api.main import app
from fitness_api.tracker.models import (
    CurrentFitness,
    Difficulty,
    Exercise,
    FitnessGoals,
    MetricType,
    ProgressEntry,
    SetDetails,
    Sex,
    User,
    Workout,
    WorkoutPlan,
)

USER_AUTH = ("alice", "secret")
ADMIN_AUTH = ("root", "hunter2")

BASE_TS = datetime(2026, 2, 15, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fake DB session (no real Postgres needed)
# ---------------------------------------------------------------------------

class FakeSession:
    """Minimal stand-in for AsyncSession.

    Every execute() returns ``rows``; executed statements are recorded so
    connector tests can assert on SQL text and bound params.
    """

    def __init__(self, rows: list[dict[str, Any]] | None = None):
        self._rows = rows or []
        self.statements: list[tuple[str, dict[str, Any]]] = []
        self.commits = 0
        self.rollbacks = 0

    async def execute(self, stmt, params=None):
        self.statements.append((str(stmt), dict(params or {})))
        return FakeResult(self._rows)

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


class FakeResult:
    def __init__(self, rows: list[dict[str, Any]]):
        self._rows = rows
        self._keys = list(rows[0].keys()) if rows else []

    def keys(self):
        return self._keys

    def fetchall(self):
        return [tuple(r[k] for k in self._keys) for r in self._rows]

    def fetchone(self):
        rows = self.fetchall()
        return rows[0] if rows else None


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def fake_session():
    """Return a FakeSession with no rows (override _rows in tests if needed)."""
    return FakeSession()


@pytest.fixture()
def override_session(fake_session):
    """Override the FastAPI dependency so no real DB is needed."""
    async def _override():
        yield fake_session

    app.dependency_overrides[get_session] = _override
    yield fake_session
    app.dependency_overrides.clear()


@pytest.fixture()
def credentials():
    """Whitelist one user and one admin for the duration of a test."""
    previous = app.state.credentials
    app.state.credentials = CredentialStore(
        users=MappingProxyType(dict([USER_AUTH])),
        admins=MappingProxyType(dict([ADMIN_AUTH])),
    )
    yield app.state.credentials
    app.state.credentials = previous


@pytest.fixture()
async def client(override_session, credentials):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def make_user(username: str = "alice", user_id: str = "u-1") -> User:
    return User(
        id=user_id,
        username=username,
        name="Alice",
        email="alice@example.com",
        age=30,
        sex=Sex.female,
        weight=62.0,
        height=168.0,
        current_fitness=CurrentFitness(fitness_level=Difficulty.intermediate, training_frequency=4),
        goals=FitnessGoals(goal_types=["muscle gain"], target_weight=64.0),
        created_at=BASE_TS,
        updated_at=BASE_TS,
    )


def make_exercise(
    exercise_id: str = "ex-1",
    name: str = "Bench Press",
    equipment: list[str] | None = None,
    difficulty: Difficulty = Difficulty.intermediate,
) -> Exercise:
    return Exercise(
        id=exercise_id,
        name=name,
        primary_muscle_groups=["chest"],
        supporting_muscle_groups=["triceps"],
        equipment=equipment if equipment is not None else ["barbell"],
        difficulty=difficulty,
        exercise_type="strength",
    )


def make_entry(
    metric_type: MetricType,
    value: float,
    days_ago: float = 0,
    entry_id: str = "p-1",
    unit: str = "kg",
) -> ProgressEntry:
    """Progress entry recorded ``days_ago`` days before BASE_TS."""
    return ProgressEntry(
        id=entry_id,
        user_id="u-1",
        metric_type=metric_type,
        value=value,
        unit=unit,
        recorded_at=BASE_TS - timedelta(days=days_ago),
    )


def make_workout(
    exercise_id: str,
    day: int,
    sets: int,
    name: str = "Workout",
    order: int = 0,
) -> Workout:
    return Workout(
        name=name,
        exercise_id=exercise_id,
        muscles_targeted=["chest"],
        day=day,
        set_details=[SetDetails(set_number=i + 1, reps=8, weight=60.0) for i in range(sets)],
        order=order,
    )


def make_plan(workouts: list[Workout], user_id: str = "u-1") -> WorkoutPlan:
    return WorkoutPlan(
        id="plan-1",
        user_id=user_id,
        name="Push Pull Legs",
        workouts=workouts,
        created_at=BASE_TS,
        updated_at=BASE_TS,
    )
