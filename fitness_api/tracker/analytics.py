"""Stateless aggregation over progress entries and workout plans. Never raises.

Summary and trend inputs must already be sorted newest-first (descending
``recorded_at``). An ascending input silently swaps the start/end picks.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Iterable, Mapping, Sequence

from fitness_api.tracker.models import (
    DayWorkoutVolume,
    ExerciseVolume,
    MetricType,
    ProgressEntry,
    ProgressSummary,
    ProgressTrend,
    TrendType,
    WorkoutPlan,
)

HOURS_PER_WEEK = 24 * 7
HOURS_PER_MONTH = 24 * 30

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def group_by_metric(entries: Iterable[ProgressEntry]) -> dict[MetricType, list[ProgressEntry]]:
    """Group entries by metric type, keeping input order inside each group.

    Groups come back in MetricType declaration order.
    """
    groups: dict[MetricType, list[ProgressEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.metric_type, []).append(entry)
    return {metric: groups[metric] for metric in MetricType if metric in groups}


def _finite(value: float) -> float:
    # overflowed quotients collapse to 0 like the zero-denominator case
    return value if math.isfinite(value) else 0.0


def percent_change(change: float, base: float) -> float:
    """``change / base * 100``, or 0 when ``base`` is zero."""
    if base == 0:
        return 0.0
    return _finite(change / base * 100.0)


def rate(change: float, periods: float) -> float:
    """Change per period, or 0 for a zero or negative span."""
    if periods <= 0:
        return 0.0
    return _finite(change / periods)


def round_half_away(value: float, ndigits: int = 2) -> float:
    """Round to ``ndigits`` with halves going away from zero (2.345 -> 2.35, -2.345 -> -2.35)."""
    if not math.isfinite(value):
        return value
    # Decimal of the repr, so 2.345 is not first seen as 2.34499..
    exact = Decimal(repr(value))
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, exact.adjusted() + ndigits + 2)
        return float(exact.quantize(Decimal(1).scaleb(-ndigits), rounding=ROUND_HALF_UP))


def classify_trend(total_change: float) -> TrendType:
    if total_change > 0:
        return TrendType.increasing
    if total_change < 0:
        return TrendType.decreasing
    return TrendType.stable


# ---------------------------------------------------------------------------
# Summary: two most recent entries per metric
# ---------------------------------------------------------------------------


def summarize(entries: Sequence[ProgressEntry]) -> list[ProgressSummary]:
    summaries: list[ProgressSummary] = []
    for metric, group in group_by_metric(entries).items():
        current = group[0].value
        previous = group[1].value if len(group) > 1 else current
        change = current - previous

        summaries.append(
            ProgressSummary(
                metric_type=metric,
                current_value=current,
                previous_value=previous,
                change=_finite(change),
                percentage_change=percent_change(change, previous),
                unit=group[0].unit,
                last_measured_at=group[0].recorded_at,
                measurements_since=group[-1].recorded_at,
                total_measurements=len(group),
            )
        )
    return summaries


# ---------------------------------------------------------------------------
# Trend: endpoint-to-endpoint rate over the window
# ---------------------------------------------------------------------------


def compute_trends(entries: Sequence[ProgressEntry]) -> list[ProgressTrend]:
    """One trend per metric with at least two data points."""
    trends: list[ProgressTrend] = []
    for metric, group in group_by_metric(entries).items():
        if len(group) < 2:
            continue

        newest, oldest = group[0], group[-1]
        total_change = newest.value - oldest.value
        elapsed_hours = (newest.recorded_at - oldest.recorded_at).total_seconds() / 3600

        trends.append(
            ProgressTrend(
                metric_type=metric,
                trend_type=classify_trend(total_change),
                start_value=oldest.value,
                end_value=newest.value,
                current_value=newest.value,
                start_date=oldest.recorded_at,
                end_date=newest.recorded_at,
                total_change=_finite(total_change),
                percent_change=percent_change(total_change, oldest.value),
                weekly_rate=round_half_away(rate(total_change, elapsed_hours / HOURS_PER_WEEK)),
                monthly_rate=round_half_away(rate(total_change, elapsed_hours / HOURS_PER_MONTH)),
                unit=newest.unit,
                data_points=len(group),
            )
        )
    return trends


# ---------------------------------------------------------------------------
# Workout volume: sets per weekday
# ---------------------------------------------------------------------------


def daily_volume(
    plan: WorkoutPlan,
    exercise_names: Mapping[str, str],
    day: int | None = None,
) -> list[DayWorkoutVolume]:
    """Total sets per day (Monday..Sunday) with a per-exercise breakdown.

    Without ``day`` every weekday is returned, rest days with zero sets.
    Exercise names fall back to the workout name when the catalog has none.
    """
    days = [day] if day is not None else list(range(1, 8))
    volumes: list[DayWorkoutVolume] = []

    for d in days:
        per_exercise: dict[str, ExerciseVolume] = {}
        workouts = sorted((w for w in plan.workouts if w.day == d), key=lambda w: w.order)
        for workout in workouts:
            sets = len(workout.set_details)
            volume = per_exercise.get(workout.exercise_id)
            if volume is None:
                per_exercise[workout.exercise_id] = ExerciseVolume(
                    exercise_id=workout.exercise_id,
                    exercise_name=exercise_names.get(workout.exercise_id, workout.name),
                    total_sets=sets,
                )
            else:
                volume.total_sets += sets

        exercises = list(per_exercise.values())
        volumes.append(
            DayWorkoutVolume(
                day=d,
                day_name=DAY_NAMES[d - 1],
                total_sets=sum(e.total_sets for e in exercises),
                exercises=exercises,
            )
        )
    return volumes
