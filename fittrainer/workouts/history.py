"""Client workout history: dashboard summary and per-exercise progress."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fittrainer.db.models import (
    EXERCISE_BODYWEIGHT,
    EXERCISE_WEIGHTED,
    PLAN_ACTIVE,
    PLAN_COMPLETED,
    SESSION_COMPLETED,
    Exercise,
    ExerciseFeedback,
    TrainingPlan,
    WorkoutSession,
)
from fittrainer.plans.progress import expire_overdue_plans
from fittrainer.utils.dates import to_utc

RECENT_WORKOUTS_LIMIT = 4


@dataclass(frozen=True)
class RecentWorkout:
    session_id: str
    plan_id: str
    plan_name: str | None
    completed_date: datetime | None
    duration_minutes: int | None


@dataclass(frozen=True)
class DashboardSummary:
    active_plans: int
    completed_plans: int
    total_workouts: int
    recent_workouts: list[RecentWorkout]
    expired_plan_ids: list[str] = field(default_factory=list)


def _count_plans(db: Session, client_id: str, status: str) -> int:
    return int(
        db.execute(
            select(func.count(TrainingPlan.id)).where(TrainingPlan.client_id == client_id, TrainingPlan.status == status)
        ).scalar_one()
    )


def client_dashboard(db: Session, client_id: str, as_of: date) -> DashboardSummary:
    """Dashboard numbers for a client.

    Expires overdue plans first so the Active/Completed counts reflect today.
    """
    expired = expire_overdue_plans(db, client_id, as_of)

    total_workouts = int(
        db.execute(
            select(func.count(WorkoutSession.id)).where(
                WorkoutSession.client_id == client_id,
                WorkoutSession.status == SESSION_COMPLETED,
            )
        ).scalar_one()
    )

    recent_rows = db.execute(
        select(WorkoutSession, TrainingPlan.name)
        .join(TrainingPlan, TrainingPlan.id == WorkoutSession.plan_id)
        .where(WorkoutSession.client_id == client_id, WorkoutSession.status == SESSION_COMPLETED)
        .order_by(WorkoutSession.completed_date.desc())
        .limit(RECENT_WORKOUTS_LIMIT)
    ).all()

    return DashboardSummary(
        active_plans=_count_plans(db, client_id, PLAN_ACTIVE),
        completed_plans=_count_plans(db, client_id, PLAN_COMPLETED),
        total_workouts=total_workouts,
        recent_workouts=[
            RecentWorkout(
                session_id=session.id,
                plan_id=session.plan_id,
                plan_name=plan_name,
                completed_date=session.completed_date,
                duration_minutes=session.duration_minutes,
            )
            for session, plan_name in recent_rows
        ],
        expired_plan_ids=expired,
    )


@dataclass(frozen=True)
class Performance:
    """What the client actually did for an exercise in one session."""

    completed_date: datetime
    plan_name: str | None
    sets: int | None
    reps: int | None
    weight: float | None


@dataclass(frozen=True)
class Improvement:
    """First-vs-latest comparison.

    Attributes:
        kind: "weight" (volume of weighted work) or "reps" (bodyweight reps)
        improvement_percent: Change relative to the first session, one decimal
        first_value: Volume (kg) or total reps of the first session
        latest_value: Volume (kg) or total reps of the latest session
    """

    kind: str
    improvement_percent: float
    first_value: float
    latest_value: float


@dataclass(frozen=True)
class ExerciseProgress:
    exercise_id: str
    exercise_name: str
    exercise_type: str
    sessions: list[Performance]
    improvement: Improvement | None

    @property
    def total_sessions(self) -> int:
        return len(self.sessions)

    @property
    def first(self) -> Performance:
        return self.sessions[0]

    @property
    def latest(self) -> Performance:
        return self.sessions[-1]


def calculate_improvement(first: Performance, latest: Performance, exercise_type: str) -> Improvement | None:
    """Compare two performances; None when there is no meaningful baseline."""
    if exercise_type == EXERCISE_WEIGHTED:
        first_total = (first.weight or 0) * (first.reps or 0) * (first.sets or 1)
        latest_total = (latest.weight or 0) * (latest.reps or 0) * (latest.sets or 1)
        kind = "weight"
    elif exercise_type == EXERCISE_BODYWEIGHT:
        first_total = (first.reps or 0) * (first.sets or 1)
        latest_total = (latest.reps or 0) * (latest.sets or 1)
        kind = "reps"
    else:
        return None

    if first_total == 0:
        return None
    improvement = (latest_total - first_total) / first_total * 100
    return Improvement(
        kind=kind,
        improvement_percent=round(improvement, 1),
        first_value=float(first_total),
        latest_value=float(latest_total),
    )


def exercise_progress(db: Session, client_id: str) -> list[ExerciseProgress]:
    """Per-exercise performance history across the client's completed sessions.

    Only feedback marked completed counts. Exercises are ordered by their most
    recent session, newest first.
    """
    rows = db.execute(
        select(ExerciseFeedback, Exercise, WorkoutSession.completed_date, TrainingPlan.name)
        .join(WorkoutSession, WorkoutSession.id == ExerciseFeedback.session_id)
        .join(Exercise, Exercise.id == ExerciseFeedback.exercise_id)
        .join(TrainingPlan, TrainingPlan.id == WorkoutSession.plan_id)
        .where(
            WorkoutSession.client_id == client_id,
            WorkoutSession.status == SESSION_COMPLETED,
            WorkoutSession.completed_date.is_not(None),
            ExerciseFeedback.completed.is_(True),
        )
    ).all()

    grouped: dict[str, tuple[Exercise, list[Performance]]] = {}
    for feedback, exercise, completed_date, plan_name in rows:
        _, performances = grouped.setdefault(exercise.id, (exercise, []))
        performances.append(
            Performance(
                completed_date=to_utc(completed_date),
                plan_name=plan_name,
                sets=feedback.actual_sets,
                reps=feedback.actual_reps,
                weight=feedback.actual_weight,
            )
        )

    progress: list[ExerciseProgress] = []
    for exercise, performances in grouped.values():
        performances.sort(key=lambda p: p.completed_date)
        progress.append(
            ExerciseProgress(
                exercise_id=exercise.id,
                exercise_name=exercise.name,
                exercise_type=exercise.type,
                sessions=performances,
                improvement=calculate_improvement(performances[0], performances[-1], exercise.type),
            )
        )

    progress.sort(key=lambda item: item.latest.completed_date, reverse=True)
    return progress
