"""Client-facing endpoints: visible plans, dashboard, today's workout, profile.

Also exposes a client's exercise progress to their coach.
"""

from datetime import date

from fastapi import APIRouter, Depends
from loguru import logger
from sqlalchemy import select

from fittrainer.api.dependencies import get_as_of, require_client, require_coach
from fittrainer.api.schemas import (
    DashboardResponse,
    ExerciseProgressOut,
    ImprovementOut,
    PerformanceOut,
    PlanOut,
    ProfileResponse,
    RecentWorkoutOut,
    TodayResponse,
    VisiblePlansResponse,
    WorkoutSessionOut,
)
from fittrainer.core.context import SessionContext
from fittrainer.core.errors import NotFoundError, PermissionDeniedError
from fittrainer.db.models import TrainingPlan, User
from fittrainer.db.session import get_session
from fittrainer.plans.visibility import select_current_plan, visible_plans
from fittrainer.users.metrics import calculate_age, calculate_bmi
from fittrainer.workouts.history import client_dashboard, exercise_progress
from fittrainer.workouts.materialization import ensure_todays_sessions

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("/me/plans", response_model=VisiblePlansResponse)
def get_visible_plans(
    ctx: SessionContext = Depends(require_client),
    as_of: date | None = Depends(get_as_of),
) -> VisiblePlansResponse:
    """Plans the client may see today, with the one to feature as current."""
    day = as_of or ctx.today()
    with get_session() as db:
        plans = visible_plans(db, ctx.user_id, day)
        current = select_current_plan(plans, day)
        return VisiblePlansResponse(
            as_of=day,
            plans=[PlanOut.model_validate(plan) for plan in plans],
            current_plan_id=current.id if current else None,
        )


@router.get("/me/dashboard", response_model=DashboardResponse)
def get_dashboard(
    ctx: SessionContext = Depends(require_client),
    as_of: date | None = Depends(get_as_of),
) -> DashboardResponse:
    """Dashboard counts and recent workouts; expires overdue plans first."""
    day = as_of or ctx.today()
    with get_session() as db:
        summary = client_dashboard(db, ctx.user_id, day)
        return DashboardResponse(
            active_plans=summary.active_plans,
            completed_plans=summary.completed_plans,
            total_workouts=summary.total_workouts,
            recent_workouts=[RecentWorkoutOut.model_validate(item) for item in summary.recent_workouts],
        )


@router.post("/me/sessions/today", response_model=TodayResponse)
def materialize_today(
    ctx: SessionContext = Depends(require_client),
    as_of: date | None = Depends(get_as_of),
) -> TodayResponse:
    """Resolve today's workout, creating the session on first open."""
    day = as_of or ctx.today()
    logger.info("Today's workout requested", client_id=ctx.user_id, as_of=day.isoformat())
    with get_session() as db:
        sessions = ensure_todays_sessions(db, ctx.user_id, day)
        out = [WorkoutSessionOut.model_validate(session) for session in sessions]
        return TodayResponse(as_of=day, session=out[0] if out else None, sessions=out)


@router.get("/me/profile", response_model=ProfileResponse)
def get_profile(
    ctx: SessionContext = Depends(require_client),
    as_of: date | None = Depends(get_as_of),
) -> ProfileResponse:
    day = as_of or ctx.today()
    with get_session() as db:
        user = db.get(User, ctx.user_id)
        if user is None:
            raise NotFoundError("User", ctx.user_id)
        return ProfileResponse(
            id=user.id,
            name=user.name,
            email=user.email,
            age=calculate_age(user.date_of_birth, day),
            bmi=calculate_bmi(user.height_cm, user.weight_kg),
            height_cm=user.height_cm,
            weight_kg=user.weight_kg,
            workouts_per_week=user.workouts_per_week,
            fitness_goal=user.fitness_goal,
        )


@router.get("/{client_id}/progress", response_model=list[ExerciseProgressOut])
def get_client_progress(
    client_id: str,
    ctx: SessionContext = Depends(require_coach),
) -> list[ExerciseProgressOut]:
    """Per-exercise progress of one of the coach's clients."""
    with get_session() as db:
        coaches_client = db.execute(
            select(TrainingPlan.id).where(TrainingPlan.coach_id == ctx.user_id, TrainingPlan.client_id == client_id).limit(1)
        ).first()
        if coaches_client is None:
            raise PermissionDeniedError(f"Client {client_id} has no plans from coach {ctx.user_id}")

        return [
            ExerciseProgressOut(
                exercise_id=item.exercise_id,
                exercise_name=item.exercise_name,
                exercise_type=item.exercise_type,
                total_sessions=item.total_sessions,
                sessions=[PerformanceOut.model_validate(p) for p in item.sessions],
                improvement=ImprovementOut.model_validate(item.improvement) if item.improvement else None,
            )
            for item in exercise_progress(db, client_id)
        ]
