"""Workout session endpoints: detail, exercise toggles/feedback, complete, skip."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fittrainer.api.dependencies import get_session_context, require_client
from fittrainer.api.schemas import (
    FeedbackOut,
    FeedbackRequest,
    PlanExerciseOut,
    SessionDetailResponse,
    SessionExerciseOut,
    WorkoutSessionOut,
)
from fittrainer.core.context import SessionContext
from fittrainer.core.errors import PermissionDeniedError, ValidationFailure
from fittrainer.db.models import TrainingPlan, WorkoutSession
from fittrainer.db.session import get_session
from fittrainer.workouts.feedback import (
    record_actuals,
    save_exercise_feedback,
    session_exercises,
    toggle_exercise_completed,
)
from fittrainer.workouts.lifecycle import complete_session, get_workout_session, skip_session

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _owned_session(db: Session, ctx: SessionContext, session_id: str) -> WorkoutSession:
    """Load a session the acting user may touch: its client, or the plan's coach for reads."""
    session = get_workout_session(db, session_id)
    if ctx.is_client and session.client_id == ctx.user_id:
        return session
    if ctx.is_coach:
        plan = db.get(TrainingPlan, session.plan_id)
        if plan is not None and plan.coach_id == ctx.user_id:
            return session
    raise PermissionDeniedError(f"Session {session_id} is not accessible to user {ctx.user_id}")


def _detail(db: Session, session: WorkoutSession) -> SessionDetailResponse:
    items = session_exercises(db, session)
    completed_count = sum(1 for item in items if item.completed)
    return SessionDetailResponse(
        session=WorkoutSessionOut.model_validate(session),
        exercises=[
            SessionExerciseOut(
                plan_exercise=PlanExerciseOut.model_validate(item.plan_exercise),
                exercise_name=item.exercise.name if item.exercise else None,
                exercise_type=item.exercise.type if item.exercise else None,
                completed=item.completed,
                feedback=FeedbackOut.model_validate(item.feedback) if item.feedback else None,
            )
            for item in items
        ],
        completed_count=completed_count,
        total_count=len(items),
        can_complete=bool(items) and completed_count == len(items),
    )


@router.get("/{session_id}", response_model=SessionDetailResponse)
def get_session_detail(session_id: str, ctx: SessionContext = Depends(get_session_context)) -> SessionDetailResponse:
    """Session with its exercises in plan order and per-exercise feedback."""
    with get_session() as db:
        session = _owned_session(db, ctx, session_id)
        return _detail(db, session)


@router.post("/{session_id}/exercises/{exercise_id}/toggle", response_model=FeedbackOut)
def toggle_exercise(session_id: str, exercise_id: str, ctx: SessionContext = Depends(require_client)) -> FeedbackOut:
    with get_session() as db:
        _owned_session(db, ctx, session_id)
        return FeedbackOut.model_validate(toggle_exercise_completed(db, session_id, exercise_id))


@router.put("/{session_id}/exercises/{exercise_id}/feedback", response_model=FeedbackOut)
def put_exercise_feedback(
    session_id: str,
    exercise_id: str,
    body: FeedbackRequest,
    ctx: SessionContext = Depends(require_client),
) -> FeedbackOut:
    """Save free-text feedback and/or actual sets/reps/weight.

    Fields left out of the body are unchanged; an explicit null feedback clears the text.
    """
    with get_session() as db:
        _owned_session(db, ctx, session_id)
        feedback = None
        if "feedback" in body.model_fields_set:
            feedback = save_exercise_feedback(db, session_id, exercise_id, body.feedback)
        if body.actual_sets is not None or body.actual_reps is not None or body.actual_weight is not None:
            feedback = record_actuals(
                db,
                session_id,
                exercise_id,
                sets=body.actual_sets,
                reps=body.actual_reps,
                weight=body.actual_weight,
            )
        if feedback is None:
            raise ValidationFailure("Request body carries neither feedback nor actual sets/reps/weight")
        return FeedbackOut.model_validate(feedback)


@router.post("/{session_id}/complete", response_model=WorkoutSessionOut)
def post_complete(session_id: str, ctx: SessionContext = Depends(require_client)) -> WorkoutSessionOut:
    """Finish the workout; rejected with 409 until every exercise is completed."""
    with get_session() as db:
        _owned_session(db, ctx, session_id)
        return WorkoutSessionOut.model_validate(complete_session(db, session_id))


@router.post("/{session_id}/skip", response_model=WorkoutSessionOut)
def post_skip(session_id: str, ctx: SessionContext = Depends(get_session_context)) -> WorkoutSessionOut:
    with get_session() as db:
        _owned_session(db, ctx, session_id)
        return WorkoutSessionOut.model_validate(skip_session(db, session_id))
