"""Per-exercise feedback inside a workout session.

One ExerciseFeedback row per (session, exercise), created lazily on the first
toggle or feedback save and updated afterwards. The completed flag and the
free-text feedback are independent of each other.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fittrainer.core.errors import ConcurrencyConflictError, InvalidTransitionError, ValidationFailure
from fittrainer.db.models import SESSION_IN_PROGRESS, Exercise, ExerciseFeedback, PlanExercise, WorkoutSession
from fittrainer.workouts.lifecycle import get_workout_session


@dataclass(frozen=True)
class SessionExercise:
    """A plan prescription line joined to this session's feedback (if any)."""

    plan_exercise: PlanExercise
    exercise: Exercise | None
    feedback: ExerciseFeedback | None

    @property
    def completed(self) -> bool:
        return bool(self.feedback and self.feedback.completed)


def session_exercises(db: Session, session: WorkoutSession) -> list[SessionExercise]:
    """Plan exercises in order_index order, each with its feedback for `session`."""
    rows = db.execute(
        select(PlanExercise, Exercise)
        .join(Exercise, Exercise.id == PlanExercise.exercise_id, isouter=True)
        .where(PlanExercise.plan_id == session.plan_id)
        .order_by(PlanExercise.order_index.asc())
    ).all()
    feedback_by_exercise = {
        fb.exercise_id: fb
        for fb in db.execute(select(ExerciseFeedback).where(ExerciseFeedback.session_id == session.id)).scalars().all()
    }
    return [
        SessionExercise(plan_exercise=plan_exercise, exercise=exercise, feedback=feedback_by_exercise.get(plan_exercise.exercise_id))
        for plan_exercise, exercise in rows
    ]


def _editable_session(db: Session, session_id: str, exercise_id: str) -> WorkoutSession:
    """Load a session that accepts feedback for `exercise_id`.

    Raises:
        NotFoundError: If the session does not exist
        InvalidTransitionError: If the session is not In Progress
        ValidationFailure: If the exercise is not part of the session's plan
    """
    session = get_workout_session(db, session_id)
    if session.status != SESSION_IN_PROGRESS:
        raise InvalidTransitionError(session.id, session.status, SESSION_IN_PROGRESS)

    in_plan = db.execute(
        select(PlanExercise.id).where(
            PlanExercise.plan_id == session.plan_id,
            PlanExercise.exercise_id == exercise_id,
        ).limit(1)
    ).first()
    if in_plan is None:
        raise ValidationFailure(f"Exercise {exercise_id} is not part of plan {session.plan_id}")
    return session


def get_feedback(db: Session, session_id: str, exercise_id: str) -> ExerciseFeedback | None:
    return db.execute(
        select(ExerciseFeedback).where(
            ExerciseFeedback.session_id == session_id,
            ExerciseFeedback.exercise_id == exercise_id,
        )
    ).scalar_one_or_none()


def _get_or_create_feedback(db: Session, session_id: str, exercise_id: str) -> ExerciseFeedback:
    """Return the (session, exercise) feedback row, inserting it when missing.

    The insert runs in a SAVEPOINT; when a concurrent request wins the
    unique constraint, the existing row is re-selected instead.

    Raises:
        ConcurrencyConflictError: If the insert conflicted but no row is found
    """
    feedback = get_feedback(db, session_id, exercise_id)
    if feedback is not None:
        return feedback

    feedback = ExerciseFeedback(session_id=session_id, exercise_id=exercise_id, completed=False)
    try:
        with db.begin_nested():
            db.add(feedback)
            db.flush()
    except IntegrityError:
        logger.warning(
            "Exercise feedback creation conflict, re-selecting existing row",
            session_id=session_id,
            exercise_id=exercise_id,
        )
        existing = get_feedback(db, session_id, exercise_id)
        if existing is None:
            raise ConcurrencyConflictError(
                f"Feedback insert for session {session_id}, exercise {exercise_id} conflicted but no row was found"
            ) from None
        return existing
    return feedback



def set_exercise_completed(db: Session, session_id: str, exercise_id: str, completed: bool) -> ExerciseFeedback:
    """Set the completed flag (idempotent upsert)."""
    _editable_session(db, session_id, exercise_id)
    feedback = _get_or_create_feedback(db, session_id, exercise_id)
    feedback.completed = completed
    db.flush()
    logger.debug("Exercise completion set", session_id=session_id, exercise_id=exercise_id, completed=completed)
    return feedback


def toggle_exercise_completed(db: Session, session_id: str, exercise_id: str) -> ExerciseFeedback:
    """Flip the completed flag; the first toggle on a fresh exercise marks it completed."""
    current = get_feedback(db, session_id, exercise_id)
    return set_exercise_completed(db, session_id, exercise_id, not (current and current.completed))


def save_exercise_feedback(db: Session, session_id: str, exercise_id: str, text: str | None) -> ExerciseFeedback:
    """Store free-text feedback without touching the completed flag."""
    _editable_session(db, session_id, exercise_id)
    feedback = _get_or_create_feedback(db, session_id, exercise_id)
    feedback.feedback = text.strip() if text and text.strip() else None
    db.flush()
    logger.debug("Exercise feedback saved", session_id=session_id, exercise_id=exercise_id)
    return feedback


def record_actuals(
    db: Session,
    session_id: str,
    exercise_id: str,
    *,
    sets: int | None = None,
    reps: int | None = None,
    weight: float | None = None,
) -> ExerciseFeedback:
    """Record the sets/reps/weight actually performed (used for progress tracking)."""
    for name, value in (("sets", sets), ("reps", reps), ("weight", weight)):
        if value is not None and value < 0:
            raise ValidationFailure(f"Actual {name} cannot be negative: {value}")

    _editable_session(db, session_id, exercise_id)
    feedback = _get_or_create_feedback(db, session_id, exercise_id)
    if sets is not None:
        feedback.actual_sets = sets
    if reps is not None:
        feedback.actual_reps = reps
    if weight is not None:
        feedback.actual_weight = weight
    db.flush()
    return feedback
