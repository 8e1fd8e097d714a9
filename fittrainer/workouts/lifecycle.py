"""Workout session status machine.

Scheduled -> In Progress -> Completed
Scheduled | In Progress -> Skipped

Completed and Skipped are terminal. Completing a session requires every
exercise of the plan to be marked completed in the session's feedback.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from fittrainer.config.settings import settings
from fittrainer.core.errors import CompletionGateError, InvalidTransitionError, NotFoundError
from fittrainer.db.models import (
    SESSION_COMPLETED,
    SESSION_IN_PROGRESS,
    SESSION_SCHEDULED,
    SESSION_SKIPPED,
    ExerciseFeedback,
    PlanExercise,
    User,
    WorkoutSession,
)
from fittrainer.utils.dates import to_utc, today_in, utc_now

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    SESSION_SCHEDULED: frozenset({SESSION_IN_PROGRESS, SESSION_SKIPPED}),
    SESSION_IN_PROGRESS: frozenset({SESSION_COMPLETED, SESSION_SKIPPED}),
    SESSION_COMPLETED: frozenset(),
    SESSION_SKIPPED: frozenset(),
}

OUTSTANDING_STATUSES = (SESSION_SCHEDULED, SESSION_IN_PROGRESS)


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def _transition(session: WorkoutSession, target: str) -> None:
    if not can_transition(session.status, target):
        raise InvalidTransitionError(session.id, session.status, target)
    session.status = target


def get_workout_session(db: Session, session_id: str) -> WorkoutSession:
    """Load a workout session.

    Raises:
        NotFoundError: If the session does not exist
    """
    session = db.get(WorkoutSession, session_id)
    if session is None:
        raise NotFoundError("WorkoutSession", session_id)
    return session


def mark_in_progress(db: Session, session: WorkoutSession, *, now: datetime | None = None) -> WorkoutSession:
    """Scheduled -> In Progress, recording when the workout started.

    Idempotent for a session that is already In Progress.
    """
    if session.status == SESSION_IN_PROGRESS:
        return session
    _transition(session, SESSION_IN_PROGRESS)
    session.started_at = now or utc_now()
    db.flush()
    logger.info("Workout session started", session_id=session.id, plan_id=session.plan_id)
    return session


def start_session(db: Session, session_id: str, *, now: datetime | None = None) -> WorkoutSession:
    return mark_in_progress(db, get_workout_session(db, session_id), now=now)


@dataclass(frozen=True)
class GateStatus:
    """Completion gate state for a session.

    Attributes:
        total: Exercises prescribed by the plan
        completed: Prescribed exercises marked completed in this session
        missing_exercise_ids: Exercise IDs still to be completed, in plan order
    """

    total: int
    completed: int
    missing_exercise_ids: tuple[str, ...]

    @property
    def is_open(self) -> bool:
        return self.total > 0 and self.completed == self.total


def completion_gate(db: Session, session: WorkoutSession) -> GateStatus:
    prescribed = db.execute(
        select(PlanExercise.exercise_id)
        .where(PlanExercise.plan_id == session.plan_id)
        .order_by(PlanExercise.order_index.asc())
    ).scalars().all()
    done = set(
        db.execute(
            select(ExerciseFeedback.exercise_id).where(
                ExerciseFeedback.session_id == session.id,
                ExerciseFeedback.completed.is_(True),
            )
        ).scalars().all()
    )
    missing = tuple(exercise_id for exercise_id in prescribed if exercise_id not in done)
    return GateStatus(
        total=len(prescribed),
        completed=len(prescribed) - len(missing),
        missing_exercise_ids=missing,
    )


def _elapsed_minutes(started_at: datetime, finished_at: datetime) -> int:
    seconds = (to_utc(finished_at) - to_utc(started_at)).total_seconds()
    # Half-up rounding, never negative
    return max(0, math.floor(seconds / 60 + 0.5))


def complete_session(db: Session, session_id: str, *, now: datetime | None = None) -> WorkoutSession:
    """In Progress -> Completed.

    Sets completed_date and duration_minutes (from the persisted started_at).

    Raises:
        NotFoundError: If the session does not exist
        InvalidTransitionError: If the session is not In Progress
        CompletionGateError: If any plan exercise is not marked completed
    """
    session = get_workout_session(db, session_id)
    if not can_transition(session.status, SESSION_COMPLETED):
        raise InvalidTransitionError(session.id, session.status, SESSION_COMPLETED)

    gate = completion_gate(db, session)
    if not gate.is_open:
        raise CompletionGateError(session.id, gate.completed, gate.total)

    finished_at = now or utc_now()
    started_at = session.started_at or session.created_at

    _transition(session, SESSION_COMPLETED)
    session.completed_date = finished_at
    session.duration_minutes = _elapsed_minutes(started_at, finished_at) if started_at else None
    db.flush()

    logger.info(
        "Workout session completed",
        session_id=session.id,
        plan_id=session.plan_id,
        duration_minutes=session.duration_minutes,
    )
    return session


def skip_session(db: Session, session_id: str) -> WorkoutSession:
    """Scheduled | In Progress -> Skipped (manual or administrative)."""
    session = get_workout_session(db, session_id)
    _transition(session, SESSION_SKIPPED)
    db.flush()
    logger.info("Workout session skipped", session_id=session.id, plan_id=session.plan_id)
    return session


def skip_stale_sessions(db: Session, as_of: date | None = None, *, client_id: str | None = None) -> list[str]:
    """Mark Scheduled sessions from earlier days as Skipped.

    Args:
        db: Database session
        as_of: Reference day; when None, each client's own "today" is used
        client_id: Restrict the sweep to one client

    Returns:
        IDs of the sessions that were skipped
    """
    query = select(WorkoutSession).where(WorkoutSession.status == SESSION_SCHEDULED)
    if client_id:
        query = query.where(WorkoutSession.client_id == client_id)

    today_by_client: dict[str, date] = {}
    skipped: list[str] = []
    for session in db.execute(query).scalars().all():
        reference_day = as_of
        if reference_day is None:
            if session.client_id not in today_by_client:
                client = db.get(User, session.client_id)
                today_by_client[session.client_id] = today_in(client.timezone if client else settings.default_timezone)
            reference_day = today_by_client[session.client_id]
        if session.scheduled_date < reference_day:
            _transition(session, SESSION_SKIPPED)
            skipped.append(session.id)

    if skipped:
        db.flush()
        logger.info("Skipped stale workout sessions", count=len(skipped), session_ids=skipped)
    return skipped
