"""On-demand creation of today's workout session.

Answers "what should the client work on today?":
1. Reuse an outstanding (Scheduled / In Progress) session dated today on a
   visible, started plan, moving it to In Progress.
2. Otherwise create one for the earliest visible, started Active plan that
   has no session today yet (or one per such plan, under PER_PLAN).
3. Otherwise there is no workout today.

Creation is idempotent: the (client_id, plan_id, scheduled_date) unique
constraint rejects a concurrent duplicate, and the loser re-selects the
winner's row.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fittrainer.config.settings import settings
from fittrainer.core.errors import ConcurrencyConflictError
from fittrainer.db.models import PLAN_ACTIVE, SESSION_IN_PROGRESS, TrainingPlan, WorkoutSession
from fittrainer.plans.visibility import started_plans, visible_plans
from fittrainer.utils.dates import utc_now
from fittrainer.workouts.lifecycle import OUTSTANDING_STATUSES, mark_in_progress


class MaterializationPolicy(str, Enum):
    """How many sessions to create when several Active plans are eligible today."""

    SINGLE = "single"  # one session, for the earliest eligible plan
    PER_PLAN = "per_plan"  # one session per eligible plan


def resolve_policy(policy: MaterializationPolicy | str | None) -> MaterializationPolicy:
    if policy is None:
        return MaterializationPolicy(settings.materialization_policy)
    return MaterializationPolicy(policy)


def _sessions_for_day(db: Session, client_id: str, plan_ids: list[str], day: date) -> dict[str, WorkoutSession]:
    """Existing sessions dated `day`, keyed by plan id (any status)."""
    if not plan_ids:
        return {}
    rows = db.execute(
        select(WorkoutSession).where(
            WorkoutSession.client_id == client_id,
            WorkoutSession.plan_id.in_(plan_ids),
            WorkoutSession.scheduled_date == day,
        )
    ).scalars().all()
    return {row.plan_id: row for row in rows}


def _find_session(db: Session, client_id: str, plan_id: str, day: date) -> WorkoutSession | None:
    return db.execute(
        select(WorkoutSession).where(
            WorkoutSession.client_id == client_id,
            WorkoutSession.plan_id == plan_id,
            WorkoutSession.scheduled_date == day,
        )
    ).scalar_one_or_none()


def _create_session(db: Session, client_id: str, plan: TrainingPlan, day: date, now: datetime) -> WorkoutSession:
    """Insert today's session for `plan`, or return the row a concurrent request created."""
    new_session = WorkoutSession(
        client_id=client_id,
        plan_id=plan.id,
        scheduled_date=day,
        status=SESSION_IN_PROGRESS,
        started_at=now,
    )
    try:
        with db.begin_nested():
            db.add(new_session)
            db.flush()
    except IntegrityError:
        logger.warning(
            "Workout session creation conflict, re-selecting existing row",
            client_id=client_id,
            plan_id=plan.id,
            scheduled_date=day.isoformat(),
        )
        existing = _find_session(db, client_id, plan.id, day)
        if existing is None:
            raise ConcurrencyConflictError(
                f"Session insert for client {client_id}, plan {plan.id} on {day} conflicted but no row was found"
            ) from None
        if existing.status in OUTSTANDING_STATUSES:
            mark_in_progress(db, existing, now=now)
        return existing

    logger.info(
        "Workout session created",
        session_id=new_session.id,
        client_id=client_id,
        plan_id=plan.id,
        scheduled_date=day.isoformat(),
    )
    return new_session


def ensure_todays_sessions(
    db: Session,
    client_id: str,
    as_of: date,
    *,
    policy: MaterializationPolicy | str | None = None,
    now: datetime | None = None,
) -> list[WorkoutSession]:
    """Resolve (and create if needed) the client's workout session(s) for `as_of`.

    Args:
        db: Database session
        client_id: Client user ID
        as_of: Reference calendar day in the client's timezone
        policy: SINGLE or PER_PLAN; defaults to settings.materialization_policy
        now: Timestamp recorded as started_at on sessions moved to In Progress

    Returns:
        In Progress sessions in plan order; empty when there is no workout today.
        Plans whose session for today is already Completed or Skipped do not
        get another one.
    """
    resolved = resolve_policy(policy)
    now = now or utc_now()

    plans = started_plans(visible_plans(db, client_id, as_of), as_of)
    if not plans:
        logger.debug("No visible started plans", client_id=client_id, as_of=as_of.isoformat())
        return []

    existing = _sessions_for_day(db, client_id, [plan.id for plan in plans], as_of)
    outstanding = [existing[plan.id] for plan in plans if plan.id in existing and existing[plan.id].status in OUTSTANDING_STATUSES]
    creatable = [plan for plan in plans if plan.status == PLAN_ACTIVE and plan.id not in existing]

    if resolved is MaterializationPolicy.SINGLE:
        if outstanding:
            return [mark_in_progress(db, outstanding[0], now=now)]
        if creatable:
            return [_create_session(db, client_id, creatable[0], as_of, now)]
        return []

    sessions: list[WorkoutSession] = []
    for plan in plans:
        session = existing.get(plan.id)
        if session is not None:
            if session.status in OUTSTANDING_STATUSES:
                sessions.append(mark_in_progress(db, session, now=now))
        elif plan.status == PLAN_ACTIVE:
            sessions.append(_create_session(db, client_id, plan, as_of, now))
    return sessions


def ensure_todays_session(
    db: Session,
    client_id: str,
    as_of: date,
    *,
    policy: MaterializationPolicy | str | None = None,
    now: datetime | None = None,
) -> WorkoutSession | None:
    """The session the client should work on today, or None for "no workout today"."""
    sessions = ensure_todays_sessions(db, client_id, as_of, policy=policy, now=now)
    return sessions[0] if sessions else None
