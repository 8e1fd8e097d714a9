"""Plan authoring: creation and the builder save.

Creating a plan can spawn its invoice; saving a plan replaces its whole
exercise list. Both are multi-statement writes that run inside the caller's
transaction, so a failure part-way leaves nothing behind (no plan without its
exercises, no plan without its invoice).
"""

from __future__ import annotations

from datetime import date, timedelta

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from fittrainer.config.settings import settings
from fittrainer.core.context import CLIENT
from fittrainer.core.errors import NotFoundError, PermissionDeniedError, ValidationFailure
from fittrainer.db.models import INVOICE_PENDING, Exercise, Invoice, PlanExercise, TrainingPlan, User
from fittrainer.plans.progress import compute_end_date, parse_duration_weeks
from fittrainer.plans.types import PlanDraft, PlanExerciseInput, PlanUpdate
from fittrainer.utils.dates import today_in


def get_plan(db: Session, plan_id: str) -> TrainingPlan:
    plan = db.get(TrainingPlan, plan_id)
    if plan is None:
        raise NotFoundError("TrainingPlan", plan_id)
    return plan


def get_coach_plan(db: Session, coach_id: str, plan_id: str) -> TrainingPlan:
    """Load a plan owned by `coach_id`.

    Raises:
        NotFoundError: If the plan does not exist
        PermissionDeniedError: If another coach owns it
    """
    plan = get_plan(db, plan_id)
    if plan.coach_id != coach_id:
        raise PermissionDeniedError(f"Plan {plan_id} does not belong to coach {coach_id}")
    return plan


def plan_exercises(db: Session, plan_id: str) -> list[PlanExercise]:
    return list(
        db.execute(
            select(PlanExercise).where(PlanExercise.plan_id == plan_id).order_by(PlanExercise.order_index.asc())
        ).scalars().all()
    )


def _invoice_due_date(draft: PlanDraft, as_of: date) -> date:
    if draft.end_date:
        return draft.end_date
    base = draft.start_date or as_of
    return base + timedelta(days=settings.invoice_default_due_days)


def create_plan(
    db: Session,
    coach_id: str,
    draft: PlanDraft,
    *,
    as_of: date | None = None,
) -> tuple[TrainingPlan, Invoice | None]:
    """Create a plan for one of the coach's clients.

    Args:
        db: Database session
        coach_id: Owning coach
        draft: Plan details; invoice_amount > 0 also creates a Pending invoice
            due on the end date (or start date + invoice_default_due_days)
        as_of: The coach's calendar day, used as the invoice base when the
            plan has no start date; defaults to today in settings.default_timezone

    Returns:
        (plan, invoice or None)

    Raises:
        NotFoundError: If the client does not exist
        ValidationFailure: If the target user is not a client or dates are inverted
    """
    client = db.get(User, draft.client_id)
    if client is None:
        raise NotFoundError("User", draft.client_id)
    if client.role != CLIENT:
        raise ValidationFailure(f"User {draft.client_id} is not a client")
    if draft.start_date and draft.end_date and draft.end_date < draft.start_date:
        raise ValidationFailure("Plan end date is before its start date")

    plan = TrainingPlan(
        coach_id=coach_id,
        client_id=draft.client_id,
        name=draft.name.strip(),
        duration=draft.duration.strip(),
        status=draft.status,
        difficulty=draft.difficulty,
        estimated_duration=draft.estimated_duration,
        start_date=draft.start_date,
        end_date=draft.end_date,
    )
    db.add(plan)
    db.flush()

    invoice = None
    if draft.invoice_amount and draft.invoice_amount > 0:
        invoice = Invoice(
            coach_id=coach_id,
            client_id=draft.client_id,
            amount=draft.invoice_amount,
            sessions_count=0,
            status=INVOICE_PENDING,
            due_date=_invoice_due_date(draft, as_of or today_in(settings.default_timezone)),
        )
        db.add(invoice)
        db.flush()

    logger.info(
        "Training plan created",
        plan_id=plan.id,
        coach_id=coach_id,
        client_id=draft.client_id,
        status=plan.status,
        invoice_id=invoice.id if invoice else None,
    )
    return plan, invoice


def replace_plan_exercises(db: Session, plan_id: str, exercises: list[PlanExerciseInput]) -> list[PlanExercise]:
    """Replace the plan's exercise set with `exercises`, order_index = list position.

    Runs inside the caller's transaction: the delete and the re-insert commit
    or roll back together.

    Raises:
        NotFoundError: If any referenced exercise does not exist
    """
    exercise_ids = {item.exercise_id for item in exercises}
    if exercise_ids:
        known = set(db.execute(select(Exercise.id).where(Exercise.id.in_(exercise_ids))).scalars().all())
        missing = sorted(exercise_ids - known)
        if missing:
            raise NotFoundError("Exercise", missing[0])

    db.execute(delete(PlanExercise).where(PlanExercise.plan_id == plan_id))
    rows = [
        PlanExercise(
            plan_id=plan_id,
            exercise_id=item.exercise_id,
            sets=item.sets,
            reps=item.reps or None,
            weight=item.weight or None,
            time_minutes=item.time_minutes or None,
            rest_seconds=item.rest_seconds,
            tempo=item.tempo,
            order_index=index,
        )
        for index, item in enumerate(exercises)
    ]
    db.add_all(rows)
    db.flush()
    return rows


def save_plan(
    db: Session,
    coach_id: str,
    plan_id: str,
    update: PlanUpdate,
    exercises: list[PlanExerciseInput],
) -> TrainingPlan:
    """Save plan details and its exercise list from the plan builder.

    The end date is recomputed as start date + weeks × 7.

    Raises:
        NotFoundError: If the plan or an exercise does not exist
        PermissionDeniedError: If another coach owns the plan
        ValidationFailure: If the duration is not in the "N weeks" form
    """
    plan = get_coach_plan(db, coach_id, plan_id)

    if parse_duration_weeks(update.duration) is None:
        raise ValidationFailure(f"Invalid duration format {update.duration!r}. Use a format like '4 weeks'.")

    plan.name = update.name.strip()
    plan.duration = update.duration.strip()
    plan.start_date = update.start_date
    plan.end_date = compute_end_date(update.start_date, update.duration)
    plan.status = update.status
    plan.difficulty = update.difficulty
    plan.estimated_duration = update.estimated_duration

    replace_plan_exercises(db, plan.id, exercises)

    logger.info(
        "Training plan saved",
        plan_id=plan.id,
        status=plan.status,
        end_date=plan.end_date.isoformat() if plan.end_date else None,
        exercise_count=len(exercises),
    )
    return plan
