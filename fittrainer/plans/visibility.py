"""Plan visibility policy.

Decides which training plans a client may see on a given calendar day:
- Only Active and Completed plans are client-visible (Draft/Paused are coach-only)
- Plans starting more than the lookahead window in the future stay hidden
- Plans without a start date are treated as already eligible

Pure queries, no side effects.
"""

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from fittrainer.config.settings import settings
from fittrainer.db.models import PLAN_ACTIVE, PLAN_COMPLETED, TrainingPlan

CLIENT_VISIBLE_STATUSES = (PLAN_ACTIVE, PLAN_COMPLETED)


def visibility_horizon(as_of: date, lookahead_days: int | None = None) -> date:
    """Latest start date a plan may have and still be visible on `as_of`."""
    days = settings.visibility_lookahead_days if lookahead_days is None else lookahead_days
    return as_of + timedelta(days=days)


def is_started(plan: TrainingPlan, as_of: date) -> bool:
    return plan.start_date is None or plan.start_date <= as_of


def is_client_visible(plan: TrainingPlan, as_of: date, lookahead_days: int | None = None) -> bool:
    if plan.status not in CLIENT_VISIBLE_STATUSES:
        return False
    return plan.start_date is None or plan.start_date <= visibility_horizon(as_of, lookahead_days)


def visible_plans(
    db: Session,
    client_id: str,
    as_of: date,
    *,
    lookahead_days: int | None = None,
) -> list[TrainingPlan]:
    """Plans the client may see on `as_of`, ordered by start date (undated first).

    Args:
        db: Database session
        client_id: Client user ID
        as_of: Reference calendar day in the client's timezone
        lookahead_days: Override for the visibility window (defaults to settings)

    Returns:
        Visible plans; ties on start date are broken by creation time, then id
    """
    horizon = visibility_horizon(as_of, lookahead_days)
    query = (
        select(TrainingPlan)
        .where(
            TrainingPlan.client_id == client_id,
            TrainingPlan.status.in_(CLIENT_VISIBLE_STATUSES),
            (TrainingPlan.start_date.is_(None)) | (TrainingPlan.start_date <= horizon),
        )
        .order_by(
            TrainingPlan.start_date.is_not(None),  # NULLs first on every backend
            TrainingPlan.start_date.asc(),
            TrainingPlan.created_at.asc(),
            TrainingPlan.id.asc(),
        )
    )
    return list(db.execute(query).scalars().all())


def started_plans(plans: list[TrainingPlan], as_of: date) -> list[TrainingPlan]:
    return [plan for plan in plans if is_started(plan, as_of)]


def select_current_plan(plans: list[TrainingPlan], as_of: date) -> TrainingPlan | None:
    """Pick the plan to feature as "current".

    Prefers the first plan that has already started; if none has, falls back
    to the first visible plan. Expects `plans` in visible_plans() order.
    """
    for plan in plans:
        if is_started(plan, as_of):
            return plan
    return plans[0] if plans else None


def current_plan(db: Session, client_id: str, as_of: date) -> TrainingPlan | None:
    return select_current_plan(visible_plans(db, client_id, as_of), as_of)
