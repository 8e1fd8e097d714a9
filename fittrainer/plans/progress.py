"""Plan progress and expiry.

Progress is optimistic: whichever of elapsed calendar time or completed
sessions shows more progress wins, capped at 100. An unparseable duration
means "no progress data" (0), never an exception.

Expiry flips Active plans whose end date has passed to Completed. It runs
opportunistically on dashboard load and from the background sweep.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, timedelta

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fittrainer.config.settings import settings
from fittrainer.core.errors import NotFoundError
from fittrainer.db.models import (
    PLAN_ACTIVE,
    PLAN_COMPLETED,
    SESSION_COMPLETED,
    TrainingPlan,
    User,
    WorkoutSession,
)
from fittrainer.utils.dates import today_in

DURATION_PATTERN = re.compile(r"(\d+)\s*weeks?", re.IGNORECASE)


def parse_duration_weeks(duration: str | None) -> int | None:
    """Extract the week count from a duration string like "8 weeks".

    Returns:
        Number of weeks, or None when the string does not match
    """
    if not duration:
        return None
    match = DURATION_PATTERN.search(duration)
    if not match:
        return None
    return int(match.group(1))


def compute_end_date(start_date: date | None, duration: str | None) -> date | None:
    """End date of a plan: start date plus weeks × 7 days."""
    weeks = parse_duration_weeks(duration)
    if start_date is None or weeks is None:
        return None
    return start_date + timedelta(days=weeks * 7)


def estimated_total_sessions(plan: TrainingPlan, workouts_per_week: int | None) -> int:
    """Sessions a client is expected to complete over the whole plan."""
    weeks = parse_duration_weeks(plan.duration)
    if weeks is None:
        return 0
    per_week = settings.default_workouts_per_week if workouts_per_week is None else workouts_per_week
    return max(0, weeks * per_week)


def plan_progress_percent(
    plan: TrainingPlan,
    completed_sessions: int,
    estimated_total_sessions: int,
    as_of: date,
) -> int:
    """Completion percentage of a plan, 0..100.

    Args:
        plan: Training plan (duration and start_date are used)
        completed_sessions: Completed workout sessions for the plan
        estimated_total_sessions: Expected sessions over the whole plan
        as_of: Reference calendar day

    Returns:
        max(time progress, session progress), capped at 100, rounded down
    """
    weeks = parse_duration_weeks(plan.duration)
    if weeks is None:
        return 0

    total_days = weeks * 7
    days_elapsed = max(0, (as_of - plan.start_date).days) if plan.start_date else 0
    time_progress = min(100.0, days_elapsed / total_days * 100) if total_days > 0 else 0.0

    if estimated_total_sessions > 0:
        session_progress = max(0, completed_sessions) / estimated_total_sessions * 100
    else:
        session_progress = 0.0

    return math.floor(min(100.0, max(time_progress, session_progress)))


@dataclass(frozen=True)
class TimeRemaining:
    """Human-facing countdown for an Active plan.

    Attributes:
        status: starting-soon | starting-later | active | ending-soon | ending | overdue
        days: Days until start (before start) or until end (after start); negative when overdue
        text: Display text
    """

    status: str
    days: int
    text: str


def _plural_days(days: int) -> str:
    return f"{days} day" if days == 1 else f"{days} days"


def _weeks_and_days(days: int) -> tuple[int, int]:
    return days // 7, days % 7


def plan_time_remaining(plan: TrainingPlan, as_of: date) -> TimeRemaining | None:
    """Countdown to a plan's start or end, or None when it cannot be computed.

    Only Active plans with a start date get a countdown. The end is derived
    from the duration (start + weeks × 7), not from the stored end_date.
    """
    if plan.start_date is None or not plan.duration or plan.status != PLAN_ACTIVE:
        return None

    if plan.start_date > as_of:
        days_until_start = (plan.start_date - as_of).days
        if days_until_start == 1:
            return TimeRemaining("starting-soon", 1, "Starts tomorrow")
        if days_until_start <= 7:
            return TimeRemaining("starting-soon", days_until_start, f"Starts in {days_until_start} days")
        weeks, extra = _weeks_and_days(days_until_start)
        text = f"Starts in {weeks} weeks" if extra == 0 else f"Starts in {weeks}w {extra}d"
        return TimeRemaining("starting-later", days_until_start, text)

    end_date = compute_end_date(plan.start_date, plan.duration)
    if end_date is None:
        return None

    days_remaining = (end_date - as_of).days
    if days_remaining < 0:
        return TimeRemaining("overdue", days_remaining, f"{_plural_days(abs(days_remaining))} overdue")
    if days_remaining == 0:
        return TimeRemaining("ending", 0, "Ends today")
    if days_remaining <= 7:
        return TimeRemaining("ending-soon", days_remaining, f"{_plural_days(days_remaining)} left")
    weeks, extra = _weeks_and_days(days_remaining)
    text = f"{weeks} weeks left" if extra == 0 else f"{weeks}w {extra}d left"
    return TimeRemaining("active", days_remaining, text)


@dataclass(frozen=True)
class PlanProgress:
    plan_id: str
    percent: int
    completed_sessions: int
    estimated_total_sessions: int
    time_remaining: TimeRemaining | None


def count_completed_sessions(db: Session, plan_id: str) -> int:
    query = select(func.count(WorkoutSession.id)).where(
        WorkoutSession.plan_id == plan_id,
        WorkoutSession.status == SESSION_COMPLETED,
    )
    return int(db.execute(query).scalar_one())


def plan_progress(db: Session, plan_id: str, as_of: date) -> PlanProgress:
    """Progress of a stored plan, using the client's weekly workout target.

    Raises:
        NotFoundError: If the plan does not exist
    """
    plan = db.get(TrainingPlan, plan_id)
    if plan is None:
        raise NotFoundError("TrainingPlan", plan_id)

    client = db.get(User, plan.client_id)
    workouts_per_week = client.workouts_per_week if client else None

    completed = count_completed_sessions(db, plan_id)
    estimated = estimated_total_sessions(plan, workouts_per_week)
    return PlanProgress(
        plan_id=plan_id,
        percent=plan_progress_percent(plan, completed, estimated, as_of),
        completed_sessions=completed,
        estimated_total_sessions=estimated,
        time_remaining=plan_time_remaining(plan, as_of),
    )


def expire_overdue_plans(db: Session, client_id: str, as_of: date) -> list[str]:
    """Mark the client's Active plans whose end date has passed as Completed.

    A plan ending on `as_of` itself is still running and is left untouched.

    Returns:
        IDs of the plans that were flipped
    """
    query = select(TrainingPlan).where(
        TrainingPlan.client_id == client_id,
        TrainingPlan.status == PLAN_ACTIVE,
        TrainingPlan.end_date.is_not(None),
        TrainingPlan.end_date < as_of,
    )
    expired = list(db.execute(query).scalars().all())
    for plan in expired:
        plan.status = PLAN_COMPLETED
    if expired:
        db.flush()
        logger.info(
            "Expired overdue plans",
            client_id=client_id,
            as_of=as_of.isoformat(),
            plan_ids=[plan.id for plan in expired],
        )
    return [plan.id for plan in expired]


def expire_all_overdue_plans(db: Session, as_of: date | None = None) -> list[str]:
    """Expire overdue plans for every client.

    When `as_of` is None, each client's own "today" (their configured
    timezone) is used as the reference day.
    """
    client_ids = db.execute(
        select(TrainingPlan.client_id)
        .where(TrainingPlan.status == PLAN_ACTIVE, TrainingPlan.end_date.is_not(None))
        .distinct()
    ).scalars().all()

    expired: list[str] = []
    for client_id in client_ids:
        reference_day = as_of
        if reference_day is None:
            client = db.get(User, client_id)
            reference_day = today_in(client.timezone if client else settings.default_timezone)
        expired.extend(expire_overdue_plans(db, client_id, reference_day))
    return expired
