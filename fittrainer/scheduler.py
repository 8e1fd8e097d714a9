"""Background maintenance sweeps.

Runs plan expiry and the stale-session sweep on an interval so that state is
correct even for clients who never open their dashboard.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from fittrainer.config.settings import settings
from fittrainer.db.session import get_session
from fittrainer.plans.progress import expire_all_overdue_plans
from fittrainer.workouts.lifecycle import skip_stale_sessions

SWEEP_JOB_ID = "fittrainer_sweep"


@dataclass(frozen=True)
class SweepResult:
    expired_plan_ids: list[str]
    skipped_session_ids: list[str]


def run_sweeps(as_of: date | None = None) -> SweepResult:
    """Expire overdue plans and skip stale Scheduled sessions in one transaction.

    Args:
        as_of: Reference day for every client; None uses each client's own timezone
    """
    with get_session() as db:
        expired = expire_all_overdue_plans(db, as_of)
        skipped = skip_stale_sessions(db, as_of)
    logger.info("[SWEEP] Completed", expired_plans=len(expired), skipped_sessions=len(skipped))
    return SweepResult(expired_plan_ids=expired, skipped_session_ids=skipped)


def _sweep_tick() -> None:
    try:
        run_sweeps()
    except Exception:
        logger.exception("[SWEEP] Sweep failed, will retry on next tick")


def start_scheduler() -> BackgroundScheduler:
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        _sweep_tick,
        trigger=IntervalTrigger(minutes=settings.sweep_interval_minutes),
        id=SWEEP_JOB_ID,
        name="Plan expiry and stale session sweep",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"[SCHEDULER] Started sweep scheduler (runs every {settings.sweep_interval_minutes} minutes)")
    return scheduler
