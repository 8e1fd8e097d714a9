"""Coach plan authoring endpoints and plan progress."""

from datetime import date

from fastapi import APIRouter, Depends, status

from fittrainer.api.dependencies import get_as_of, get_session_context, require_coach
from fittrainer.api.schemas import (
    InvoiceOut,
    PlanCreateResponse,
    PlanExerciseOut,
    PlanOut,
    PlanProgressResponse,
    PlanSaveRequest,
    PlanSaveResponse,
    TimeRemainingOut,
)
from fittrainer.core.context import SessionContext
from fittrainer.core.errors import PermissionDeniedError
from fittrainer.db.session import get_session
from fittrainer.plans.builder import create_plan, get_plan, plan_exercises, save_plan
from fittrainer.plans.progress import plan_progress
from fittrainer.plans.types import PlanDraft

router = APIRouter(tags=["plans"])


@router.post("/coaches/me/plans", response_model=PlanCreateResponse, status_code=status.HTTP_201_CREATED)
def post_plan(
    draft: PlanDraft,
    as_of: date | None = Depends(get_as_of),
    ctx: SessionContext = Depends(require_coach),
) -> PlanCreateResponse:
    """Create a plan (Active by default) and its invoice when an amount is given.

    An undated plan's invoice falls due invoice_default_due_days after the coach's today.
    """
    with get_session() as db:
        plan, invoice = create_plan(db, ctx.user_id, draft, as_of=as_of or ctx.today())
        return PlanCreateResponse(
            plan=PlanOut.model_validate(plan),
            invoice=InvoiceOut.model_validate(invoice) if invoice else None,
        )


@router.put("/coaches/me/plans/{plan_id}", response_model=PlanSaveResponse)
def put_plan(plan_id: str, body: PlanSaveRequest, ctx: SessionContext = Depends(require_coach)) -> PlanSaveResponse:
    """Save plan details and replace its exercise list in one transaction."""
    with get_session() as db:
        plan = save_plan(db, ctx.user_id, plan_id, body.plan, body.exercises)
        return PlanSaveResponse(
            plan=PlanOut.model_validate(plan),
            exercises=[PlanExerciseOut.model_validate(row) for row in plan_exercises(db, plan.id)],
        )


@router.get("/plans/{plan_id}/progress", response_model=PlanProgressResponse)
def get_plan_progress(
    plan_id: str,
    ctx: SessionContext = Depends(get_session_context),
    as_of: date | None = Depends(get_as_of),
) -> PlanProgressResponse:
    day = as_of or ctx.today()
    with get_session() as db:
        plan = get_plan(db, plan_id)
        if ctx.user_id not in (plan.coach_id, plan.client_id):
            raise PermissionDeniedError(f"Plan {plan_id} is not accessible to user {ctx.user_id}")

        progress = plan_progress(db, plan_id, day)
        return PlanProgressResponse(
            plan_id=progress.plan_id,
            percent=progress.percent,
            completed_sessions=progress.completed_sessions,
            estimated_total_sessions=progress.estimated_total_sessions,
            time_remaining=TimeRemainingOut.model_validate(progress.time_remaining) if progress.time_remaining else None,
        )
