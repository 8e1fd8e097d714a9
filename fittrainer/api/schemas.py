"""API contract schemas.

Pydantic models defining what the backend returns to the coach and client
front-ends, plus request bodies that are not plain domain inputs.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from fittrainer.plans.types import PlanExerciseInput, PlanUpdate

# ============================================================================
# Plans
# ============================================================================


class PlanOut(BaseModel):
    """A training plan as shown to coaches and clients."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    coach_id: str
    client_id: str
    name: str
    duration: str
    status: str
    difficulty: str | None = None
    estimated_duration: str | None = None
    start_date: date | None = None
    end_date: date | None = None


class VisiblePlansResponse(BaseModel):
    """Response for GET /clients/me/plans."""

    as_of: date
    plans: list[PlanOut]
    current_plan_id: str | None = Field(description="Plan to feature as current, if any", default=None)


class PlanExerciseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    exercise_id: str
    sets: int
    reps: int | None = None
    weight: float | None = None
    time_minutes: int | None = None
    rest_seconds: int
    tempo: str | None = None
    order_index: int


class InvoiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    amount: float
    sessions_count: int
    status: str
    due_date: date


class PlanCreateResponse(BaseModel):
    plan: PlanOut
    invoice: InvoiceOut | None = None


class PlanSaveRequest(BaseModel):
    """Body of PUT /coaches/me/plans/{plan_id}: details plus the full exercise list."""

    plan: PlanUpdate
    exercises: list[PlanExerciseInput] = Field(default_factory=list)


class PlanSaveResponse(BaseModel):
    plan: PlanOut
    exercises: list[PlanExerciseOut]


class TimeRemainingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: str
    days: int
    text: str


class PlanProgressResponse(BaseModel):
    """Response for GET /plans/{plan_id}/progress."""

    plan_id: str
    percent: int = Field(ge=0, le=100)
    completed_sessions: int
    estimated_total_sessions: int
    time_remaining: TimeRemainingOut | None = None


# ============================================================================
# Workout sessions
# ============================================================================


class WorkoutSessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    client_id: str
    plan_id: str
    scheduled_date: date
    status: str
    started_at: datetime | None = None
    completed_date: datetime | None = None
    duration_minutes: int | None = None


class TodayResponse(BaseModel):
    """Response for POST /clients/me/sessions/today."""

    as_of: date
    session: WorkoutSessionOut | None = Field(description="Session to work on now; null means no workout today", default=None)
    sessions: list[WorkoutSessionOut] = Field(default_factory=list)


class FeedbackOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    session_id: str
    exercise_id: str
    completed: bool
    feedback: str | None = None
    actual_sets: int | None = None
    actual_reps: int | None = None
    actual_weight: float | None = None


class SessionExerciseOut(BaseModel):
    plan_exercise: PlanExerciseOut
    exercise_name: str | None = None
    exercise_type: str | None = None
    completed: bool
    feedback: FeedbackOut | None = None


class SessionDetailResponse(BaseModel):
    """Response for GET /sessions/{session_id}."""

    session: WorkoutSessionOut
    exercises: list[SessionExerciseOut]
    completed_count: int
    total_count: int
    can_complete: bool


class FeedbackRequest(BaseModel):
    """Body of PUT /sessions/{id}/exercises/{exercise_id}/feedback."""

    feedback: str | None = None
    actual_sets: int | None = Field(default=None, ge=0)
    actual_reps: int | None = Field(default=None, ge=0)
    actual_weight: float | None = Field(default=None, ge=0)


# ============================================================================
# Dashboard and profile
# ============================================================================


class RecentWorkoutOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    session_id: str
    plan_id: str
    plan_name: str | None = None
    completed_date: datetime | None = None
    duration_minutes: int | None = None


class DashboardResponse(BaseModel):
    """Response for GET /clients/me/dashboard."""

    active_plans: int
    completed_plans: int
    total_workouts: int
    recent_workouts: list[RecentWorkoutOut]


class ProfileResponse(BaseModel):
    """Response for GET /clients/me/profile."""

    id: str
    name: str
    email: str
    age: int | None = None
    bmi: float | None = None
    height_cm: int | None = None
    weight_kg: float | None = None
    workouts_per_week: int | None = None
    fitness_goal: str | None = None


class ImprovementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: str
    improvement_percent: float
    first_value: float
    latest_value: float


class PerformanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    completed_date: datetime
    plan_name: str | None = None
    sets: int | None = None
    reps: int | None = None
    weight: float | None = None


class ExerciseProgressOut(BaseModel):
    exercise_id: str
    exercise_name: str
    exercise_type: str
    total_sessions: int
    sessions: list[PerformanceOut]
    improvement: ImprovementOut | None = None
