from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Training plan statuses
PLAN_DRAFT = "Draft"
PLAN_ACTIVE = "Active"
PLAN_COMPLETED = "Completed"
PLAN_PAUSED = "Paused"

# Workout session statuses
SESSION_SCHEDULED = "Scheduled"
SESSION_IN_PROGRESS = "In Progress"
SESSION_COMPLETED = "Completed"
SESSION_SKIPPED = "Skipped"

# Invoice statuses
INVOICE_PENDING = "Pending"
INVOICE_PAID = "Paid"
INVOICE_OVERDUE = "Overdue"
INVOICE_CANCELLED = "Cancelled"

# Exercise types
EXERCISE_WEIGHTED = "Weighted"
EXERCISE_BODYWEIGHT = "Bodyweight"
EXERCISE_CARDIO = "Cardio"


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""


class User(Base):
    """Coach or client account.

    Clients carry physical/biographical attributes used for display and for
    the weekly workout target. Coaches have no extra required attributes.
    Users are never hard-deleted by the core.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False, index=True)  # "coach" or "client"

    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    height_cm: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weight_kg: Mapped[float | None] = mapped_column(Float, nullable=True)
    fitness_goal: Mapped[str | None] = mapped_column(Text, nullable=True)
    workouts_per_week: Mapped[int | None] = mapped_column(Integer, nullable=True, default=3)
    timezone: Mapped[str] = mapped_column(String, nullable=False, default="UTC")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class Exercise(Base):
    """Exercise library entry owned by a coach."""

    __tablename__ = "exercises"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    coach_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str | None] = mapped_column(String, nullable=True)
    type: Mapped[str] = mapped_column(String, nullable=False, default=EXERCISE_WEIGHTED)  # Weighted, Bodyweight, Cardio
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class TrainingPlan(Base):
    """Coach-authored multi-week program assigned to one client.

    Client-visible only while status is Active or Completed; Draft and Paused
    are coach-only. `duration` is free text in the "N weeks" form.
    """

    __tablename__ = "training_plans"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    coach_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)
    client_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String, nullable=False)
    duration: Mapped[str] = mapped_column(String, nullable=False)  # e.g. "8 weeks"
    status: Mapped[str] = mapped_column(String, nullable=False, default=PLAN_DRAFT, index=True)
    difficulty: Mapped[str | None] = mapped_column(String, nullable=True)  # Beginner, Intermediate, Advanced
    estimated_duration: Mapped[str | None] = mapped_column(String, nullable=True)  # per-session, e.g. "60-75 min"
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("idx_training_plans_client_status", "client_id", "status"),  # Common query: client plans by status
    )


class PlanExercise(Base):
    """Ordered prescription line inside a training plan.

    Iterate ascending by order_index. The whole set for a plan is replaced
    when the coach saves the plan.
    """

    __tablename__ = "plan_exercises"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    plan_id: Mapped[str] = mapped_column(String, ForeignKey("training_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    exercise_id: Mapped[str] = mapped_column(String, ForeignKey("exercises.id"), nullable=False, index=True)

    sets: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    reps: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weight: Mapped[float | None] = mapped_column(Float, nullable=True)
    time_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rest_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    tempo: Mapped[str | None] = mapped_column(String, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (Index("idx_plan_exercises_plan_order", "plan_id", "order_index"),)


class WorkoutSession(Base):
    """One dated attempt at executing a plan.

    Status machine: Scheduled -> In Progress -> Completed | Skipped.
    At most one session per (client_id, plan_id, scheduled_date); the unique
    constraint makes on-demand creation idempotent under concurrent requests.
    """

    __tablename__ = "workout_sessions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    client_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)
    plan_id: Mapped[str] = mapped_column(String, ForeignKey("training_plans.id", ondelete="CASCADE"), nullable=False, index=True)

    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default=SESSION_SCHEDULED, index=True)

    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint("client_id", "plan_id", "scheduled_date", name="uq_workout_session_client_plan_date"),
        Index("idx_workout_sessions_client_date", "client_id", "scheduled_date"),
    )


class ExerciseFeedback(Base):
    """Per-session, per-exercise completion flag, free text and actual performance."""

    __tablename__ = "exercise_feedback"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    session_id: Mapped[str] = mapped_column(String, ForeignKey("workout_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    exercise_id: Mapped[str] = mapped_column(String, ForeignKey("exercises.id"), nullable=False, index=True)

    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    actual_sets: Mapped[int | None] = mapped_column(Integer, nullable=True)
    actual_reps: Mapped[int | None] = mapped_column(Integer, nullable=True)
    actual_weight: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (UniqueConstraint("session_id", "exercise_id", name="uq_exercise_feedback_session_exercise"),)


class Invoice(Base):
    """Billing record linking coach and client."""

    __tablename__ = "invoices"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    coach_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)
    client_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)

    amount: Mapped[float] = mapped_column(Float, nullable=False)
    sessions_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String, nullable=False, default=INVOICE_PENDING)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
