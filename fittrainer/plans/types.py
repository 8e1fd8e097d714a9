"""Input shapes for plan authoring.

Coach-side inputs for creating and saving training plans. Validation here is
structural; business rules (duration format, ownership) live in the builder.
"""

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

PlanStatus = Literal["Draft", "Active", "Completed", "Paused"]
Difficulty = Literal["Beginner", "Intermediate", "Advanced"]


class PlanExerciseInput(BaseModel):
    """One prescription line; its position in the list becomes order_index.

    Attributes:
        exercise_id: Library exercise being prescribed
        sets: Prescribed sets
        reps: Prescribed reps (None for timed work)
        weight: Prescribed load in kg
        time_minutes: Prescribed time for cardio/timed work
        rest_seconds: Rest between sets
        tempo: Tempo notation, e.g. "3-1-1-0"
    """

    exercise_id: str
    sets: int = Field(default=1, ge=1)
    reps: int | None = Field(default=None, ge=0)
    weight: float | None = Field(default=None, ge=0)
    time_minutes: int | None = Field(default=None, ge=0)
    rest_seconds: int = Field(default=60, ge=0)
    tempo: str | None = None


class PlanDraft(BaseModel):
    """A new plan as submitted by a coach.

    New plans are Active unless the coach says otherwise. A positive
    invoice_amount spawns a Pending invoice alongside the plan.
    """

    client_id: str
    name: str = Field(min_length=1)
    duration: str = Field(min_length=1)
    status: PlanStatus = "Active"
    difficulty: Difficulty | None = None
    estimated_duration: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    invoice_amount: float | None = Field(default=None, ge=0)


class PlanUpdate(BaseModel):
    """Plan details saved from the plan builder; the end date is recomputed."""

    name: str = Field(min_length=1)
    duration: str = Field(min_length=1)
    start_date: date
    status: PlanStatus
    difficulty: Difficulty | None = None
    estimated_duration: str | None = None
