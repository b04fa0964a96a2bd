"""Workout aggregate schemas: workout, workout exercises and sets."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from liftlog.core.constants import MAX_RPE, MIN_RPE
from liftlog.core.enums import WorkoutSource
from liftlog.core.ids import new_id
from liftlog.schemas.exercise import ExerciseRef


# ── Sets ─────────────────────────────────────────────────────────────────

class SetBase(BaseModel):
    reps: int = Field(..., ge=0)
    weight: float | None = Field(None, ge=0)
    rpe: float | None = Field(None, ge=MIN_RPE, le=MAX_RPE)
    rest_seconds: int | None = Field(None, ge=0)
    notes: str | None = None


class SetCreate(SetBase):
    id: UUID | None = None
    performed_at: datetime | None = None

    def with_id(self) -> "SetCreate":
        if self.id is not None:
            return self
        return self.model_copy(update={"id": new_id()})


class SetUpdate(BaseModel):
    """Patchable fields only; unset fields are left alone."""

    reps: int | None = Field(None, ge=0)
    weight: float | None = Field(None, ge=0)
    rpe: float | None = Field(None, ge=MIN_RPE, le=MAX_RPE)
    rest_seconds: int | None = Field(None, ge=0)
    notes: str | None = None


class SetRead(SetBase):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    workout_exercise_id: UUID
    performed_at: datetime
    created_at: datetime


# ── Workout exercises ────────────────────────────────────────────────────

class WorkoutExerciseIn(BaseModel):
    """One entry of the desired exercise list.

    ``id`` names an existing workout exercise (kept, with its sets) or a new one;
    when omitted a new id is generated. ``exercise_id`` is required for new
    entries and may be omitted for existing ones.
    """

    id: UUID | None = None
    exercise_id: UUID | None = None
    order_index: int
    target_sets: int | None = Field(None, ge=0)
    target_reps: int | None = Field(None, ge=0)
    target_weight: float | None = Field(None, ge=0)


class WorkoutExerciseRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    workout_id: UUID
    exercise_id: UUID
    order_index: int
    target_sets: int | None = None
    target_reps: int | None = None
    target_weight: float | None = None
    exercise: ExerciseRef | None = None
    sets: list[SetRead] = []


def _with_item_ids(items: list[WorkoutExerciseIn]) -> list[WorkoutExerciseIn]:
    return [
        item if item.id is not None else item.model_copy(update={"id": new_id()})
        for item in items
    ]


# ── Workouts ─────────────────────────────────────────────────────────────

class WorkoutCreate(BaseModel):
    id: UUID | None = None
    name: str = Field(..., max_length=255)
    source: WorkoutSource = WorkoutSource.CUSTOM
    exercises: list[WorkoutExerciseIn] = []

    def with_ids(self) -> "WorkoutCreate":
        """Copy with the workout id and every exercise id assigned."""
        return self.model_copy(
            update={"id": self.id or new_id(), "exercises": _with_item_ids(self.exercises)}
        )


class WorkoutUpsert(BaseModel):
    """Full desired state of a workout: name plus the complete exercise list."""

    name: str = Field(..., max_length=255)
    exercises: list[WorkoutExerciseIn] = []

    def with_ids(self) -> "WorkoutUpsert":
        return self.model_copy(update={"exercises": _with_item_ids(self.exercises)})


class WorkoutRead(BaseModel):
    """A workout with its exercises (ordered by order_index). Sets are filled on detail reads."""

    model_config = ConfigDict(from_attributes=True)
    id: UUID
    name: str
    source: WorkoutSource = WorkoutSource.CUSTOM
    created_at: datetime
    updated_at: datetime
    exercises: list[WorkoutExerciseRead] = []
