"""Exercise library schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from liftlog.core.constants import MAX_CATEGORY_LENGTH, MAX_EXERCISE_NAME_LENGTH
from liftlog.core.ids import new_id, utcnow


class ExerciseBase(BaseModel):
    # Emptiness is checked by the stores so callers get a storage ValidationError
    name: str = Field(..., max_length=MAX_EXERCISE_NAME_LENGTH)
    category: str = Field(..., max_length=MAX_CATEGORY_LENGTH)
    equipment: list[str] = Field(default_factory=list)
    notes: str | None = None


class ExerciseCreate(ExerciseBase):
    id: UUID | None = None

    def with_id(self) -> "ExerciseCreate":
        if self.id is not None:
            return self
        return self.model_copy(update={"id": new_id()})


class ExerciseRead(ExerciseBase):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    created_at: datetime


class ExerciseImport(ExerciseRead):
    """Legacy library record. Seed files carry no timestamps."""

    created_at: datetime = Field(default_factory=utcnow)


class ExerciseRef(BaseModel):
    """Library data embedded in a workout exercise."""

    id: UUID
    name: str
    category: str
    equipment: list[str] = []

    model_config = ConfigDict(from_attributes=True)


class ExercisePage(BaseModel):
    data: list[ExerciseRead]
    total: int
