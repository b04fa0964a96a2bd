"""Exercise library model - shared entries referenced by workout exercises."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from liftlog.core.constants import MAX_CATEGORY_LENGTH, MAX_EXERCISE_NAME_LENGTH
from liftlog.core.ids import new_id
from liftlog.db.base import Base


class Exercise(Base):
    """Exercise definition: unique (case-insensitive) name, category and equipment list."""

    __tablename__ = "exercises"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(MAX_EXERCISE_NAME_LENGTH), nullable=False)
    category: Mapped[str] = mapped_column(String(MAX_CATEGORY_LENGTH), nullable=False, index=True)
    equipment: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    # Weak reference from workouts: no cascade, deletes are restricted while referenced
    workout_entries: Mapped[list["WorkoutExercise"]] = relationship(
        "WorkoutExercise", back_populates="exercise", passive_deletes="all"
    )


# Case-insensitive uniqueness; also the conflict target for idempotent backfill
Index("uq_exercises_name_lower", func.lower(Exercise.name), unique=True)
