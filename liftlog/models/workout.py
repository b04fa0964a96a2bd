"""Workout aggregate models: Workout -> WorkoutExercise -> WorkoutSet."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from liftlog.core.enums import WorkoutSource
from liftlog.core.ids import new_id
from liftlog.db.base import Base


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Workout(Base):
    """A named workout; owns its exercises (and through them, their sets)."""

    __tablename__ = "workouts"
    __table_args__ = (Index("ix_workouts_created_at_id", "created_at", "id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    source: Mapped[str] = mapped_column(String(20), default=WorkoutSource.CUSTOM.value, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, nullable=False)

    exercises: Mapped[list["WorkoutExercise"]] = relationship(
        "WorkoutExercise",
        back_populates="workout",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="[WorkoutExercise.order_index, WorkoutExercise.id]",
    )


class WorkoutExercise(Base):
    """An exercise slot in a workout. order_index is unique per workout; gaps are fine."""

    __tablename__ = "workout_exercises"
    __table_args__ = (
        UniqueConstraint("workout_id", "order_index", name="uq_workout_exercises_order"),
        Index("ix_workout_exercises_workout_id", "workout_id"),
        Index("ix_workout_exercises_exercise_id", "exercise_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    workout_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("workouts.id", ondelete="CASCADE"), nullable=False
    )
    exercise_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("exercises.id", ondelete="RESTRICT"), nullable=False
    )
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    target_sets: Mapped[int | None] = mapped_column(Integer, nullable=True)
    target_reps: Mapped[int | None] = mapped_column(Integer, nullable=True)
    target_weight: Mapped[float | None] = mapped_column(Numeric(8, 2, asdecimal=False), nullable=True)

    workout: Mapped["Workout"] = relationship("Workout", back_populates="exercises")
    exercise: Mapped["Exercise"] = relationship("Exercise", back_populates="workout_entries")
    sets: Mapped[list["WorkoutSet"]] = relationship(
        "WorkoutSet",
        back_populates="workout_exercise",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="[WorkoutSet.created_at, WorkoutSet.id]",
    )


class WorkoutSet(Base):
    """One logged set. Only reps/weight/rpe/rest_seconds/notes are patchable."""

    __tablename__ = "sets"
    __table_args__ = (
        Index("ix_sets_workout_exercise_created", "workout_exercise_id", "created_at", "id"),
        CheckConstraint("reps >= 0", name="ck_sets_reps"),
        CheckConstraint("weight >= 0", name="ck_sets_weight"),
        CheckConstraint("rpe >= 0 AND rpe <= 10", name="ck_sets_rpe"),
        CheckConstraint("rest_seconds >= 0", name="ck_sets_rest"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    workout_exercise_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("workout_exercises.id", ondelete="CASCADE"), nullable=False
    )
    performed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, nullable=False)
    reps: Mapped[int] = mapped_column(Integer, nullable=False)
    weight: Mapped[float | None] = mapped_column(Numeric(8, 2, asdecimal=False), nullable=True)
    rpe: Mapped[float | None] = mapped_column(Numeric(3, 1, asdecimal=False), nullable=True)
    rest_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, nullable=False)

    workout_exercise: Mapped["WorkoutExercise"] = relationship("WorkoutExercise", back_populates="sets")
