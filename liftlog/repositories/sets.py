"""Logged sets under a workout exercise (relational)."""

from __future__ import annotations

import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from liftlog.core.errors import NotFoundError, ValidationError
from liftlog.core.ids import as_utc, new_id, utcnow
from liftlog.models.workout import WorkoutExercise, WorkoutSet
from liftlog.schemas.workout import SetCreate, SetRead, SetUpdate


async def add_set(db: AsyncSession, workout_exercise_id: uuid.UUID, payload: SetCreate) -> SetRead:
    """Append a set. performed_at defaults to now; created_at is always now."""
    parent = await db.execute(select(WorkoutExercise.id).where(WorkoutExercise.id == workout_exercise_id))
    if parent.first() is None:
        raise NotFoundError(f"Workout exercise {workout_exercise_id} not found")

    now = utcnow()
    row = WorkoutSet(
        id=payload.id or new_id(),
        workout_exercise_id=workout_exercise_id,
        performed_at=as_utc(payload.performed_at) if payload.performed_at else now,
        reps=payload.reps,
        weight=payload.weight,
        rpe=payload.rpe,
        rest_seconds=payload.rest_seconds,
        notes=payload.notes,
        created_at=now,
    )
    db.add(row)
    await db.flush()
    return SetRead.model_validate(row)


async def update_set(db: AsyncSession, set_id: uuid.UUID, changes: SetUpdate) -> SetRead:
    """Patch the fields present in ``changes``; identity and timestamps never change."""
    result = await db.execute(select(WorkoutSet).where(WorkoutSet.id == set_id).with_for_update())
    row = result.scalar_one_or_none()
    if row is None:
        raise NotFoundError(f"Set {set_id} not found")

    fields = changes.model_dump(exclude_unset=True)
    if "reps" in fields and fields["reps"] is None:
        raise ValidationError("reps cannot be cleared")
    for key, value in fields.items():
        setattr(row, key, value)
    await db.flush()
    return SetRead.model_validate(row)


async def delete_set(db: AsyncSession, set_id: uuid.UUID) -> bool:
    result = await db.execute(
        delete(WorkoutSet).where(WorkoutSet.id == set_id).execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


async def list_sets(db: AsyncSession, workout_exercise_id: uuid.UUID) -> list[SetRead]:
    """Sets of one workout exercise in creation order."""
    parent = await db.execute(select(WorkoutExercise.id).where(WorkoutExercise.id == workout_exercise_id))
    if parent.first() is None:
        raise NotFoundError(f"Workout exercise {workout_exercise_id} not found")
    result = await db.execute(
        select(WorkoutSet)
        .where(WorkoutSet.workout_exercise_id == workout_exercise_id)
        .order_by(WorkoutSet.created_at, WorkoutSet.id)
    )
    return [SetRead.model_validate(s) for s in result.scalars().all()]
