"""Workout aggregate persistence (relational): create, get, reconcile-on-upsert, delete.

All functions run inside the caller's transaction. ``upsert_workout`` locks the
workout row first so concurrent upserts of the same workout are serialized,
while upserts of different workouts never contend.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from liftlog.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from liftlog.core.errors import ConflictError, ValidationError
from liftlog.core.ids import as_utc, clamp_limit, exercise_order_key, new_id, set_order_key, utcnow
from liftlog.db.dialect import insert_or_skip
from liftlog.models.history import HistoryEntry
from liftlog.models.workout import Workout, WorkoutExercise, WorkoutSet
from liftlog.repositories.exercises import ensure_exercises_exist
from liftlog.schemas.exercise import ExerciseRef
from liftlog.schemas.workout import (
    SetRead,
    WorkoutCreate,
    WorkoutExerciseIn,
    WorkoutExerciseRead,
    WorkoutRead,
    WorkoutUpsert,
)
from liftlog.services.reconcile import normalize_desired, plan_reconciliation
from liftlog.services.validation import require_text

logger = logging.getLogger(__name__)

# Bulk statements below touch rows the session never loaded
_BULK = {"synchronize_session": False}


def _to_read(workout: Workout, include_sets: bool = True) -> WorkoutRead:
    """Build the read model. Sets must have been eager-loaded when include_sets is set."""
    exercises = []
    for we in sorted(workout.exercises, key=lambda e: exercise_order_key(e.order_index, e.id)):
        sets = []
        if include_sets:
            sets = [
                SetRead.model_validate(s)
                for s in sorted(we.sets, key=lambda s: set_order_key(s.created_at, s.id))
            ]
        exercises.append(
            WorkoutExerciseRead(
                id=we.id,
                workout_id=we.workout_id,
                exercise_id=we.exercise_id,
                order_index=we.order_index,
                target_sets=we.target_sets,
                target_reps=we.target_reps,
                target_weight=we.target_weight,
                exercise=ExerciseRef.model_validate(we.exercise) if we.exercise else None,
                sets=sets,
            )
        )
    return WorkoutRead(
        id=workout.id,
        name=workout.name,
        source=workout.source,
        created_at=workout.created_at,
        updated_at=workout.updated_at,
        exercises=exercises,
    )


def _new_row(workout_id: uuid.UUID, item: WorkoutExerciseIn) -> WorkoutExercise:
    return WorkoutExercise(
        id=item.id,
        workout_id=workout_id,
        exercise_id=item.exercise_id,
        order_index=item.order_index,
        target_sets=item.target_sets,
        target_reps=item.target_reps,
        target_weight=item.target_weight,
    )


async def _ensure_ids_unclaimed(db: AsyncSession, ids: list[uuid.UUID]) -> None:
    """New workout exercise ids must not already exist under another workout."""
    if not ids:
        return
    result = await db.execute(select(WorkoutExercise.id).where(WorkoutExercise.id.in_(ids)))
    taken = result.scalars().all()
    if taken:
        listed = ", ".join(sorted(str(t) for t in taken))
        raise ValidationError(f"Workout exercise id(s) belong to another workout: {listed}")


async def get_workout(db: AsyncSession, workout_id: uuid.UUID) -> WorkoutRead | None:
    """Full aggregate: exercises by order_index with library data, sets in creation order."""
    result = await db.execute(
        select(Workout)
        .where(Workout.id == workout_id)
        .options(
            selectinload(Workout.exercises).selectinload(WorkoutExercise.exercise),
            selectinload(Workout.exercises).selectinload(WorkoutExercise.sets),
        )
        .execution_options(populate_existing=True)
    )
    workout = result.scalar_one_or_none()
    return _to_read(workout) if workout else None


async def list_workouts(db: AsyncSession, limit: int | None = None, offset: int = 0) -> list[WorkoutRead]:
    """Newest first, with exercises but without sets."""
    result = await db.execute(
        select(Workout)
        .options(selectinload(Workout.exercises).selectinload(WorkoutExercise.exercise))
        .order_by(Workout.created_at.desc(), Workout.id.desc())
        .limit(clamp_limit(limit, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE))
        .offset(max(0, offset))
    )
    return [_to_read(w, include_sets=False) for w in result.scalars().all()]


async def all_workouts(db: AsyncSession) -> list[WorkoutRead]:
    """Every aggregate with sets, oldest first. Used for exports and migration reads."""
    result = await db.execute(
        select(Workout)
        .options(
            selectinload(Workout.exercises).selectinload(WorkoutExercise.exercise),
            selectinload(Workout.exercises).selectinload(WorkoutExercise.sets),
        )
        .order_by(Workout.created_at, Workout.id)
    )
    return [_to_read(w) for w in result.scalars().all()]


async def create_workout(db: AsyncSession, payload: WorkoutCreate) -> WorkoutRead:
    """Insert a workout and its exercises. Every exercise must reference the library."""
    name = require_text(payload.name, "Workout name", 255)
    plan = plan_reconciliation({}, normalize_desired(payload.exercises))
    workout_id = payload.id or new_id()

    existing = await db.execute(select(Workout.id).where(Workout.id == workout_id))
    if existing.first() is not None:
        raise ConflictError(f"Workout {workout_id} already exists")
    await ensure_exercises_exist(db, plan.referenced_exercise_ids)
    await _ensure_ids_unclaimed(db, [item.id for item in plan.new])

    now = utcnow()
    db.add(Workout(id=workout_id, name=name, source=payload.source.value, created_at=now, updated_at=now))
    await db.flush()
    db.add_all([_new_row(workout_id, item) for item in plan.new])
    await db.flush()
    logger.info("Created workout %s with %d exercise(s)", workout_id, len(plan.new))
    return await get_workout(db, workout_id)


async def upsert_workout(db: AsyncSession, workout_id: uuid.UUID, payload: WorkoutUpsert) -> WorkoutRead:
    """Reconcile the stored workout with the desired exercise list.

    Unchanged ids are updated in place (their sets survive), new ids are
    inserted, missing ids are deleted together with their sets. A workout id
    that does not exist yet is created.
    """
    name = require_text(payload.name, "Workout name", 255)
    desired = normalize_desired(payload.exercises)

    locked = await db.execute(select(Workout.id).where(Workout.id == workout_id).with_for_update())
    if locked.scalar_one_or_none() is None:
        logger.info("Upsert of unknown workout %s, creating it", workout_id)
        return await create_workout(db, WorkoutCreate(id=workout_id, name=name, exercises=desired))

    rows = await db.execute(
        select(WorkoutExercise.id, WorkoutExercise.exercise_id).where(WorkoutExercise.workout_id == workout_id)
    )
    current = {row.id: row.exercise_id for row in rows}
    plan = plan_reconciliation(current, desired)
    await ensure_exercises_exist(db, plan.referenced_exercise_ids)
    await _ensure_ids_unclaimed(db, [item.id for item in plan.new])

    if plan.removed:
        await db.execute(
            delete(WorkoutSet).where(WorkoutSet.workout_exercise_id.in_(plan.removed)).execution_options(**_BULK)
        )
        await db.execute(
            delete(WorkoutExercise).where(WorkoutExercise.id.in_(plan.removed)).execution_options(**_BULK)
        )

    # (workout_id, order_index) is unique: park kept rows on negative slots before the final write
    for slot, item in enumerate(plan.unchanged, start=1):
        await db.execute(
            update(WorkoutExercise)
            .where(WorkoutExercise.id == item.id)
            .values(order_index=-slot)
            .execution_options(**_BULK)
        )
    for item in plan.unchanged:
        await db.execute(
            update(WorkoutExercise)
            .where(WorkoutExercise.id == item.id)
            .values(
                order_index=item.order_index,
                target_sets=item.target_sets,
                target_reps=item.target_reps,
                target_weight=item.target_weight,
            )
            .execution_options(**_BULK)
        )

    if plan.new:
        db.add_all([_new_row(workout_id, item) for item in plan.new])
        await db.flush()

    await db.execute(
        update(Workout)
        .where(Workout.id == workout_id)
        .values(name=name, updated_at=utcnow())
        .execution_options(**_BULK)
    )
    logger.info(
        "Reconciled workout %s: %d kept, %d added, %d removed",
        workout_id,
        len(plan.unchanged),
        len(plan.new),
        len(plan.removed),
    )
    return await get_workout(db, workout_id)


async def delete_workout(db: AsyncSession, workout_id: uuid.UUID) -> bool:
    """Delete the aggregate. History entries keep their row with workout_id cleared.

    Returns False when the workout did not exist; that is not an error.
    """
    locked = await db.execute(select(Workout.id).where(Workout.id == workout_id).with_for_update())
    if locked.scalar_one_or_none() is None:
        return False

    owned = select(WorkoutExercise.id).where(WorkoutExercise.workout_id == workout_id)
    await db.execute(delete(WorkoutSet).where(WorkoutSet.workout_exercise_id.in_(owned)).execution_options(**_BULK))
    await db.execute(
        delete(WorkoutExercise).where(WorkoutExercise.workout_id == workout_id).execution_options(**_BULK)
    )
    await db.execute(
        update(HistoryEntry)
        .where(HistoryEntry.workout_id == workout_id)
        .values(workout_id=None)
        .execution_options(**_BULK)
    )
    await db.execute(delete(Workout).where(Workout.id == workout_id).execution_options(**_BULK))
    logger.info("Deleted workout %s", workout_id)
    return True


async def import_workout(db: AsyncSession, record: WorkoutRead) -> bool:
    """Insert a legacy aggregate (workout, exercises, sets) unless the workout id exists."""
    result = await db.execute(
        insert_or_skip(
            db,
            Workout,
            {
                "id": record.id,
                "name": require_text(record.name, "Workout name", 255),
                "source": record.source.value,
                "created_at": as_utc(record.created_at),
                "updated_at": as_utc(record.updated_at),
            },
        )
    )
    if result.scalar_one_or_none() is None:
        return False

    items = normalize_desired(
        [WorkoutExerciseIn.model_validate(we.model_dump()) for we in record.exercises]
    )
    await ensure_exercises_exist(db, {item.exercise_id for item in items})
    db.add_all([_new_row(record.id, item) for item in items])
    await db.flush()
    db.add_all(
        [
            WorkoutSet(
                id=s.id,
                workout_exercise_id=we.id,
                performed_at=as_utc(s.performed_at),
                reps=s.reps,
                weight=s.weight,
                rpe=s.rpe,
                rest_seconds=s.rest_seconds,
                notes=s.notes,
                created_at=as_utc(s.created_at),
            )
            for we in record.exercises
            for s in we.sets
        ]
    )
    await db.flush()
    return True


async def count_workouts(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(Workout))
    return result.scalar_one()
