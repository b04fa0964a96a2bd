"""Exercise library persistence (relational)."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from liftlog.core.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_CATEGORY_LENGTH,
    MAX_EXERCISE_NAME_LENGTH,
    MAX_PAGE_SIZE,
)
from liftlog.core.errors import ConflictError, ValidationError
from liftlog.core.ids import as_utc, clamp_limit, new_id, utcnow
from liftlog.db.dialect import insert_or_skip
from liftlog.models.exercise import Exercise
from liftlog.models.workout import WorkoutExercise
from liftlog.schemas.exercise import ExerciseCreate, ExercisePage, ExerciseRead
from liftlog.services.validation import require_text

logger = logging.getLogger(__name__)


async def create_exercise(db: AsyncSession, payload: ExerciseCreate) -> ExerciseRead:
    """Create a library entry. Names are unique case-insensitively."""
    name = require_text(payload.name, "Exercise name", MAX_EXERCISE_NAME_LENGTH)
    category = require_text(payload.category, "Exercise category", MAX_CATEGORY_LENGTH)

    clash = await db.execute(select(Exercise.id).where(func.lower(Exercise.name) == name.lower()))
    if clash.first() is not None:
        raise ConflictError(f'Exercise with name "{name}" already exists')
    if payload.id is not None and await exercise_exists(db, payload.id):
        raise ConflictError(f"Exercise {payload.id} already exists")

    now = utcnow()
    exercise = Exercise(
        id=payload.id or new_id(),
        name=name,
        category=category,
        equipment=list(payload.equipment),
        notes=payload.notes,
        created_at=now,
        updated_at=now,
    )
    db.add(exercise)
    await db.flush()
    return ExerciseRead.model_validate(exercise)


async def get_exercise(db: AsyncSession, exercise_id: uuid.UUID) -> ExerciseRead | None:
    result = await db.execute(select(Exercise).where(Exercise.id == exercise_id))
    exercise = result.scalar_one_or_none()
    return ExerciseRead.model_validate(exercise) if exercise else None


async def exercise_exists(db: AsyncSession, exercise_id: uuid.UUID) -> bool:
    result = await db.execute(select(Exercise.id).where(Exercise.id == exercise_id))
    return result.first() is not None


async def ensure_exercises_exist(db: AsyncSession, exercise_ids: set[uuid.UUID]) -> None:
    """Raise ValidationError naming every library id that does not exist."""
    if not exercise_ids:
        return
    result = await db.execute(select(Exercise.id).where(Exercise.id.in_(exercise_ids)))
    missing = exercise_ids - set(result.scalars().all())
    if missing:
        listed = ", ".join(sorted(str(m) for m in missing))
        raise ValidationError(f"Unknown exercise id(s): {listed}")


async def list_exercises(
    db: AsyncSession,
    search: str | None = None,
    category: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> ExercisePage:
    """Filter by name substring (case-insensitive) and exact category, ordered by name."""
    stmt = select(Exercise)
    if search and search.strip():
        stmt = stmt.where(Exercise.name.ilike(f"%{search.strip()}%"))
    if category and category.strip():
        stmt = stmt.where(Exercise.category == category.strip())

    total = await db.execute(select(func.count()).select_from(stmt.subquery()))
    page = await db.execute(
        stmt.order_by(Exercise.name, Exercise.id)
        .limit(clamp_limit(limit, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE))
        .offset(max(0, offset))
    )
    return ExercisePage(
        data=[ExerciseRead.model_validate(e) for e in page.scalars().all()],
        total=total.scalar_one(),
    )


async def all_exercises(db: AsyncSession) -> list[ExerciseRead]:
    result = await db.execute(select(Exercise).order_by(Exercise.created_at, Exercise.id))
    return [ExerciseRead.model_validate(e) for e in result.scalars().all()]


async def delete_exercise(db: AsyncSession, exercise_id: uuid.UUID) -> bool:
    """Delete a library entry; refused while any workout still references it."""
    if not await exercise_exists(db, exercise_id):
        return False
    refs = await db.execute(
        select(func.count()).select_from(WorkoutExercise).where(WorkoutExercise.exercise_id == exercise_id)
    )
    in_use = refs.scalar_one()
    if in_use:
        raise ConflictError(f"Exercise {exercise_id} is used by {in_use} workout exercise(s)")
    await db.execute(
        delete(Exercise).where(Exercise.id == exercise_id).execution_options(synchronize_session=False)
    )
    return True


async def import_exercise(db: AsyncSession, record: ExerciseRead) -> bool:
    """Insert a legacy record unless its id or name is already present."""
    result = await db.execute(
        insert_or_skip(
            db,
            Exercise,
            {
                "id": record.id,
                "name": record.name.strip(),
                "category": record.category.strip(),
                "equipment": list(record.equipment),
                "notes": record.notes,
                "created_at": as_utc(record.created_at),
                "updated_at": as_utc(record.created_at),
            },
        )
    )
    inserted = result.scalar_one_or_none() is not None
    if not inserted:
        logger.debug("Exercise %s (%s) already present, skipped", record.id, record.name)
    return inserted


async def count_exercises(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(Exercise))
    return result.scalar_one()
