"""Relational storage backend: one session and one transaction per operation."""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from liftlog.core.enums import BackendKind, Entity
from liftlog.core.errors import ConflictError, StorageError, TransactionError, ValidationError
from liftlog.repositories import exercises, history, sets, settings, workouts
from liftlog.schemas.exercise import ExerciseCreate, ExercisePage, ExerciseRead
from liftlog.schemas.history import HistoryCreate, HistoryPage, HistoryRead
from liftlog.schemas.settings import SettingsRead, SettingsUpdate
from liftlog.schemas.workout import SetCreate, SetRead, SetUpdate, WorkoutCreate, WorkoutRead, WorkoutUpsert

logger = logging.getLogger(__name__)


def _translate(exc: SQLAlchemyError) -> StorageError:
    if isinstance(exc, IntegrityError):
        detail = str(exc.orig) if exc.orig is not None else str(exc)
        if "foreign key" in detail.lower():
            return ValidationError("Referenced record does not exist", exc)
        return ConflictError("Record conflicts with existing data", exc)
    if isinstance(exc, DBAPIError):
        return TransactionError("Database transaction failed, safe to retry", exc)
    return StorageError("Unexpected database error", exc)


class SqlBackend:
    kind = BackendKind.DB

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """Commit on success; roll back and raise a StorageError otherwise."""
        try:
            async with self._session_maker() as db, db.begin():
                yield db
        except StorageError:
            raise
        except SQLAlchemyError as exc:
            error = _translate(exc)
            logger.warning("Transaction rolled back (%s): %s", error.code, exc)
            raise error from exc

    # Exercise library

    async def create_exercise(self, payload: ExerciseCreate) -> ExerciseRead:
        async with self._transaction() as db:
            return await exercises.create_exercise(db, payload)

    async def get_exercise(self, exercise_id: uuid.UUID) -> ExerciseRead | None:
        async with self._transaction() as db:
            return await exercises.get_exercise(db, exercise_id)

    async def exercise_exists(self, exercise_id: uuid.UUID) -> bool:
        async with self._transaction() as db:
            return await exercises.exercise_exists(db, exercise_id)

    async def list_exercises(
        self,
        search: str | None = None,
        category: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> ExercisePage:
        async with self._transaction() as db:
            return await exercises.list_exercises(db, search, category, limit, offset)

    async def delete_exercise(self, exercise_id: uuid.UUID) -> bool:
        async with self._transaction() as db:
            return await exercises.delete_exercise(db, exercise_id)

    # Workout aggregate

    async def create_workout(self, payload: WorkoutCreate) -> WorkoutRead:
        async with self._transaction() as db:
            return await workouts.create_workout(db, payload)

    async def get_workout(self, workout_id: uuid.UUID) -> WorkoutRead | None:
        async with self._transaction() as db:
            return await workouts.get_workout(db, workout_id)

    async def upsert_workout(self, workout_id: uuid.UUID, payload: WorkoutUpsert) -> WorkoutRead:
        async with self._transaction() as db:
            return await workouts.upsert_workout(db, workout_id, payload)

    async def delete_workout(self, workout_id: uuid.UUID) -> bool:
        async with self._transaction() as db:
            return await workouts.delete_workout(db, workout_id)

    async def list_workouts(self, limit: int | None = None, offset: int = 0) -> list[WorkoutRead]:
        async with self._transaction() as db:
            return await workouts.list_workouts(db, limit, offset)

    # Sets

    async def add_set(self, workout_exercise_id: uuid.UUID, payload: SetCreate) -> SetRead:
        async with self._transaction() as db:
            return await sets.add_set(db, workout_exercise_id, payload)

    async def update_set(self, set_id: uuid.UUID, changes: SetUpdate) -> SetRead:
        async with self._transaction() as db:
            return await sets.update_set(db, set_id, changes)

    async def delete_set(self, set_id: uuid.UUID) -> bool:
        async with self._transaction() as db:
            return await sets.delete_set(db, set_id)

    async def list_sets(self, workout_exercise_id: uuid.UUID) -> list[SetRead]:
        async with self._transaction() as db:
            return await sets.list_sets(db, workout_exercise_id)

    # History ledger

    async def log_session(self, payload: HistoryCreate) -> HistoryRead:
        async with self._transaction() as db:
            return await history.log_session(db, payload)

    async def list_history(
        self,
        limit: int | None = None,
        cursor: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        workout_id: uuid.UUID | None = None,
    ) -> HistoryPage:
        async with self._transaction() as db:
            return await history.list_history(db, limit, cursor, from_date, to_date, workout_id)

    async def get_history_by_workout_id(self, workout_id: uuid.UUID) -> HistoryRead | None:
        async with self._transaction() as db:
            return await history.get_history_by_workout_id(db, workout_id)

    # User settings

    async def get_preferences(self, user_id: str | None = None) -> SettingsRead | None:
        async with self._transaction() as db:
            return await settings.get_preferences(db, user_id)

    async def save_preferences(self, payload: SettingsUpdate) -> SettingsRead:
        async with self._transaction() as db:
            return await settings.save_preferences(db, payload)

    # Migration support

    async def count(self, entity: Entity) -> int:
        counters = {
            Entity.EXERCISES: exercises.count_exercises,
            Entity.WORKOUTS: workouts.count_workouts,
            Entity.HISTORY: history.count_history,
        }
        async with self._transaction() as db:
            return await counters[entity](db)

    async def read_records(self, entity: Entity) -> list[dict[str, Any]]:
        async with self._transaction() as db:
            if entity is Entity.EXERCISES:
                rows = await exercises.all_exercises(db)
            elif entity is Entity.WORKOUTS:
                rows = await workouts.all_workouts(db)
            else:
                rows = await history.all_history(db)
        return [row.model_dump(mode="json") for row in rows]

    async def import_exercise(self, record: ExerciseRead) -> bool:
        async with self._transaction() as db:
            return await exercises.import_exercise(db, record)

    async def import_workout(self, record: WorkoutRead) -> bool:
        async with self._transaction() as db:
            return await workouts.import_workout(db, record)

    async def import_history_entry(self, record: HistoryRead) -> bool:
        async with self._transaction() as db:
            return await history.import_history_entry(db, record)
