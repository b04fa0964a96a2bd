"""Dual-write coordinator: front one primary backend, mirror mutations to a secondary.

Reads always go to the primary. A mutation runs on the primary first; only when
it succeeds, and the coordinator is in dual-write mode, is the same logical
mutation replayed on the secondary. Secondary failures are logged and never
reach the caller. There is no transaction spanning both backends, so the
parity checker is what tells whether they drifted.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

from liftlog.core.enums import WriteMode
from liftlog.core.ids import utcnow
from liftlog.schemas.exercise import ExerciseCreate, ExercisePage, ExerciseRead
from liftlog.schemas.history import HistoryCreate, HistoryPage, HistoryRead
from liftlog.schemas.settings import SettingsRead, SettingsUpdate
from liftlog.schemas.migration import DualWriteStatus
from liftlog.schemas.workout import SetCreate, SetRead, SetUpdate, WorkoutCreate, WorkoutRead, WorkoutUpsert
from liftlog.storage.base import StorageBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DualWriteCoordinator:
    def __init__(
        self,
        primary: StorageBackend,
        secondary: StorageBackend | None = None,
        mode: WriteMode = WriteMode.PRIMARY_ONLY,
    ):
        if mode is WriteMode.DUAL_WRITE and secondary is None:
            raise ValueError("Dual-write mode needs a secondary backend")
        self.primary = primary
        self.secondary = secondary
        self.mode = mode

    def with_mode(self, mode: WriteMode) -> "DualWriteCoordinator":
        """A coordinator over the same backends in another mode."""
        return DualWriteCoordinator(self.primary, self.secondary, mode)

    def status(self) -> DualWriteStatus:
        return DualWriteStatus(
            mode=self.mode,
            primary=self.primary.kind,
            secondary=self.secondary.kind if self.secondary is not None else None,
        )

    @property
    def mirroring(self) -> bool:
        return self.mode is WriteMode.DUAL_WRITE and self.secondary is not None

    async def _write(self, operation: str, call: Callable[[StorageBackend], Awaitable[T]]) -> T:
        result = await call(self.primary)
        if self.mirroring:
            try:
                await call(self.secondary)
            except Exception:
                logger.exception(
                    "Secondary %s write failed for %s; primary result kept",
                    self.secondary.kind.value,
                    operation,
                )
        return result

    # Exercise library

    async def create_exercise(self, payload: ExerciseCreate) -> ExerciseRead:
        payload = payload.with_id()
        return await self._write("create_exercise", lambda b: b.create_exercise(payload))

    async def get_exercise(self, exercise_id: uuid.UUID) -> ExerciseRead | None:
        return await self.primary.get_exercise(exercise_id)

    async def exercise_exists(self, exercise_id: uuid.UUID) -> bool:
        return await self.primary.exercise_exists(exercise_id)

    async def list_exercises(
        self,
        search: str | None = None,
        category: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> ExercisePage:
        return await self.primary.list_exercises(search, category, limit, offset)

    async def delete_exercise(self, exercise_id: uuid.UUID) -> bool:
        return await self._write("delete_exercise", lambda b: b.delete_exercise(exercise_id))

    # Workout aggregate

    async def create_workout(self, payload: WorkoutCreate) -> WorkoutRead:
        payload = payload.with_ids()
        return await self._write("create_workout", lambda b: b.create_workout(payload))

    async def get_workout(self, workout_id: uuid.UUID) -> WorkoutRead | None:
        return await self.primary.get_workout(workout_id)

    async def upsert_workout(self, workout_id: uuid.UUID, payload: WorkoutUpsert) -> WorkoutRead:
        payload = payload.with_ids()
        return await self._write("upsert_workout", lambda b: b.upsert_workout(workout_id, payload))

    async def delete_workout(self, workout_id: uuid.UUID) -> bool:
        return await self._write("delete_workout", lambda b: b.delete_workout(workout_id))

    async def list_workouts(self, limit: int | None = None, offset: int = 0) -> list[WorkoutRead]:
        return await self.primary.list_workouts(limit, offset)

    # Sets

    async def add_set(self, workout_exercise_id: uuid.UUID, payload: SetCreate) -> SetRead:
        payload = payload.with_id()
        if payload.performed_at is None:
            payload = payload.model_copy(update={"performed_at": utcnow()})
        return await self._write("add_set", lambda b: b.add_set(workout_exercise_id, payload))

    async def update_set(self, set_id: uuid.UUID, changes: SetUpdate) -> SetRead:
        return await self._write("update_set", lambda b: b.update_set(set_id, changes))

    async def delete_set(self, set_id: uuid.UUID) -> bool:
        return await self._write("delete_set", lambda b: b.delete_set(set_id))

    async def list_sets(self, workout_exercise_id: uuid.UUID) -> list[SetRead]:
        return await self.primary.list_sets(workout_exercise_id)

    # History ledger

    async def log_session(self, payload: HistoryCreate) -> HistoryRead:
        payload = payload.with_id()
        if payload.performed_at is None:
            payload = payload.model_copy(update={"performed_at": utcnow()})
        return await self._write("log_session", lambda b: b.log_session(payload))

    async def list_history(
        self,
        limit: int | None = None,
        cursor: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        workout_id: uuid.UUID | None = None,
    ) -> HistoryPage:
        return await self.primary.list_history(limit, cursor, from_date, to_date, workout_id)

    async def get_history_by_workout_id(self, workout_id: uuid.UUID) -> HistoryRead | None:
        return await self.primary.get_history_by_workout_id(workout_id)

    # User settings

    async def get_preferences(self, user_id: str | None = None) -> SettingsRead | None:
        return await self.primary.get_preferences(user_id)

    async def save_preferences(self, payload: SettingsUpdate) -> SettingsRead:
        payload = payload.with_id()
        return await self._write("save_preferences", lambda b: b.save_preferences(payload))
