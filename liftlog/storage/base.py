"""Storage capability shared by the relational and legacy file backends."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Protocol

from liftlog.core.enums import BackendKind, Entity
from liftlog.schemas.exercise import ExerciseCreate, ExercisePage, ExerciseRead
from liftlog.schemas.history import HistoryCreate, HistoryPage, HistoryRead
from liftlog.schemas.settings import SettingsRead, SettingsUpdate
from liftlog.schemas.workout import (
    SetCreate,
    SetRead,
    SetUpdate,
    WorkoutCreate,
    WorkoutRead,
    WorkoutUpsert,
)


class StorageBackend(Protocol):
    """Everything the API, the dual-write coordinator and the migration tools need.

    Each mutating operation is atomic per call: it either fully applies or
    leaves the store untouched. Errors are ``liftlog.core.errors.StorageError``
    subclasses.
    """

    kind: BackendKind

    # Exercise library
    async def create_exercise(self, payload: ExerciseCreate) -> ExerciseRead: ...

    async def get_exercise(self, exercise_id: uuid.UUID) -> ExerciseRead | None: ...

    async def exercise_exists(self, exercise_id: uuid.UUID) -> bool: ...

    async def list_exercises(
        self,
        search: str | None = None,
        category: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> ExercisePage: ...

    async def delete_exercise(self, exercise_id: uuid.UUID) -> bool: ...

    # Workout aggregate
    async def create_workout(self, payload: WorkoutCreate) -> WorkoutRead: ...

    async def get_workout(self, workout_id: uuid.UUID) -> WorkoutRead | None: ...

    async def upsert_workout(self, workout_id: uuid.UUID, payload: WorkoutUpsert) -> WorkoutRead: ...

    async def delete_workout(self, workout_id: uuid.UUID) -> bool: ...

    async def list_workouts(self, limit: int | None = None, offset: int = 0) -> list[WorkoutRead]: ...

    # Sets
    async def add_set(self, workout_exercise_id: uuid.UUID, payload: SetCreate) -> SetRead: ...

    async def update_set(self, set_id: uuid.UUID, changes: SetUpdate) -> SetRead: ...

    async def delete_set(self, set_id: uuid.UUID) -> bool: ...

    async def list_sets(self, workout_exercise_id: uuid.UUID) -> list[SetRead]: ...

    # History ledger
    async def log_session(self, payload: HistoryCreate) -> HistoryRead: ...

    async def list_history(
        self,
        limit: int | None = None,
        cursor: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        workout_id: uuid.UUID | None = None,
    ) -> HistoryPage: ...

    async def get_history_by_workout_id(self, workout_id: uuid.UUID) -> HistoryRead | None: ...

    # User settings
    async def get_preferences(self, user_id: str | None = None) -> SettingsRead | None: ...

    async def save_preferences(self, payload: SettingsUpdate) -> SettingsRead: ...

    # Migration support
    async def count(self, entity: Entity) -> int: ...

    async def read_records(self, entity: Entity) -> list[dict[str, Any]]:
        """Raw stored records of one entity, as JSON-compatible dicts."""
        ...

    async def import_exercise(self, record: ExerciseRead) -> bool: ...

    async def import_workout(self, record: WorkoutRead) -> bool: ...

    async def import_history_entry(self, record: HistoryRead) -> bool: ...
