"""Legacy file-backed storage: one JSON array per entity under a data directory.

Workouts are stored as nested documents (workout -> exercises -> sets).
Library data on workout exercises and workout names on history rows are not
stored; they are joined in on read, as the relational backend does.

Every operation holds the backend lock for its whole read-modify-write cycle
and file writes go through a temp file and an atomic rename, so a crash never
leaves a half-written file behind.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from liftlog.core.constants import (
    DEFAULT_HISTORY_PAGE_SIZE,
    DEFAULT_PAGE_SIZE,
    LEGACY_FILES,
    MAX_CATEGORY_LENGTH,
    MAX_EXERCISE_NAME_LENGTH,
    MAX_HISTORY_PAGE_SIZE,
    MAX_PAGE_SIZE,
    SETTINGS_FILE,
)
from liftlog.core.enums import BackendKind, Entity, WorkoutSource
from liftlog.core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from liftlog.core.ids import (
    as_utc,
    clamp_limit,
    exercise_order_key,
    history_order_key,
    new_id,
    set_order_key,
    utcnow,
)
from liftlog.schemas.exercise import ExerciseCreate, ExerciseImport, ExercisePage, ExerciseRead, ExerciseRef
from liftlog.schemas.history import HistoryCreate, HistoryCursor, HistoryPage, HistoryRead
from liftlog.schemas.settings import SettingsRead, SettingsUpdate
from liftlog.schemas.workout import (
    SetCreate,
    SetRead,
    SetUpdate,
    WorkoutCreate,
    WorkoutExerciseIn,
    WorkoutExerciseRead,
    WorkoutRead,
    WorkoutUpsert,
)
from liftlog.services.reconcile import normalize_desired, plan_reconciliation
from liftlog.services.validation import require_text, same_name

logger = logging.getLogger(__name__)

# Derived fields that are joined on read and never written to disk
_WORKOUT_EXCLUDE = {"exercises": {"__all__": {"exercise"}}}
_HISTORY_EXCLUDE = {"workout_name"}


def _read_file(path: Path) -> list[dict[str, Any]]:
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, list):
        raise ValueError(f"{path.name} does not hold a JSON array")
    return data


def _write_file(path: Path, records: list[dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(records, fh, indent=2)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class JsonFileBackend:
    kind = BackendKind.JSON

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)
        self._lock = asyncio.Lock()

    # ── File access ────────────────────────────────────────────────────

    def _path(self, entity: Entity) -> Path:
        return self.data_dir / LEGACY_FILES[entity.value]

    async def _read(self, path: Path) -> list[dict[str, Any]]:
        try:
            return await asyncio.to_thread(_read_file, path)
        except (OSError, ValueError) as exc:
            raise StorageError(f"Cannot read legacy file {path}", exc) from exc

    async def _write(self, path: Path, records: list[dict[str, Any]]) -> None:
        try:
            await asyncio.to_thread(_write_file, path, records)
        except OSError as exc:
            raise StorageError(f"Cannot write legacy file {path}", exc) from exc

    async def _load(self, entity: Entity) -> list[dict[str, Any]]:
        return await self._read(self._path(entity))

    async def _save(self, entity: Entity, records: list[dict[str, Any]]) -> None:
        await self._write(self._path(entity), records)

    async def _parse(self, entity: Entity, model: type) -> list:
        raw = await self._load(entity)
        try:
            return [model.model_validate(r) for r in raw]
        except PydanticValidationError as exc:
            raise StorageError(f"Malformed record in {self._path(entity).name}", exc) from exc

    async def _exercises(self) -> list[ExerciseRead]:
        return await self._parse(Entity.EXERCISES, ExerciseImport)

    async def _workouts(self) -> list[WorkoutRead]:
        return await self._parse(Entity.WORKOUTS, WorkoutRead)

    async def _history(self) -> list[HistoryRead]:
        return await self._parse(Entity.HISTORY, HistoryRead)

    async def _save_exercises(self, items: list[ExerciseRead]) -> None:
        await self._save(Entity.EXERCISES, [e.model_dump(mode="json") for e in items])

    async def _save_workouts(self, items: list[WorkoutRead]) -> None:
        await self._save(Entity.WORKOUTS, [w.model_dump(mode="json", exclude=_WORKOUT_EXCLUDE) for w in items])

    async def _save_history(self, items: list[HistoryRead]) -> None:
        await self._save(Entity.HISTORY, [h.model_dump(mode="json", exclude=_HISTORY_EXCLUDE) for h in items])

    # ── Read shaping ───────────────────────────────────────────────────

    @staticmethod
    def _shape_workout(
        workout: WorkoutRead, library: dict[uuid.UUID, ExerciseRead], include_sets: bool = True
    ) -> WorkoutRead:
        exercises = []
        for we in sorted(workout.exercises, key=lambda e: exercise_order_key(e.order_index, e.id)):
            ref = library.get(we.exercise_id)
            sets = sorted(we.sets, key=lambda s: set_order_key(s.created_at, s.id)) if include_sets else []
            exercises.append(
                we.model_copy(
                    update={
                        "exercise": ExerciseRef.model_validate(ref.model_dump()) if ref else None,
                        "sets": sets,
                    }
                )
            )
        return workout.model_copy(update={"exercises": exercises})

    @staticmethod
    def _find_slot(
        workouts: list[WorkoutRead], workout_exercise_id: uuid.UUID
    ) -> WorkoutExerciseRead | None:
        for workout in workouts:
            for we in workout.exercises:
                if we.id == workout_exercise_id:
                    return we
        return None

    @staticmethod
    def _claimed_slot_ids(workouts: list[WorkoutRead]) -> set[uuid.UUID]:
        return {we.id for w in workouts for we in w.exercises}

    @staticmethod
    def _require_library(library: dict[uuid.UUID, ExerciseRead], exercise_ids: set[uuid.UUID]) -> None:
        missing = exercise_ids - set(library)
        if missing:
            listed = ", ".join(sorted(str(m) for m in missing))
            raise ValidationError(f"Unknown exercise id(s): {listed}")

    @staticmethod
    def _slot(workout_id: uuid.UUID, item: WorkoutExerciseIn, sets: list[SetRead] | None = None) -> WorkoutExerciseRead:
        return WorkoutExerciseRead(
            id=item.id,
            workout_id=workout_id,
            exercise_id=item.exercise_id,
            order_index=item.order_index,
            target_sets=item.target_sets,
            target_reps=item.target_reps,
            target_weight=item.target_weight,
            sets=sets or [],
        )

    # ── Exercise library ───────────────────────────────────────────────

    async def create_exercise(self, payload: ExerciseCreate) -> ExerciseRead:
        name = require_text(payload.name, "Exercise name", MAX_EXERCISE_NAME_LENGTH)
        category = require_text(payload.category, "Exercise category", MAX_CATEGORY_LENGTH)
        async with self._lock:
            items = await self._exercises()
            if any(same_name(e.name, name) for e in items):
                raise ConflictError(f'Exercise with name "{name}" already exists')
            if payload.id is not None and any(e.id == payload.id for e in items):
                raise ConflictError(f"Exercise {payload.id} already exists")
            exercise = ExerciseRead(
                id=payload.id or new_id(),
                name=name,
                category=category,
                equipment=list(payload.equipment),
                notes=payload.notes,
                created_at=utcnow(),
            )
            items.append(exercise)
            await self._save_exercises(items)
        return exercise

    async def get_exercise(self, exercise_id: uuid.UUID) -> ExerciseRead | None:
        async with self._lock:
            items = await self._exercises()
        return next((e for e in items if e.id == exercise_id), None)

    async def exercise_exists(self, exercise_id: uuid.UUID) -> bool:
        return await self.get_exercise(exercise_id) is not None

    async def list_exercises(
        self,
        search: str | None = None,
        category: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> ExercisePage:
        async with self._lock:
            items = await self._exercises()
        if search and search.strip():
            needle = search.strip().casefold()
            items = [e for e in items if needle in e.name.casefold()]
        if category and category.strip():
            items = [e for e in items if e.category == category.strip()]
        items.sort(key=lambda e: (e.name, e.id))
        start = max(0, offset)
        size = clamp_limit(limit, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)
        return ExercisePage(data=items[start : start + size], total=len(items))

    async def delete_exercise(self, exercise_id: uuid.UUID) -> bool:
        async with self._lock:
            items = await self._exercises()
            if not any(e.id == exercise_id for e in items):
                return False
            in_use = sum(
                1 for w in await self._workouts() for we in w.exercises if we.exercise_id == exercise_id
            )
            if in_use:
                raise ConflictError(f"Exercise {exercise_id} is used by {in_use} workout exercise(s)")
            await self._save_exercises([e for e in items if e.id != exercise_id])
        return True

    # ── Workout aggregate ──────────────────────────────────────────────

    async def _create_locked(
        self, workout_id: uuid.UUID, name: str, source: WorkoutSource, items: list[WorkoutExerciseIn]
    ) -> WorkoutRead:
        plan = plan_reconciliation({}, items)
        workouts = await self._workouts()
        if any(w.id == workout_id for w in workouts):
            raise ConflictError(f"Workout {workout_id} already exists")
        library = {e.id: e for e in await self._exercises()}
        self._require_library(library, plan.referenced_exercise_ids)
        taken = self._claimed_slot_ids(workouts) & {item.id for item in plan.new}
        if taken:
            listed = ", ".join(sorted(str(t) for t in taken))
            raise ValidationError(f"Workout exercise id(s) belong to another workout: {listed}")

        now = utcnow()
        workout = WorkoutRead(
            id=workout_id,
            name=name,
            source=source,
            created_at=now,
            updated_at=now,
            exercises=[self._slot(workout_id, item) for item in plan.new],
        )
        workouts.append(workout)
        await self._save_workouts(workouts)
        logger.info("Created workout %s with %d exercise(s)", workout_id, len(plan.new))
        return self._shape_workout(workout, library)

    async def create_workout(self, payload: WorkoutCreate) -> WorkoutRead:
        name = require_text(payload.name, "Workout name", 255)
        items = normalize_desired(payload.exercises)
        async with self._lock:
            return await self._create_locked(payload.id or new_id(), name, payload.source, items)

    async def get_workout(self, workout_id: uuid.UUID) -> WorkoutRead | None:
        async with self._lock:
            workouts = await self._workouts()
            workout = next((w for w in workouts if w.id == workout_id), None)
            if workout is None:
                return None
            library = {e.id: e for e in await self._exercises()}
        return self._shape_workout(workout, library)

    async def upsert_workout(self, workout_id: uuid.UUID, payload: WorkoutUpsert) -> WorkoutRead:
        name = require_text(payload.name, "Workout name", 255)
        desired = normalize_desired(payload.exercises)
        async with self._lock:
            workouts = await self._workouts()
            position = next((i for i, w in enumerate(workouts) if w.id == workout_id), None)
            if position is None:
                logger.info("Upsert of unknown workout %s, creating it", workout_id)
                return await self._create_locked(workout_id, name, WorkoutSource.CUSTOM, desired)

            stored = workouts[position]
            current = {we.id: we for we in stored.exercises}
            plan = plan_reconciliation({we.id: we.exercise_id for we in stored.exercises}, desired)
            library = {e.id: e for e in await self._exercises()}
            self._require_library(library, plan.referenced_exercise_ids)
            others = [w for w in workouts if w.id != workout_id]
            taken = self._claimed_slot_ids(others) & {item.id for item in plan.new}
            if taken:
                listed = ", ".join(sorted(str(t) for t in taken))
                raise ValidationError(f"Workout exercise id(s) belong to another workout: {listed}")

            kept = [self._slot(workout_id, item, current[item.id].sets) for item in plan.unchanged]
            added = [self._slot(workout_id, item) for item in plan.new]
            workout = stored.model_copy(
                update={
                    "name": name,
                    "updated_at": utcnow(),
                    "exercises": sorted(kept + added, key=lambda e: exercise_order_key(e.order_index, e.id)),
                }
            )
            workouts[position] = workout
            await self._save_workouts(workouts)
        logger.info(
            "Reconciled workout %s: %d kept, %d added, %d removed",
            workout_id,
            len(plan.unchanged),
            len(plan.new),
            len(plan.removed),
        )
        return self._shape_workout(workout, library)

    async def delete_workout(self, workout_id: uuid.UUID) -> bool:
        async with self._lock:
            workouts = await self._workouts()
            if not any(w.id == workout_id for w in workouts):
                return False
            entries = await self._history()
            await self._save_workouts([w for w in workouts if w.id != workout_id])
            if any(h.workout_id == workout_id for h in entries):
                try:
                    await self._save_history(
                        [
                            h.model_copy(update={"workout_id": None}) if h.workout_id == workout_id else h
                            for h in entries
                        ]
                    )
                except StorageError:
                    # Put the workout back so the delete applies fully or not at all
                    await self._save_workouts(workouts)
                    raise
        logger.info("Deleted workout %s", workout_id)
        return True

    async def list_workouts(self, limit: int | None = None, offset: int = 0) -> list[WorkoutRead]:
        async with self._lock:
            workouts = await self._workouts()
            library = {e.id: e for e in await self._exercises()}
        workouts.sort(key=lambda w: (as_utc(w.created_at), w.id), reverse=True)
        start = max(0, offset)
        size = clamp_limit(limit, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)
        return [self._shape_workout(w, library, include_sets=False) for w in workouts[start : start + size]]

    # ── Sets ───────────────────────────────────────────────────────────

    async def add_set(self, workout_exercise_id: uuid.UUID, payload: SetCreate) -> SetRead:
        async with self._lock:
            workouts = await self._workouts()
            slot = self._find_slot(workouts, workout_exercise_id)
            if slot is None:
                raise NotFoundError(f"Workout exercise {workout_exercise_id} not found")
            now = utcnow()
            row = SetRead(
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
            slot.sets.append(row)
            await self._save_workouts(workouts)
        return row

    async def update_set(self, set_id: uuid.UUID, changes: SetUpdate) -> SetRead:
        fields = changes.model_dump(exclude_unset=True)
        if "reps" in fields and fields["reps"] is None:
            raise ValidationError("reps cannot be cleared")
        async with self._lock:
            workouts = await self._workouts()
            for workout in workouts:
                for we in workout.exercises:
                    for i, row in enumerate(we.sets):
                        if row.id == set_id:
                            updated = row.model_copy(update=fields)
                            we.sets[i] = updated
                            await self._save_workouts(workouts)
                            return updated
        raise NotFoundError(f"Set {set_id} not found")

    async def delete_set(self, set_id: uuid.UUID) -> bool:
        async with self._lock:
            workouts = await self._workouts()
            for workout in workouts:
                for we in workout.exercises:
                    remaining = [s for s in we.sets if s.id != set_id]
                    if len(remaining) != len(we.sets):
                        we.sets = remaining
                        await self._save_workouts(workouts)
                        return True
        return False

    async def list_sets(self, workout_exercise_id: uuid.UUID) -> list[SetRead]:
        async with self._lock:
            workouts = await self._workouts()
        slot = self._find_slot(workouts, workout_exercise_id)
        if slot is None:
            raise NotFoundError(f"Workout exercise {workout_exercise_id} not found")
        return sorted(slot.sets, key=lambda s: set_order_key(s.created_at, s.id))

    # ── History ledger ─────────────────────────────────────────────────

    async def _workout_names(self) -> dict[uuid.UUID, str]:
        return {w.id: w.name for w in await self._workouts()}

    async def log_session(self, payload: HistoryCreate) -> HistoryRead:
        async with self._lock:
            names = await self._workout_names()
            if payload.workout_id is not None and payload.workout_id not in names:
                raise ValidationError(f"Workout {payload.workout_id} does not exist")
            entries = await self._history()
            now = utcnow()
            entry = HistoryRead(
                id=payload.id or new_id(),
                workout_id=payload.workout_id,
                performed_at=as_utc(payload.performed_at) if payload.performed_at else now,
                duration_seconds=payload.duration_seconds,
                notes=payload.notes,
                created_at=now,
            )
            entries.append(entry)
            await self._save_history(entries)
        return entry.model_copy(update={"workout_name": names.get(entry.workout_id)})

    async def _ledger(self) -> list[HistoryRead]:
        """All entries newest first, with workout names joined in."""
        async with self._lock:
            entries = await self._history()
            names = await self._workout_names()
        entries.sort(key=lambda h: history_order_key(h.performed_at, h.id), reverse=True)
        return [h.model_copy(update={"workout_name": names.get(h.workout_id)}) for h in entries]

    async def list_history(
        self,
        limit: int | None = None,
        cursor: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        workout_id: uuid.UUID | None = None,
    ) -> HistoryPage:
        size = clamp_limit(limit, DEFAULT_HISTORY_PAGE_SIZE, MAX_HISTORY_PAGE_SIZE)
        after = HistoryCursor.decode(cursor) if cursor else None

        rows = await self._ledger()
        if from_date is not None:
            rows = [h for h in rows if as_utc(h.performed_at) >= as_utc(from_date)]
        if to_date is not None:
            rows = [h for h in rows if as_utc(h.performed_at) < as_utc(to_date)]
        if workout_id is not None:
            rows = [h for h in rows if h.workout_id == workout_id]
        if after is not None:
            boundary = history_order_key(after.performed_at, after.id)
            rows = [h for h in rows if history_order_key(h.performed_at, h.id) < boundary]

        data = rows[:size]
        has_more = len(rows) > size
        return HistoryPage(
            data=data,
            cursor=HistoryCursor.after(data[-1]).encode() if has_more else None,
            has_more=has_more,
        )

    async def get_history_by_workout_id(self, workout_id: uuid.UUID) -> HistoryRead | None:
        return next((h for h in await self._ledger() if h.workout_id == workout_id), None)

    # ── User settings ──────────────────────────────────────────────────

    async def _settings(self) -> list[SettingsRead]:
        raw = await self._read(self.data_dir / SETTINGS_FILE)
        try:
            return [SettingsRead.model_validate(r) for r in raw]
        except PydanticValidationError as exc:
            raise StorageError(f"Malformed record in {SETTINGS_FILE}", exc) from exc

    @staticmethod
    def _settings_for(items: list[SettingsRead], user_id: str | None) -> SettingsRead | None:
        matches = [s for s in items if s.user_id == user_id]
        return min(matches, key=lambda s: (as_utc(s.created_at), s.id), default=None)

    async def get_preferences(self, user_id: str | None = None) -> SettingsRead | None:
        async with self._lock:
            items = await self._settings()
        return self._settings_for(items, user_id)

    async def save_preferences(self, payload: SettingsUpdate) -> SettingsRead:
        async with self._lock:
            items = await self._settings()
            current = self._settings_for(items, payload.user_id)
            now = utcnow()
            if current is None:
                saved = SettingsRead(
                    id=payload.id or new_id(),
                    user_id=payload.user_id,
                    units=payload.units,
                    preferences=dict(payload.preferences),
                    created_at=now,
                    updated_at=now,
                )
                items.append(saved)
            else:
                saved = current.model_copy(
                    update={"units": payload.units, "preferences": dict(payload.preferences), "updated_at": now}
                )
                items = [saved if s.id == current.id else s for s in items]
            await self._write(self.data_dir / SETTINGS_FILE, [s.model_dump(mode="json") for s in items])
        return saved

    # ── Migration support ──────────────────────────────────────────────

    async def count(self, entity: Entity) -> int:
        async with self._lock:
            return len(await self._load(entity))

    async def read_records(self, entity: Entity) -> list[dict[str, Any]]:
        async with self._lock:
            return await self._load(entity)

    async def import_exercise(self, record: ExerciseRead) -> bool:
        async with self._lock:
            items = await self._exercises()
            if any(e.id == record.id or same_name(e.name, record.name) for e in items):
                return False
            items.append(record)
            await self._save_exercises(items)
        return True

    async def import_workout(self, record: WorkoutRead) -> bool:
        async with self._lock:
            workouts = await self._workouts()
            if any(w.id == record.id for w in workouts):
                return False
            library = {e.id: e for e in await self._exercises()}
            self._require_library(library, {we.exercise_id for we in record.exercises})
            workouts.append(record)
            await self._save_workouts(workouts)
        return True

    async def import_history_entry(self, record: HistoryRead) -> bool:
        async with self._lock:
            entries = await self._history()
            if any(h.id == record.id for h in entries):
                return False
            if record.workout_id is not None and record.workout_id not in await self._workout_names():
                logger.warning(
                    "History %s references missing workout %s, importing without it", record.id, record.workout_id
                )
                record = record.model_copy(update={"workout_id": None})
            entries.append(record)
            await self._save_history(entries)
        return True
