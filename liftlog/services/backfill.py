"""Copy legacy (JSON) records into the relational store.

Each record is validated and inserted in its own transaction with
insert-or-skip semantics, so a backfill can be re-run at any time: records
already present are counted as skipped and nothing is duplicated.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from liftlog.core.enums import Entity
from liftlog.core.errors import MigrationError, StorageError
from liftlog.schemas.exercise import ExerciseImport
from liftlog.schemas.history import HistoryRead
from liftlog.schemas.migration import BackfillReport, BackfillResult
from liftlog.schemas.workout import WorkoutRead
from liftlog.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class BackfillService:
    def __init__(self, source: StorageBackend, target: StorageBackend):
        self.source = source
        self.target = target

    async def _copy(
        self,
        entity: Entity,
        model: type[BaseModel],
        insert: Callable[[Any], Awaitable[bool]],
    ) -> BackfillResult:
        result = BackfillResult(entity=entity)
        try:
            records = await self.source.read_records(entity)
        except StorageError as exc:
            raise MigrationError(f"Cannot read legacy {entity.value}", exc) from exc

        for raw in records:
            try:
                record = model.model_validate(raw)
                if await insert(record):
                    result.inserted += 1
                else:
                    result.skipped += 1
            except PydanticValidationError as exc:
                result.skipped += 1
                logger.warning("Skipping invalid legacy %s record %s: %s", entity.value, _record_id(raw), exc)
            except StorageError as exc:
                result.skipped += 1
                logger.warning(
                    "Skipping legacy %s record %s (%s): %s", entity.value, _record_id(raw), exc.code, exc.message
                )

        logger.info(
            "Backfilled %s: %d inserted, %d skipped", entity.value, result.inserted, result.skipped
        )
        return result

    async def backfill_exercises(self) -> BackfillResult:
        return await self._copy(Entity.EXERCISES, ExerciseImport, self.target.import_exercise)

    async def _exercise_id_map(self) -> dict[uuid.UUID, uuid.UUID]:
        """Legacy exercise id -> target id, for library entries the target holds under another id.

        Names are unique case-insensitively in both stores, so a legacy
        exercise skipped for its name is the target entry with that name.
        """
        try:
            legacy = await self.source.read_records(Entity.EXERCISES)
            current = await self.target.read_records(Entity.EXERCISES)
        except StorageError as exc:
            raise MigrationError("Cannot read exercise libraries", exc) from exc

        by_name = {str(r["name"]).strip().casefold(): uuid.UUID(str(r["id"])) for r in current}
        present = set(by_name.values())
        mapping: dict[uuid.UUID, uuid.UUID] = {}
        for raw in legacy:
            try:
                record = ExerciseImport.model_validate(raw)
            except PydanticValidationError:
                continue
            if record.id in present:
                continue
            resolved = by_name.get(record.name.strip().casefold())
            if resolved is not None:
                mapping[record.id] = resolved
        if mapping:
            logger.info("Remapping %d legacy exercise id(s) matched by name", len(mapping))
        return mapping

    async def backfill_workouts(self) -> BackfillResult:
        mapping = await self._exercise_id_map()

        async def insert(record: WorkoutRead) -> bool:
            return await self.target.import_workout(_remap_exercises(record, mapping))

        return await self._copy(Entity.WORKOUTS, WorkoutRead, insert)

    async def backfill_history(self) -> BackfillResult:
        return await self._copy(Entity.HISTORY, HistoryRead, self.target.import_history_entry)

    async def backfill_all(self) -> BackfillReport:
        """Exercises, then workouts, then history, so references resolve."""
        results: list[BackfillResult] = []
        for step in (self.backfill_exercises, self.backfill_workouts, self.backfill_history):
            try:
                results.append(await step())
            except MigrationError as exc:
                exc.inserted += sum(r.inserted for r in results)
                exc.skipped += sum(r.skipped for r in results)
                raise
        return BackfillReport(results=results)


def _record_id(raw: Any) -> str:
    if isinstance(raw, dict):
        return str(raw.get("id", "<no id>"))
    return "<not an object>"


def _remap_exercises(record: WorkoutRead, mapping: dict[uuid.UUID, uuid.UUID]) -> WorkoutRead:
    if not mapping:
        return record
    exercises = [
        we.model_copy(update={"exercise_id": mapping.get(we.exercise_id, we.exercise_id)})
        for we in record.exercises
    ]
    return record.model_copy(update={"exercises": exercises})
