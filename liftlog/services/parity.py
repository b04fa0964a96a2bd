"""Compare per-entity record counts between the legacy and relational stores."""

from __future__ import annotations

import logging

from liftlog.core.enums import Entity
from liftlog.core.errors import MigrationError, StorageError
from liftlog.schemas.migration import EntityCounts, ParityReport
from liftlog.storage.base import StorageBackend

logger = logging.getLogger(__name__)


async def _counts(backend: StorageBackend) -> EntityCounts:
    try:
        return EntityCounts(**{entity.value: await backend.count(entity) for entity in Entity})
    except StorageError as exc:
        raise MigrationError(f"Cannot count records in the {backend.kind.value} store", exc) from exc


class ParityChecker:
    def __init__(self, legacy: StorageBackend, relational: StorageBackend):
        self.legacy = legacy
        self.relational = relational

    async def check(self) -> ParityReport:
        json_counts = await _counts(self.legacy)
        db_counts = await _counts(self.relational)
        mismatches = [
            entity for entity in Entity if getattr(json_counts, entity.value) != getattr(db_counts, entity.value)
        ]
        if mismatches:
            logger.warning("Parity mismatch for %s", ", ".join(e.value for e in mismatches))
        return ParityReport(
            json_counts=json_counts,
            db_counts=db_counts,
            is_consistent=not mismatches,
            mismatches=mismatches,
        )
