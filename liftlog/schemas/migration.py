"""Backfill, parity and dual-write status schemas."""

from pydantic import BaseModel, ConfigDict, Field, computed_field

from liftlog.core.enums import BackendKind, Entity, WriteMode


class BackfillResult(BaseModel):
    entity: Entity
    inserted: int = 0
    skipped: int = 0


class BackfillReport(BaseModel):
    results: list[BackfillResult]

    @computed_field
    @property
    def inserted(self) -> int:
        return sum(r.inserted for r in self.results)

    @computed_field
    @property
    def skipped(self) -> int:
        return sum(r.skipped for r in self.results)


class EntityCounts(BaseModel):
    exercises: int = 0
    workouts: int = 0
    history: int = 0


class ParityReport(BaseModel):
    """Per-entity record counts in the legacy (json) and relational (db) backends."""

    model_config = ConfigDict(populate_by_name=True)

    json_counts: EntityCounts = Field(..., alias="json")
    db_counts: EntityCounts = Field(..., alias="db")
    is_consistent: bool
    mismatches: list[Entity] = []


class DualWriteStatus(BaseModel):
    mode: WriteMode
    primary: BackendKind
    secondary: BackendKind | None = None


class DualWriteToggle(BaseModel):
    enabled: bool
