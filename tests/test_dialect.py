import uuid
from types import SimpleNamespace

import pytest
from sqlalchemy.dialects import sqlite

from liftlog.core.enums import Entity
from liftlog.core.errors import StorageError
from liftlog.db import dialect
from liftlog.db.dialect import insert_or_skip
from liftlog.models.exercise import Exercise
from liftlog.schemas.exercise import ExerciseCreate
from liftlog.services.backfill import BackfillService


def _session_on(name):
    return SimpleNamespace(get_bind=lambda: SimpleNamespace(dialect=SimpleNamespace(name=name)))


def test_sqlite_insert_skips_conflicts():
    stmt = insert_or_skip(_session_on("sqlite"), Exercise, {"id": uuid.uuid4(), "name": "Row", "category": "back"})
    sql = str(stmt.compile(dialect=sqlite.dialect()))
    assert "ON CONFLICT DO NOTHING" in sql
    assert "RETURNING" in sql


def test_unsupported_dialect_is_a_storage_error():
    with pytest.raises(StorageError) as exc_info:
        insert_or_skip(_session_on("mssql"), Exercise, {"id": uuid.uuid4()})
    assert "mssql" in exc_info.value.message


async def test_backfill_counts_unsupported_dialect_as_skipped(monkeypatch, json_backend, sql_backend):
    await json_backend.create_exercise(ExerciseCreate(name="Row", category="back"))
    await json_backend.create_exercise(ExerciseCreate(name="Deadlift", category="back"))
    monkeypatch.setattr(dialect, "_INSERTS", {})

    result = await BackfillService(json_backend, sql_backend).backfill_exercises()

    assert (result.inserted, result.skipped) == (0, 2)
    assert await sql_backend.count(Entity.EXERCISES) == 0
