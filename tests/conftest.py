"""Shared fixtures: an in-memory SQLite relational store and a tmp_path JSON store."""

import os

# Settings are read at import time by liftlog.db.session
os.environ.setdefault("DATABASE_DSN", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

import liftlog.models  # noqa: F401 - register all models
from liftlog.db.base import Base
from liftlog.db.session import build_engine
from liftlog.schemas.exercise import ExerciseCreate
from liftlog.storage.json_file import JsonFileBackend
from liftlog.storage.sql import SqlBackend


@pytest.fixture
async def engine():
    engine = build_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
def sql_backend(session_maker):
    return SqlBackend(session_maker)


@pytest.fixture
def json_backend(tmp_path):
    return JsonFileBackend(tmp_path / "legacy")


@pytest.fixture(params=["db", "json"])
def backend(request):
    """Run a test once against each storage backend."""
    if request.param == "db":
        return request.getfixturevalue("sql_backend")
    return request.getfixturevalue("json_backend")


@pytest.fixture
async def library(backend):
    """Two library exercises on the parametrized backend."""
    bench = await backend.create_exercise(
        ExerciseCreate(name="Bench Press", category="chest", equipment=["barbell", "bench"])
    )
    squat = await backend.create_exercise(ExerciseCreate(name="Back Squat", category="legs", equipment=["barbell"]))
    return bench, squat
