"""Concurrent and cancelled aggregate writes, on the file store and a file-backed SQLite database."""

import asyncio

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from liftlog.db.base import Base
from liftlog.db.session import build_engine
from liftlog.schemas.exercise import ExerciseCreate
from liftlog.schemas.workout import SetCreate, WorkoutCreate, WorkoutExerciseIn, WorkoutUpsert
from liftlog.storage.sql import SqlBackend


@pytest.fixture
async def file_engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'liftlog.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def file_sql_backend(file_engine):
    return SqlBackend(async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False))


@pytest.fixture(params=["db", "json"])
def store(request):
    """Backends that serialize across connections: a real database file, or the locked JSON store."""
    if request.param == "db":
        return request.getfixturevalue("file_sql_backend")
    return request.getfixturevalue("json_backend")


async def _workout_with_sets(backend, name="Full Body"):
    bench = await backend.create_exercise(ExerciseCreate(name=f"{name} Bench", category="chest"))
    squat = await backend.create_exercise(ExerciseCreate(name=f"{name} Squat", category="legs"))
    workout = await backend.create_workout(
        WorkoutCreate(
            name=name,
            exercises=[
                WorkoutExerciseIn(exercise_id=bench.id, order_index=0),
                WorkoutExerciseIn(exercise_id=squat.id, order_index=1),
            ],
        )
    )
    first, second = workout.exercises
    await backend.add_set(first.id, SetCreate(reps=5, weight=100))
    await backend.add_set(second.id, SetCreate(reps=3, weight=140))
    await backend.add_set(second.id, SetCreate(reps=3, weight=145))
    return workout


def _desired(workout, name, reversed_order):
    first, second = workout.exercises
    ordered = [second, first] if reversed_order else [first, second]
    return WorkoutUpsert(
        name=name,
        exercises=[
            WorkoutExerciseIn(id=we.id, order_index=i, target_reps=10 if reversed_order else 5)
            for i, we in enumerate(ordered)
        ],
    )


def _shape(workout):
    return workout.name, [(we.id, we.order_index, we.target_reps) for we in workout.exercises]


async def test_concurrent_upserts_of_one_workout_serialize(store):
    workout = await _workout_with_sets(store)
    desired = [_desired(workout, f"Variant {i}", reversed_order=i % 2 == 1) for i in range(6)]

    results = await asyncio.gather(*(store.upsert_workout(workout.id, d) for d in desired))

    # Each call saw its own writes, whatever ran before it
    for want, got in zip(desired, results):
        assert got.name == want.name
        assert [(we.id, we.order_index) for we in got.exercises] == [(i.id, i.order_index) for i in want.exercises]

    final = await store.get_workout(workout.id)
    assert _shape(final) in [_shape(r) for r in results]
    sets_by_slot = {we.id: [s.weight for s in we.sets] for we in final.exercises}
    first, second = workout.exercises
    assert sets_by_slot == {first.id: [100], second.id: [140, 145]}


async def test_upserts_of_different_workouts_apply_independently(store):
    legs = await _workout_with_sets(store, "Legs")
    push = await _workout_with_sets(store, "Push")

    renamed_legs, renamed_push = await asyncio.gather(
        store.upsert_workout(legs.id, _desired(legs, "Legs v2", reversed_order=True)),
        store.upsert_workout(push.id, _desired(push, "Push v2", reversed_order=False)),
    )

    assert renamed_legs.name == "Legs v2"
    assert renamed_push.name == "Push v2"
    assert (await store.get_workout(legs.id)).exercises[0].id == legs.exercises[1].id
    assert (await store.get_workout(push.id)).exercises[0].id == push.exercises[0].id


async def test_cancelled_upsert_leaves_workout_untouched(file_engine, file_sql_backend):
    workout = await _workout_with_sets(file_sql_backend)
    before = await file_sql_backend.get_workout(workout.id)
    first, second = workout.exercises
    deleting = asyncio.Event()

    def on_execute(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("DELETE"):
            deleting.set()

    event.listen(file_engine.sync_engine, "after_cursor_execute", on_execute)
    try:
        # Dropping the first exercise makes the reconciliation delete rows before it finishes
        task = asyncio.create_task(
            file_sql_backend.upsert_workout(
                workout.id, WorkoutUpsert(name="Half done", exercises=[WorkoutExerciseIn(id=second.id, order_index=0)])
            )
        )
        await asyncio.wait_for(deleting.wait(), timeout=5)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
    finally:
        event.remove(file_engine.sync_engine, "after_cursor_execute", on_execute)

    after = await file_sql_backend.get_workout(workout.id)
    assert after.name == before.name
    assert [we.id for we in after.exercises] == [first.id, second.id]
    assert [len(we.sets) for we in after.exercises] == [1, 2]
