"""Behaviour specific to the legacy file store."""

import json

import pytest

from liftlog.core.enums import Entity
from liftlog.core.errors import StorageError
from liftlog.schemas.exercise import ExerciseCreate
from liftlog.schemas.history import HistoryCreate
from liftlog.schemas.workout import SetCreate, WorkoutCreate, WorkoutExerciseIn


async def test_missing_files_read_as_empty(json_backend):
    assert await json_backend.list_workouts() == []
    assert await json_backend.count(Entity.HISTORY) == 0
    assert await json_backend.read_records(Entity.EXERCISES) == []


async def test_workouts_are_stored_as_nested_documents(json_backend):
    bench = await json_backend.create_exercise(ExerciseCreate(name="Bench Press", category="chest"))
    workout = await json_backend.create_workout(
        WorkoutCreate(name="Chest", exercises=[WorkoutExerciseIn(exercise_id=bench.id, order_index=0)])
    )
    await json_backend.add_set(workout.exercises[0].id, SetCreate(reps=12, weight=40))

    stored = json.loads((json_backend.data_dir / "workouts.json").read_text(encoding="utf-8"))

    assert len(stored) == 1
    doc = stored[0]
    assert doc["id"] == str(workout.id)
    assert doc["exercises"][0]["exercise_id"] == str(bench.id)
    assert "exercise" not in doc["exercises"][0]
    assert doc["exercises"][0]["sets"][0]["reps"] == 12


async def test_writes_leave_no_temp_files(json_backend):
    for name in ("Row", "Press", "Curl"):
        await json_backend.create_exercise(ExerciseCreate(name=name, category="misc"))
    assert sorted(p.name for p in json_backend.data_dir.iterdir()) == ["exercises.json"]


async def test_unreadable_file_raises_storage_error(json_backend):
    json_backend.data_dir.mkdir(parents=True)
    (json_backend.data_dir / "exercises.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageError) as exc_info:
        await json_backend.list_exercises()
    assert exc_info.value.code == "INTERNAL"


async def test_non_array_file_raises_storage_error(json_backend):
    json_backend.data_dir.mkdir(parents=True)
    (json_backend.data_dir / "history.json").write_text('{"id": 1}', encoding="utf-8")

    with pytest.raises(StorageError):
        await json_backend.count(Entity.HISTORY)


async def test_delete_workout_is_undone_when_history_write_fails(json_backend, monkeypatch):
    workout = await json_backend.create_workout(WorkoutCreate(name="Legs"))
    entry = await json_backend.log_session(HistoryCreate(workout_id=workout.id))

    async def fail(items):
        raise StorageError("disk full")

    monkeypatch.setattr(json_backend, "_save_history", fail)
    with pytest.raises(StorageError):
        await json_backend.delete_workout(workout.id)
    monkeypatch.undo()

    assert await json_backend.get_workout(workout.id) is not None
    kept = await json_backend.get_history_by_workout_id(workout.id)
    assert kept.id == entry.id
    assert kept.workout_name == "Legs"


async def test_seed_shaped_exercise_file_is_readable(json_backend):
    json_backend.data_dir.mkdir(parents=True)
    seed = [
        {
            "id": "0190a0c4-0000-7000-8000-000000000001",
            "name": "Bench Press",
            "category": "chest",
            "equipment": ["barbell"],
            "notes": None,
        },
    ]
    (json_backend.data_dir / "exercises.json").write_text(json.dumps(seed), encoding="utf-8")

    page = await json_backend.list_exercises()

    assert [e.name for e in page.data] == ["Bench Press"]
    assert page.data[0].created_at is not None
