import uuid
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from liftlog.core.errors import NotFoundError, ValidationError
from liftlog.schemas.workout import SetCreate, SetUpdate, WorkoutCreate, WorkoutExerciseIn


@pytest.fixture
async def slot(backend, library):
    bench, _ = library
    workout = await backend.create_workout(
        WorkoutCreate(name="Bench day", exercises=[WorkoutExerciseIn(exercise_id=bench.id, order_index=0)])
    )
    return workout.exercises[0]


async def test_sets_are_listed_in_creation_order(backend, slot):
    first = await backend.add_set(slot.id, SetCreate(reps=10, weight=60))
    second = await backend.add_set(slot.id, SetCreate(reps=8, weight=70, rpe=8.5, rest_seconds=90))

    listed = await backend.list_sets(slot.id)

    assert [s.id for s in listed] == [first.id, second.id]
    assert listed[1].rpe == 8.5
    assert listed[1].rest_seconds == 90


async def test_add_set_keeps_explicit_performed_at(backend, slot):
    at = datetime(2024, 3, 1, 18, 30, tzinfo=timezone.utc)
    logged = await backend.add_set(slot.id, SetCreate(reps=5, performed_at=at))
    (stored,) = await backend.list_sets(slot.id)
    assert stored.id == logged.id
    assert stored.performed_at.replace(tzinfo=timezone.utc) == at


async def test_add_set_to_missing_workout_exercise(backend):
    with pytest.raises(NotFoundError):
        await backend.add_set(uuid.uuid4(), SetCreate(reps=5))


def test_set_ranges_are_validated_by_the_schema():
    with pytest.raises(PydanticValidationError):
        SetCreate(reps=-1)
    with pytest.raises(PydanticValidationError):
        SetCreate(reps=5, rpe=11)
    with pytest.raises(PydanticValidationError):
        SetCreate(reps=5, weight=-2.5)


async def test_update_set_patches_only_given_fields(backend, slot):
    logged = await backend.add_set(slot.id, SetCreate(reps=10, weight=60, notes="easy"))

    updated = await backend.update_set(logged.id, SetUpdate(weight=65))

    assert (updated.reps, updated.weight, updated.notes) == (10, 65, "easy")
    assert updated.created_at.replace(tzinfo=None) == logged.created_at.replace(tzinfo=None)
    (stored,) = await backend.list_sets(slot.id)
    assert stored.weight == 65


async def test_update_set_cannot_clear_reps(backend, slot):
    logged = await backend.add_set(slot.id, SetCreate(reps=10))
    with pytest.raises(ValidationError):
        await backend.update_set(logged.id, SetUpdate(reps=None))


async def test_update_missing_set(backend):
    with pytest.raises(NotFoundError):
        await backend.update_set(uuid.uuid4(), SetUpdate(reps=3))


async def test_delete_set_is_idempotent(backend, slot):
    logged = await backend.add_set(slot.id, SetCreate(reps=10))
    assert await backend.delete_set(logged.id) is True
    assert await backend.delete_set(logged.id) is False
    assert await backend.list_sets(slot.id) == []
