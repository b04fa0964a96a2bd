import uuid

import pytest

from liftlog.core.errors import ValidationError
from liftlog.schemas.workout import WorkoutExerciseIn
from liftlog.services.reconcile import normalize_desired, plan_reconciliation


def _item(order, id=None, exercise_id=None):
    return WorkoutExerciseIn(id=id, exercise_id=exercise_id, order_index=order)


def test_partitions_into_unchanged_new_and_removed():
    a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    lib_a, lib_b, lib_new = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    current = {a: lib_a, b: lib_b}
    desired = normalize_desired([_item(0, id=b), _item(1, id=c, exercise_id=lib_new)])

    plan = plan_reconciliation(current, desired)

    assert [i.id for i in plan.unchanged] == [b]
    assert plan.unchanged[0].exercise_id == lib_b
    assert [i.id for i in plan.new] == [c]
    assert plan.removed == [a]
    assert plan.referenced_exercise_ids == {lib_new}


def test_normalize_assigns_missing_ids():
    items = normalize_desired([_item(0, exercise_id=uuid.uuid4()), _item(1, exercise_id=uuid.uuid4())])
    assert all(i.id is not None for i in items)
    assert items[0].id != items[1].id


@pytest.mark.parametrize(
    "items",
    [
        [_item(0, id=uuid.UUID(int=1)), _item(1, id=uuid.UUID(int=1))],
        [_item(0), _item(0)],
        [_item(-1)],
    ],
    ids=["duplicate-id", "duplicate-order", "negative-order"],
)
def test_normalize_rejects_bad_lists(items):
    with pytest.raises(ValidationError):
        normalize_desired(items)


def test_new_entry_without_library_reference_is_rejected():
    with pytest.raises(ValidationError):
        plan_reconciliation({}, normalize_desired([_item(0)]))


def test_existing_entry_cannot_switch_library_exercise():
    a = uuid.uuid4()
    with pytest.raises(ValidationError):
        plan_reconciliation({a: uuid.uuid4()}, [_item(0, id=a, exercise_id=uuid.uuid4())])
