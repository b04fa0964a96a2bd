"""Reconciliation planning for workout upserts.

Given the exercises currently stored under a workout and the desired list sent
by the caller, split the desired list into three phases:

- unchanged: ids present on both sides. The row is updated in place
  (order_index, targets) so its sets survive a reorder or partial edit.
- new: ids only in the desired list. Inserted without sets.
- removed: ids only in the store. Deleted together with their sets.

The plan is pure; each backend applies it inside its own transaction.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field

from liftlog.core.errors import ValidationError
from liftlog.core.ids import new_id
from liftlog.schemas.workout import WorkoutExerciseIn


@dataclass(frozen=True)
class ReconcilePlan:
    unchanged: list[WorkoutExerciseIn] = field(default_factory=list)
    new: list[WorkoutExerciseIn] = field(default_factory=list)
    removed: list[uuid.UUID] = field(default_factory=list)

    @property
    def referenced_exercise_ids(self) -> set[uuid.UUID]:
        """Library ids the new rows point at; these must exist."""
        return {item.exercise_id for item in self.new if item.exercise_id is not None}


def normalize_desired(items: list[WorkoutExerciseIn]) -> list[WorkoutExerciseIn]:
    """Assign missing ids and reject duplicate ids or order indexes."""
    normalized: list[WorkoutExerciseIn] = []
    seen_ids: set[uuid.UUID] = set()
    seen_orders: set[int] = set()
    for item in items:
        if item.id is None:
            item = item.model_copy(update={"id": new_id()})
        if item.order_index < 0:
            raise ValidationError(f"order_index must be non-negative (got {item.order_index})")
        if item.id in seen_ids:
            raise ValidationError(f"Duplicate workout exercise id {item.id}")
        if item.order_index in seen_orders:
            raise ValidationError(f"Duplicate order_index {item.order_index}")
        seen_ids.add(item.id)
        seen_orders.add(item.order_index)
        normalized.append(item)
    return normalized


def plan_reconciliation(
    current: Mapping[uuid.UUID, uuid.UUID],
    desired: list[WorkoutExerciseIn],
) -> ReconcilePlan:
    """Partition ``desired`` against ``current`` (workout exercise id -> library id).

    ``desired`` must already be normalized. Unchanged entries come back with
    their stored ``exercise_id`` filled in.
    """
    plan = ReconcilePlan()
    desired_ids: set[uuid.UUID] = set()
    for item in desired:
        desired_ids.add(item.id)
        stored_exercise_id = current.get(item.id)
        if stored_exercise_id is not None:
            if item.exercise_id is not None and item.exercise_id != stored_exercise_id:
                raise ValidationError(
                    f"Workout exercise {item.id} cannot be moved to a different library exercise"
                )
            plan.unchanged.append(item.model_copy(update={"exercise_id": stored_exercise_id}))
        else:
            if item.exercise_id is None:
                raise ValidationError(f"New workout exercise {item.id} needs an exercise_id")
            plan.new.append(item)
    plan.removed.extend(sorted(wid for wid in current if wid not in desired_ids))
    return plan
