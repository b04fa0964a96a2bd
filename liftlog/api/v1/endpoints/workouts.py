"""Workout aggregate and set endpoints."""

import uuid

from fastapi import APIRouter, Depends, HTTPException

from liftlog.api.deps import get_storage
from liftlog.schemas.workout import (
    SetCreate,
    SetRead,
    SetUpdate,
    WorkoutCreate,
    WorkoutRead,
    WorkoutUpsert,
)
from liftlog.services.dual_write import DualWriteCoordinator

router = APIRouter()


@router.get("", response_model=list[WorkoutRead])
async def list_workouts(
    storage: DualWriteCoordinator = Depends(get_storage),
    limit: int | None = None,
    offset: int = 0,
):
    """List workouts newest first (exercises without sets)."""
    return await storage.list_workouts(limit=limit, offset=offset)


@router.post("", response_model=WorkoutRead, status_code=201)
async def create_workout(
    payload: WorkoutCreate,
    storage: DualWriteCoordinator = Depends(get_storage),
):
    return await storage.create_workout(payload)


@router.get("/{workout_id}", response_model=WorkoutRead)
async def get_workout(
    workout_id: uuid.UUID,
    storage: DualWriteCoordinator = Depends(get_storage),
):
    """Get a workout with its exercises (library data included) and their sets."""
    workout = await storage.get_workout(workout_id)
    if not workout:
        raise HTTPException(status_code=404, detail="Workout not found")
    return workout


@router.put("/{workout_id}", response_model=WorkoutRead)
async def upsert_workout(
    workout_id: uuid.UUID,
    payload: WorkoutUpsert,
    storage: DualWriteCoordinator = Depends(get_storage),
):
    """Replace the workout's name and exercise list.

    Exercises whose id is already stored keep their sets; exercises missing
    from the list are removed with their sets.
    """
    return await storage.upsert_workout(workout_id, payload)


@router.delete("/{workout_id}", status_code=204)
async def delete_workout(
    workout_id: uuid.UUID,
    storage: DualWriteCoordinator = Depends(get_storage),
):
    if not await storage.delete_workout(workout_id):
        raise HTTPException(status_code=404, detail="Workout not found")
    return None


# ── Sets ─────────────────────────────────────────────────────────────────

@router.get("/exercises/{workout_exercise_id}/sets", response_model=list[SetRead])
async def list_sets(
    workout_exercise_id: uuid.UUID,
    storage: DualWriteCoordinator = Depends(get_storage),
):
    return await storage.list_sets(workout_exercise_id)


@router.post("/exercises/{workout_exercise_id}/sets", response_model=SetRead, status_code=201)
async def add_set(
    workout_exercise_id: uuid.UUID,
    payload: SetCreate,
    storage: DualWriteCoordinator = Depends(get_storage),
):
    """Log a set against a workout exercise."""
    return await storage.add_set(workout_exercise_id, payload)


@router.patch("/sets/{set_id}", response_model=SetRead)
async def update_set(
    set_id: uuid.UUID,
    payload: SetUpdate,
    storage: DualWriteCoordinator = Depends(get_storage),
):
    """Update a set (partial)."""
    return await storage.update_set(set_id, payload)


@router.delete("/sets/{set_id}", status_code=204)
async def delete_set(
    set_id: uuid.UUID,
    storage: DualWriteCoordinator = Depends(get_storage),
):
    if not await storage.delete_set(set_id):
        raise HTTPException(status_code=404, detail="Set not found")
    return None
