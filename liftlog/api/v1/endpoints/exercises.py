"""Exercise library endpoints."""

import uuid

from fastapi import APIRouter, Depends, HTTPException

from liftlog.api.deps import get_storage
from liftlog.schemas.exercise import ExerciseCreate, ExercisePage, ExerciseRead
from liftlog.services.dual_write import DualWriteCoordinator

router = APIRouter()


@router.get("", response_model=ExercisePage)
async def list_exercises(
    storage: DualWriteCoordinator = Depends(get_storage),
    search: str | None = None,
    category: str | None = None,
    limit: int | None = None,
    offset: int = 0,
):
    """List library exercises, filtered by name substring and category."""
    return await storage.list_exercises(search=search, category=category, limit=limit, offset=offset)


@router.post("", response_model=ExerciseRead, status_code=201)
async def create_exercise(
    payload: ExerciseCreate,
    storage: DualWriteCoordinator = Depends(get_storage),
):
    return await storage.create_exercise(payload)


@router.get("/{exercise_id}", response_model=ExerciseRead)
async def get_exercise(
    exercise_id: uuid.UUID,
    storage: DualWriteCoordinator = Depends(get_storage),
):
    exercise = await storage.get_exercise(exercise_id)
    if not exercise:
        raise HTTPException(status_code=404, detail="Exercise not found")
    return exercise


@router.delete("/{exercise_id}", status_code=204)
async def delete_exercise(
    exercise_id: uuid.UUID,
    storage: DualWriteCoordinator = Depends(get_storage),
):
    """Delete an exercise. 409 while any workout still uses it."""
    if not await storage.delete_exercise(exercise_id):
        raise HTTPException(status_code=404, detail="Exercise not found")
    return None
