"""History ledger endpoints."""

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from liftlog.api.deps import get_storage
from liftlog.schemas.history import HistoryCreate, HistoryPage, HistoryRead
from liftlog.services.dual_write import DualWriteCoordinator

router = APIRouter()


@router.get("", response_model=HistoryPage)
async def list_history(
    storage: DualWriteCoordinator = Depends(get_storage),
    limit: int | None = None,
    cursor: str | None = None,
    from_date: datetime | None = Query(None, alias="from"),
    to_date: datetime | None = Query(None, alias="to"),
    workout_id: uuid.UUID | None = None,
):
    """Newest sessions first. Pass the returned cursor to get the next page.

    ``from`` is inclusive and ``to`` exclusive.
    """
    return await storage.list_history(
        limit=limit, cursor=cursor, from_date=from_date, to_date=to_date, workout_id=workout_id
    )


@router.post("", response_model=HistoryRead, status_code=201)
async def log_session(
    payload: HistoryCreate,
    storage: DualWriteCoordinator = Depends(get_storage),
):
    return await storage.log_session(payload)


@router.get("/workouts/{workout_id}/latest", response_model=HistoryRead)
async def latest_for_workout(
    workout_id: uuid.UUID,
    storage: DualWriteCoordinator = Depends(get_storage),
):
    entry = await storage.get_history_by_workout_id(workout_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="No history for workout")
    return entry
