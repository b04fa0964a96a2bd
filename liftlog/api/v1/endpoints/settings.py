"""User settings endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from liftlog.api.deps import get_storage
from liftlog.schemas.settings import SettingsRead, SettingsUpdate
from liftlog.services.dual_write import DualWriteCoordinator

router = APIRouter()


@router.get("", response_model=SettingsRead)
async def read_settings(
    storage: DualWriteCoordinator = Depends(get_storage),
    user_id: str | None = None,
):
    """Settings of one user; without user_id, the default profile."""
    stored = await storage.get_preferences(user_id)
    if stored is None:
        raise HTTPException(status_code=404, detail="Settings not found")
    return stored


@router.put("", response_model=SettingsRead)
async def save_settings(
    payload: SettingsUpdate,
    storage: DualWriteCoordinator = Depends(get_storage),
):
    return await storage.save_preferences(payload)
