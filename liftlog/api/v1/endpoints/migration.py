"""Legacy-to-relational migration endpoints: backfill, parity and the dual-write toggle."""

import logging

from fastapi import APIRouter, Depends, Request

from liftlog.api.deps import get_backfill, get_parity, get_storage
from liftlog.core.enums import Entity, WriteMode
from liftlog.schemas.migration import BackfillReport, DualWriteStatus, DualWriteToggle, ParityReport
from liftlog.services.backfill import BackfillService
from liftlog.services.dual_write import DualWriteCoordinator
from liftlog.services.parity import ParityChecker

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/backfill", response_model=BackfillReport)
async def backfill(
    entity: Entity | None = None,
    service: BackfillService = Depends(get_backfill),
):
    """Copy legacy records into the relational store. Safe to re-run."""
    if entity is Entity.EXERCISES:
        return BackfillReport(results=[await service.backfill_exercises()])
    if entity is Entity.WORKOUTS:
        return BackfillReport(results=[await service.backfill_workouts()])
    if entity is Entity.HISTORY:
        return BackfillReport(results=[await service.backfill_history()])
    return await service.backfill_all()


@router.get("/parity", response_model=ParityReport)
async def parity(checker: ParityChecker = Depends(get_parity)):
    return await checker.check()


@router.get("/dual-write", response_model=DualWriteStatus)
async def dual_write_status(storage: DualWriteCoordinator = Depends(get_storage)):
    return storage.status()


@router.post("/dual-write", response_model=DualWriteStatus)
async def toggle_dual_write(
    payload: DualWriteToggle,
    request: Request,
    storage: DualWriteCoordinator = Depends(get_storage),
):
    """Switch mirroring of writes to the secondary store on or off."""
    mode = WriteMode.DUAL_WRITE if payload.enabled else WriteMode.PRIMARY_ONLY
    request.app.state.storage = storage.with_mode(mode)
    logger.info("Dual-write mode set to %s", mode.value)
    return request.app.state.storage.status()
