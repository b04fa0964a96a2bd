"""Request dependencies: storage objects live on app.state, built in the lifespan."""

from fastapi import Request

from liftlog.services.backfill import BackfillService
from liftlog.services.dual_write import DualWriteCoordinator
from liftlog.services.parity import ParityChecker


def get_storage(request: Request) -> DualWriteCoordinator:
    """The coordinator currently serving requests (swapped by the dual-write toggle)."""
    return request.app.state.storage


def get_backfill(request: Request) -> BackfillService:
    return BackfillService(source=request.app.state.legacy, target=request.app.state.relational)


def get_parity(request: Request) -> ParityChecker:
    return ParityChecker(legacy=request.app.state.legacy, relational=request.app.state.relational)
