"""FastAPI application factory and lifespan."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from liftlog.api.v1 import api_router
from liftlog.core.config import Settings, get_settings
from liftlog.core.enums import WriteMode
from liftlog.core.errors import StorageError
from liftlog.db.session import async_session_maker, engine
from liftlog.services.dual_write import DualWriteCoordinator
from liftlog.storage.json_file import JsonFileBackend
from liftlog.storage.sql import SqlBackend

logger = logging.getLogger(__name__)

settings = get_settings()


def build_storage(app: FastAPI, cfg: Settings) -> None:
    """Create both backends and the coordinator that fronts them."""
    legacy = JsonFileBackend(cfg.legacy_data_dir)
    relational = SqlBackend(async_session_maker)
    primary, secondary = (legacy, relational) if cfg.storage_primary == "json" else (relational, legacy)
    mode = WriteMode.DUAL_WRITE if cfg.dual_write_enabled else WriteMode.PRIMARY_ONLY

    app.state.legacy = legacy
    app.state.relational = relational
    app.state.storage = DualWriteCoordinator(primary, secondary, mode)
    logger.info("Storage ready: primary=%s secondary=%s mode=%s", primary.kind.value, secondary.kind.value, mode.value)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: wire storage unless already provided; shutdown: dispose the engine."""
    if getattr(app.state, "storage", None) is None:
        build_storage(app, settings)
    yield
    await engine.dispose()


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc.cause)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


def create_application() -> FastAPI:
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    # CORS: allow localhost in dev; in production use CORS_ORIGINS env (comma-separated)
    if settings.debug:
        cors_origins = ["*"]
    elif settings.environment == "development":
        cors_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    else:
        cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StorageError, storage_error_handler)

    @app.get("/")
    def root():
        return {"status": "ok", "message": "Liftlog API"}

    app.include_router(api_router, prefix=settings.api_v1_prefix)
    return app


app = create_application()
