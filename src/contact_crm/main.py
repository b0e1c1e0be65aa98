"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import OperationalError

from contact_crm.api.auth import router as auth_router
from contact_crm.api.contacts import router as contacts_router
from contact_crm.api.users import router as users_router
from contact_crm.config import Settings, settings as default_settings
from contact_crm.database.engine import build_engine, build_session_factory, init_db
from contact_crm.errors import CRMError, UpstreamUnavailable, ValidationError
from contact_crm.schemas import HealthResponse, field_errors
from contact_crm.services.file_storage import URL_PREFIX, LocalFileStorage
from contact_crm.services.token_service import TokenService

logging.basicConfig(
    level=logging.DEBUG if default_settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)

DEFAULT_SECRET = "change-me"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    settings: Settings = app.state.settings
    logger.info("Starting %s …", settings.app_name)
    if settings.jwt_secret == DEFAULT_SECRET:
        logger.warning("JWT_SECRET is the built-in default; set it before deploying")
    app.state.file_storage.ensure_root()
    await init_db(app.state.engine)
    logger.info("Database initialised")
    yield
    logger.info("Shutting down %s …", settings.app_name)
    await app.state.engine.dispose()


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(CRMError)
    async def handle_crm_error(request: Request, exc: CRMError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        fields = field_errors(exc)
        error = ValidationError(next(iter(fields.values()), None), fields=fields)
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(OperationalError)
    async def handle_store_failure(request: Request, exc: OperationalError) -> JSONResponse:
        logger.error("Database unavailable during %s %s: %s", request.method, request.url.path, exc)
        error = UpstreamUnavailable()
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error during %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API application for *settings* (defaults to the environment)."""
    settings = settings or default_settings

    app = FastAPI(
        title=settings.app_name,
        description="Contact tracking for employees, call statistics for admins",
        version="0.1.0",
        lifespan=lifespan,
    )

    engine = build_engine(settings.database_url, echo=settings.debug)
    storage = LocalFileStorage(Path(settings.upload_dir), max_bytes=settings.max_upload_bytes)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.token_service = TokenService(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(days=settings.token_ttl_days),
    )
    app.state.file_storage = storage

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
    )
    _install_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(contacts_router)
    app.mount(URL_PREFIX, StaticFiles(directory=storage.root, check_dir=False), name="uploads")

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Simple liveness probe."""
        return HealthResponse(status="ok", app=settings.app_name)

    return app


app = create_app()
