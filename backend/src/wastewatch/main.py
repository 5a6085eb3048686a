"""FastAPI application entry point for WasteWatch.

Municipal waste reporting REST API.
"""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from wastewatch import __version__
from wastewatch.api import register_exception_handlers
from wastewatch.api.admin import router as admin_router
from wastewatch.api.auth import router as auth_router
from wastewatch.api.middleware import setup_middleware
from wastewatch.api.reports import router as reports_router
from wastewatch.api.workers import router as workers_router
from wastewatch.config import get_settings
from wastewatch.logging import get_logger, setup_logging
from wastewatch.sample_data import load_sample_data
from wastewatch.store import get_store

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    settings = get_settings()
    logger.info(
        "Starting WasteWatch API",
        extra={
            "environment": settings.environment,
            "debug": settings.api_debug,
        },
    )

    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    if settings.seed_sample_data:
        await load_sample_data(get_store(), settings.sample_user_password)

    yield

    logger.info("Shutting down WasteWatch API")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="WasteWatch API",
        description="Municipal waste reporting and field-worker dispatch",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_middleware(app)
    register_exception_handlers(app)

    # =========================
    # Health Check Endpoints
    # =========================

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Basic health check endpoint."""
        return {"status": "healthy", "service": "wastewatch-api", "version": __version__}

    # =========================
    # API Routers
    # =========================

    app.include_router(auth_router, prefix="/api")
    app.include_router(reports_router, prefix="/api")
    app.include_router(workers_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")

    app.mount(
        "/uploads",
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )

    return app


setup_logging()
app = create_app()
