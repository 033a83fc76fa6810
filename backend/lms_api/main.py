"""
Application entry point for the LMS API.

Run with ``uvicorn lms_api.main:app``.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lms_api.core.config import settings
from lms_api.core.database import DatabaseManager, check_database_connection
from lms_api.core.errors import install_error_handlers
from lms_api.deps import get_cleanup_scheduler
from lms_api.routers import api_router


logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    DatabaseManager.create_all_tables()
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} started")
    yield
    get_cleanup_scheduler().shutdown()
    get_cleanup_scheduler.cache_clear()


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        lifespan=lifespan,
    )

    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    install_error_handlers(app)
    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"success": True, "message": "ok", "database": check_database_connection()}

    return app


app = create_app()
