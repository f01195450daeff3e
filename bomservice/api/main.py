from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bomservice.config import Settings, get_settings
from bomservice.db.session import Database
from bomservice.logging_config import configure_logging

from bomservice.api.routers import items as items_routes
from bomservice.api.routers import reports as reports_routes
from bomservice.api.routers import upload as upload_routes


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    database: Database = app.state.database
    settings: Settings = app.state.settings

    # Without storage the service is useless: fail startup instead of serving 500s.
    try:
        database.check_connection()
        if settings.create_schema_on_startup:
            database.create_schema()
    except Exception:
        logger.exception("Database connection failed; refusing to start")
        raise

    try:
        yield
    finally:
        database.dispose()


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="BOM Lookup Service",
        version="0.1.0",
        description="Bill-of-materials lookup and spreadsheet bulk loading.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database or Database(settings.database_url)

    origins = ["*"]
    if settings.frontend_origin:
        origins = [str(settings.frontend_origin).rstrip("/")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=settings.frontend_origin is not None,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Routers (all mounted under /api)
    # -----------------------------------------------------------------------
    app.include_router(items_routes.router, prefix="/api")    # /api/main-items, /api/search/...
    app.include_router(upload_routes.router, prefix="/api")   # /api/upload-excel
    app.include_router(reports_routes.router, prefix="/api")  # /api/reports/bom/...

    @app.get("/api/health", tags=["system"])
    async def health_check() -> dict:
        """
        Simple health check endpoint for monitoring / readiness probes.
        """
        return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app


def _build_default_app() -> FastAPI:
    configure_logging()
    return create_app()


app = _build_default_app()
