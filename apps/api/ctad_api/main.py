"""CTAD API - Main FastAPI application."""

import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from sqlalchemy import text

from ctad_api import __version__
from ctad_api.middleware.correlation import CorrelationIDFilter, CorrelationIDMiddleware
from ctad_api.routes import export, process_declaration, works
from ctad_api.settings import get_settings

settings = get_settings()

# Configure logging
_handler = logging.StreamHandler(sys.stdout)
_handler.addFilter(CorrelationIDFilter())
logging.basicConfig(
    level=settings.log_level,
    format=(
        '{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s", '
        '"module": "%(name)s", "correlation_id": "%(correlation_id)s"}'
    ),
    handlers=[_handler],
)
logger = logging.getLogger(__name__)

ALEMBIC_INI_PATH = os.path.join(os.path.dirname(__file__), "..", "alembic.ini")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting CTAD API...")
    try:
        settings.validate_production_settings()
    except ValueError as e:
        logger.error(f"Configuration validation failed: {e}")
        raise

    if settings.auto_create_tables:
        from ctad_api.db.base import Base
        from ctad_api.db.session import engine

        import ctad_api.models  # noqa: F401  (register tables)

        Base.metadata.create_all(engine)
        logger.info("Database tables created")

    yield
    logger.info("Shutting down CTAD API...")


app = FastAPI(
    title="CTAD API",
    description="Creation-time authorship declarations and process capture rewards",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(CorrelationIDMiddleware)

# Prometheus metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# Register routers
app.include_router(works.router)
app.include_router(export.router)
app.include_router(process_declaration.router)


@app.get("/health")
async def health_check():
    """Health check endpoint (basic liveness)."""
    return {
        "status": "healthy",
        "service": "ctad-api",
        "version": __version__,
    }


@app.get("/ready")
async def readiness_check():
    """Readiness check endpoint (database reachable, migrations at head)."""
    from ctad_api.db.session import SessionLocal

    checks = {"database": False, "migrations": False}

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        logger.error(f"Database check failed: {e}")
    finally:
        db.close()

    if checks["database"]:
        try:
            from alembic.config import Config
            from alembic.runtime.migration import MigrationContext
            from alembic.script import ScriptDirectory

            db = SessionLocal()
            try:
                context = MigrationContext.configure(db.connection())
                current_rev = context.get_current_revision()
                script = ScriptDirectory.from_config(Config(ALEMBIC_INI_PATH))
                head_rev = script.get_current_head()
            finally:
                db.close()

            checks["migrations"] = current_rev == head_rev
            if not checks["migrations"]:
                logger.warning(f"Migrations not at head: current={current_rev}, head={head_rev}")
        except Exception as e:
            logger.error(f"Migration check failed: {e}")

    all_ready = all(checks.values())
    return JSONResponse(
        content={
            "status": "ready" if all_ready else "not_ready",
            "checks": checks,
        },
        status_code=200 if all_ready else 503,
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "CTAD API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }
