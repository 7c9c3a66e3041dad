"""OrgArchive FastAPI application."""

import logging
import re
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models  # noqa: F401  (registers tables on Base.metadata)
from .api import (
    audit_router,
    auth_router,
    categories_router,
    documents_router,
    organigram_router,
    roles_router,
    settings_router,
)
from .core.config import ConfigurationError, Environment, settings
from .core.logging_config import setup_logging
from .database import DATABASE_URL, Base, SessionLocal, engine, get_db, is_postgresql
from .exceptions import ArchiveException
from .middleware.exception_handler import archive_exception_handler
from .middleware.request_context import RequestContextMiddleware
from .models import ArchiveDocument, Category, OrganigramNode
from .services import audit_service

setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


def _masked(url: str) -> str:
    return re.sub(r"://([^:/]+):([^@]+)@", r"://\1:***@", url)


def _init_database() -> None:
    """Fail fast on an unreachable database, then create missing tables."""
    logger.info("Connecting to database: %s", _masked(DATABASE_URL))
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        hint = (
            "Is PostgreSQL running and is DATABASE_URL correct?"
            if is_postgresql()
            else "Does the database directory exist and is it writable?"
        )
        logger.critical("Database unreachable (%s). %s Error: %s", _masked(DATABASE_URL), hint, e)
        raise SystemExit(1) from e
    Base.metadata.create_all(bind=engine)


def _check_security() -> None:
    try:
        settings.validate_production_config()
    except ConfigurationError as e:
        logger.critical("Startup blocked: %s", e)
        raise SystemExit(1) from e
    if settings.environment == Environment.DEVELOPMENT:
        for problem in settings.production_problems():
            logger.warning("Development setting, not for production: %s", problem)


def _purge_audit_log() -> None:
    if settings.audit_retention_days <= 0:
        return
    db = SessionLocal()
    try:
        purged = audit_service.purge_old_entries(db, days=settings.audit_retention_days)
    finally:
        db.close()
    if purged:
        logger.info("Purged %d audit entries older than %d days", purged, settings.audit_retention_days)


_init_database()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "OrgArchive starting",
        extra={
            "environment": settings.environment.value,
            "database": "postgresql" if is_postgresql() else "sqlite",
            "auth_enabled": settings.auth_enabled,
            "public_read": settings.public_read,
        },
    )
    _check_security()
    _purge_audit_log()
    yield


app = FastAPI(
    title="OrgArchive API",
    description=(
        "Document archive and organigram. Categories and organigram nodes form "
        "two independent trees; roles grant `view` or `crud` on single nodes and "
        "every grant covers the node's whole subtree.\n\n"
        "With `AUTH_ENABLED=true`, mutations need a `Bearer` token and reads "
        "accept one optionally. With `AUTH_ENABLED=false` (the default) every "
        "request acts as an admin."
    ),
    version=APP_VERSION,
    lifespan=lifespan,
)

# Added last runs first: CORS wraps the request context.
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)
app.add_exception_handler(ArchiveException, archive_exception_handler)

for router in (
    auth_router,
    roles_router,
    categories_router,
    documents_router,
    organigram_router,
    settings_router,
    audit_router,
):
    app.include_router(router)


@app.get("/")
def root():
    return {"name": "OrgArchive API", "version": APP_VERSION, "status": "running"}


_started = time.monotonic()


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Liveness plus tree sizes. A failing database reports ``degraded``
    with status 200 so probes keep working."""
    counts = {"categories": 0, "organigram_nodes": 0, "documents": 0}
    db_status = "ok"
    try:
        counts["categories"] = db.query(Category).count()
        counts["organigram_nodes"] = db.query(OrganigramNode).count()
        counts["documents"] = db.query(ArchiveDocument).count()
    except SQLAlchemyError as e:
        logger.warning("Health check query failed: %s", e)
        db_status = "error"

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "db": db_status,
        "uptime_seconds": round(time.monotonic() - _started),
        "version": APP_VERSION,
        **counts,
    }
