# clinic/main.py
"""
FastAPI application entry point.
"""

import os
import sys
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic.core.logging_config import IS_PRODUCTION, get_logger, setup_logging
from clinic.core.request_logging import RequestLoggingMiddleware
from clinic.core.sentry_config import init_sentry
from clinic.database.database import create_tables, get_db
from clinic.routes.schedule_api import router as schedule_api_router

APP_VERSION = "0.1.0"

# Logging first, before anything else logs
setup_logging()
logger = get_logger(__name__)

sentry_enabled = init_sentry()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(
        "Application starting up",
        extra={"extra_fields": {"production": IS_PRODUCTION, "python_version": sys.version}},
    )

    try:
        create_tables()
        logger.info("Database tables created/verified")
    except SQLAlchemyError:
        logger.error("Failed to create database tables", exc_info=True)
        raise

    yield

    logger.info("Application shutting down")


app = FastAPI(
    title="Clinic Scheduler",
    description="Provider shift rotation, appointment availability and shift overrides",
    version=APP_VERSION,
    lifespan=lifespan,
)

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()]

if IS_PRODUCTION:
    if not CORS_ORIGINS:
        logger.warning(
            "Production mode but no CORS_ORIGINS set. CORS will block all cross-origin requests. "
            "Set CORS_ORIGINS environment variable if the booking widget runs on another origin."
        )
    allowed_origins = CORS_ORIGINS
    allowed_methods = ["GET", "POST"]
    logger.info("CORS configured for production with origins: %s", allowed_origins)
else:
    allowed_origins = ["*"]
    allowed_methods = ["*"]
    logger.info("CORS configured for development (permissive)")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=allowed_methods,
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(schedule_api_router)


@app.get("/health", tags=["health"])
async def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint for monitoring.

    Returns 200 when the database answers, 503 otherwise.
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Health check failed - database connection error: %s", e, exc_info=True)
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "service": "clinic-scheduler",
                "database": "disconnected",
                "error": "Database connection failed",
            },
        ) from e

    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "service": "clinic-scheduler",
            "version": APP_VERSION,
            "database": "connected",
        },
    )
