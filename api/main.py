"""
FastAPI application initialization
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from api.routes import health, jobs, sources
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.database import async_session_maker, create_tables
from core.exceptions import (
    ETLException,
    ConfigurationError,
    ConcurrencyError,
    JobNotFoundError,
)
from core.logging import setup_logging
from etl.sources import SourceRegistry, register_builtin_sources
from schemas.api import ErrorResponse
from services.etl_service import ETLService
from storage.job_store import SQLJobStore
from storage.local_db_store import SQLLocalDatabaseStore
import logging

setup_logging()
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="tablesync API",
    description="Sync local tables with external data sources",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(sources.router)
app.include_router(jobs.router)


def status_code_for(exc: ETLException) -> int:
    if isinstance(exc, JobNotFoundError):
        return 404
    if isinstance(exc, ConcurrencyError):
        return 409
    if isinstance(exc, ConfigurationError):
        return 400
    return 502


@app.exception_handler(ETLException)
async def etl_exception_handler(request: Request, exc: ETLException):
    """Map pipeline errors to HTTP responses"""
    code = status_code_for(exc)
    logger.warning(f"{request.method} {request.url.path} -> {code}: {exc}")
    body = ErrorResponse(error=exc.__class__.__name__, detail=exc.message, result=exc.result)
    return JSONResponse(status_code=code, content=body.model_dump(mode="json"))


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting tablesync API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    await create_tables()

    registry = register_builtin_sources(SourceRegistry())
    service = ETLService(
        job_store=SQLJobStore(async_session_maker),
        local_db_store=SQLLocalDatabaseStore(async_session_maker),
        registry=registry,
    )
    app.state.etl_service = service

    await service.restart_watchers()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down tablesync API")
    service = getattr(app.state, "etl_service", None)
    if service is None:
        return

    service.stop()
    drained = await service.wait_all(timeout=settings.SHUTDOWN_GRACE_SECONDS)
    if not drained:
        logger.warning("Shutdown grace period expired with runs still in flight")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "tablesync API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "sources": "/sources",
            "jobs": "/jobs"
        }
    }
