"""
Health check endpoint with database and sync job status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, text
from api.dependencies import get_db, get_etl_service
from schemas.api import HealthCheckResponse
from models.base import SyncStatus
from models.sync_job import SyncJob
from services.etl_service import ETLService
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    service: ETLService = Depends(get_etl_service)
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Job counts, failed jobs (last run errored) and runs in flight
    - Registered source types
    """

    # Check database connectivity
    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    total_jobs = 0
    failed_jobs = 0

    if db_connected:
        try:
            total_jobs = (await db.execute(select(func.count(SyncJob.id)))).scalar_one()
            failed_jobs = (await db.execute(
                select(func.count(SyncJob.id)).where(SyncJob.last_status == SyncStatus.ERROR)
            )).scalar_one()
        except Exception as e:
            logger.error(f"Failed to count sync jobs: {str(e)}")

    return HealthCheckResponse(
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        total_jobs=total_jobs,
        failed_jobs=failed_jobs,
        running_jobs=sorted(service.guard.running),
        registered_sources=len(service.registry),
    )
