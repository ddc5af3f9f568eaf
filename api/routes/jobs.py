"""
Sync job endpoints: CRUD, manual runs and run history
"""

from fastapi import APIRouter, Depends, Request, status
from typing import List
from api.dependencies import get_etl_service, verify_api_key
from schemas.api import RunJobResponse
from schemas.sync import SyncJobCreate, SyncJobSnapshot, SyncRunLogRead
from services.etl_service import ETLService
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/jobs", tags=["Jobs"], dependencies=[Depends(verify_api_key)])


@router.get("", response_model=List[SyncJobSnapshot])
async def list_jobs(service: ETLService = Depends(get_etl_service)):
    return await service.list_jobs()


@router.post("", response_model=SyncJobSnapshot, status_code=status.HTTP_201_CREATED)
async def create_job(data: SyncJobCreate, service: ETLService = Depends(get_etl_service)):
    """
    Create a sync job.

    The source type and the transform list are validated before anything
    is stored; triggers are rebuilt afterwards.
    """
    job = await service.create_job(data)
    logger.info(f"POST /jobs - created {job.id} ({job.source_type})")
    return job


@router.get("/{job_id}", response_model=SyncJobSnapshot)
async def get_job(job_id: str, service: ETLService = Depends(get_etl_service)):
    return await service.get_job(job_id)


@router.put("/{job_id}", response_model=SyncJobSnapshot)
async def update_job(job_id: str, data: SyncJobCreate, service: ETLService = Depends(get_etl_service)):
    return await service.update_job(job_id, data)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_job(job_id: str, service: ETLService = Depends(get_etl_service)):
    await service.delete_job(job_id)


@router.post("/{job_id}/run", response_model=RunJobResponse)
async def run_job(job_id: str, request: Request, service: ETLService = Depends(get_etl_service)):
    """
    Run a job now and wait for it to finish.

    Returns 409 when a run of the same job is already in flight.
    """
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")
    logger.info(f"[{request_id}] POST /jobs/{job_id}/run")

    result = await service.run_job(job_id)
    return RunJobResponse(request_id=request_id, result=result)


@router.get("/{job_id}/runs", response_model=List[SyncRunLogRead])
async def list_runs(job_id: str, service: ETLService = Depends(get_etl_service)):
    """Latest runs of a job, newest first"""
    await service.get_job(job_id)
    return await service.list_run_logs(job_id)
