"""
Source endpoints: available source types, schema discovery and preview
"""

from fastapi import APIRouter, Depends
from typing import List
from api.dependencies import get_etl_service, verify_api_key
from schemas.api import SourceConfigRequest
from schemas.record import RecordSchema
from schemas.sync import SourceSpec, PreviewResult
from services.etl_service import ETLService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sources", tags=["Sources"], dependencies=[Depends(verify_api_key)])


@router.get("", response_model=List[SourceSpec])
async def list_sources(service: ETLService = Depends(get_etl_service)):
    """Registered source types with the config fields each one expects"""
    return service.list_sources()


@router.post("/{source_type}/discover", response_model=RecordSchema)
async def discover_schema(
    source_type: str,
    body: SourceConfigRequest,
    service: ETLService = Depends(get_etl_service)
):
    return await service.discover_schema(source_type, body.config)


@router.post("/{source_type}/preview", response_model=PreviewResult)
async def preview_source(
    source_type: str,
    body: SourceConfigRequest,
    service: ETLService = Depends(get_etl_service)
):
    """
    First records of a source exactly as read.

    Transforms are not applied.
    """
    preview = await service.preview_source(source_type, body.config)
    logger.info(f"POST /sources/{source_type}/preview - {len(preview.records)} records")
    return preview
