"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any, Union
from datetime import datetime
from schemas.sync import SyncResult


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    total_jobs: int = 0
    failed_jobs: int = 0
    running_jobs: List[str] = Field(default_factory=list)
    registered_sources: int = 0
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")

    @validator("status", pre=True, always=True)
    def determine_status(cls, v, values):
        """Determine overall health status"""
        if not values.get("database_connected", False):
            return "unhealthy"

        failed = values.get("failed_jobs", 0)
        total = values.get("total_jobs", 0)

        if total == 0 or failed == 0:
            return "healthy"
        elif failed < total:
            return "degraded"
        else:
            return "unhealthy"

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "database_connected": True,
                "total_jobs": 3,
                "failed_jobs": 0,
                "running_jobs": [],
                "registered_sources": 2
            }
        }


# ============================================================================
# Source Schemas
# ============================================================================

class SourceConfigRequest(BaseModel):
    """Source config for discovery and preview; a mapping or JSON text"""
    config: Union[Dict[str, Any], str] = Field(default_factory=dict)

    class Config:
        json_schema_extra = {
            "example": {
                "config": {"filePath": "/data/orders.csv", "delimiter": ",", "hasHeader": "true"}
            }
        }


# ============================================================================
# Run Schemas
# ============================================================================

class RunJobResponse(BaseModel):
    """Outcome of a manual run"""
    request_id: str
    result: SyncResult


# ============================================================================
# Error Response Schema
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    result: Optional[SyncResult] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        json_schema_extra = {
            "example": {
                "error": "ReadError",
                "detail": "read: parse csv: Expected 3 fields in line 4, saw 4",
                "timestamp": "2024-01-15T10:30:00Z"
            }
        }
