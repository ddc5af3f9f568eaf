"""
Pydantic schemas for sync jobs, run results and source descriptors
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from models.base import SyncMode, TriggerType, SyncStatus
from schemas.record import Record, RecordSchema


# ============================================================================
# Job configuration
# ============================================================================

class TransformConfig(BaseModel):
    """Declarative transform definition, stored as JSON on the job"""
    type: str = Field(..., min_length=1)
    config: Dict[str, Any] = Field(default_factory=dict)


class SyncJobCreate(BaseModel):
    """
    Operator-facing job configuration.

    Used for both creation and full updates of a job.
    """
    name: str = Field(..., min_length=1, max_length=200)
    source_type: str = Field(..., min_length=1)
    source_config: Dict[str, Any] = Field(default_factory=dict)
    transforms: List[TransformConfig] = Field(default_factory=list)
    target_id: str = ""
    sync_mode: SyncMode = SyncMode.REPLACE
    dedupe_key: str = ""
    trigger_type: TriggerType = TriggerType.MANUAL
    trigger_config: str = ""
    enabled: bool = True

    @validator("sync_mode", pre=True)
    def default_sync_mode(cls, v):
        """An empty mode means replace"""
        return v or SyncMode.REPLACE

    @validator("trigger_type", pre=True)
    def default_trigger_type(cls, v):
        """An empty trigger means manual"""
        return v or TriggerType.MANUAL

    @validator("dedupe_key", "trigger_config", "target_id", pre=True)
    def strip_text(cls, v):
        if v is None:
            return ""
        return str(v).strip()


class SyncJobSnapshot(BaseModel):
    """
    Immutable view of a job handed to the sync engine for one run.
    """
    id: str
    name: str
    source_type: str
    source_config: Dict[str, Any] = Field(default_factory=dict)
    transforms: List[TransformConfig] = Field(default_factory=list)
    target_id: str = ""
    sync_mode: SyncMode = SyncMode.REPLACE
    dedupe_key: str = ""
    trigger_type: TriggerType = TriggerType.MANUAL
    trigger_config: str = ""
    enabled: bool = True
    last_run_at: Optional[datetime] = None
    last_status: SyncStatus = SyncStatus.NONE
    last_error: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        frozen = True


# ============================================================================
# Run results
# ============================================================================

class SyncResult(BaseModel):
    """Outcome of one sync execution"""
    job_id: str
    status: SyncStatus = SyncStatus.SUCCESS
    rows_read: int = 0
    rows_written: int = 0
    duration_seconds: float = 0.0
    error: str = ""


class SyncRunLogCreate(BaseModel):
    """Run history entry as written by the service"""
    job_id: str
    started_at: datetime
    finished_at: datetime
    status: SyncStatus
    rows_read: int = 0
    rows_written: int = 0
    error: str = ""


class SyncRunLogRead(SyncRunLogCreate):
    """Run history entry as returned by the job store"""
    run_id: str

    class Config:
        from_attributes = True


# ============================================================================
# Source descriptors
# ============================================================================

class ConfigField(BaseModel):
    """A single configuration input of a source; drives UI form generation"""
    key: str
    label: str
    type: str = "string"  # "string" | "select" | "textarea" | "password" | "file"
    required: bool = False
    options: List[str] = Field(default_factory=list)
    default: str = ""
    help: str = ""


class SourceSpec(BaseModel):
    """Static metadata of a source type"""
    type: str
    label: str
    icon: str = ""
    config_fields: List[ConfigField] = Field(default_factory=list)


class PreviewResult(BaseModel):
    """Raw sample of a source: discovered schema plus the first records"""
    record_schema: RecordSchema
    records: List[Record] = Field(default_factory=list)


# ============================================================================
# Local tables (destination backing store)
# ============================================================================

class LocalDatabaseInfo(BaseModel):
    """A local table with its opaque JSON configuration"""
    id: str
    name: str = ""
    config_json: str = "{}"

    class Config:
        from_attributes = True


class LocalDBRowInfo(BaseModel):
    """A local table row; data is keyed by column id"""
    id: str
    database_id: str
    data: Dict[str, Any] = Field(default_factory=dict)
    sort_order: int = 0
