from sqlalchemy import Column, String, Enum, DateTime, Text, Boolean, JSON, Index
from datetime import datetime
import uuid
from models.base import Base, SyncMode, TriggerType, SyncStatus


class SyncJob(Base):
    """
    Durable definition of one sync job.

    Purpose:
    - Operator configuration (source, transforms, target, trigger)
    - Last run status shown next to the job

    Design Decisions:
    - source_config and transforms are opaque JSON; sources and transforms
      validate their own fields when a run is built
    - trigger_config holds either a cron expression or a filesystem path
    """
    __tablename__ = "sync_jobs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), nullable=False)

    # Source
    source_type = Column(String(50), nullable=False, index=True)
    source_config = Column(JSON, nullable=False, default=dict)

    # Pipeline
    transforms = Column(JSON, nullable=False, default=list)
    target_id = Column(String(36), nullable=False, default="")
    sync_mode = Column(Enum(SyncMode), nullable=False, default=SyncMode.REPLACE)
    dedupe_key = Column(String(200), nullable=False, default="")

    # Trigger
    trigger_type = Column(Enum(TriggerType), nullable=False, default=TriggerType.MANUAL)
    trigger_config = Column(Text, nullable=False, default="")
    enabled = Column(Boolean, nullable=False, default=True)

    # Last run
    last_run_at = Column(DateTime, nullable=True)
    last_status = Column(Enum(SyncStatus), nullable=False, default=SyncStatus.NONE)
    last_error = Column(Text, nullable=False, default="")

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_sync_job_trigger", "enabled", "trigger_type"),
    )
