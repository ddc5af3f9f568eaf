"""
SQLAlchemy ORM models for database tables.

Models:
    base: Base declarative class and shared enums (SyncMode, TriggerType, SyncStatus, FieldType)
    sync_job: Durable sync job definitions
    sync_run_log: Per-job run history
    local_database: Local structured tables and their rows (sync destination)

Usage:
    from models import SyncJob, SyncRunLog, LocalDatabase, LocalDBRow
    from models.base import SyncMode, SyncStatus

Relationships:
    - SyncJob → SyncRunLog (one-to-many history)
    - LocalDatabase → LocalDBRow (one-to-many rows)
"""

from models.base import Base, SyncMode, TriggerType, SyncStatus, FieldType
from models.sync_job import SyncJob
from models.sync_run_log import SyncRunLog
from models.local_database import LocalDatabase, LocalDBRow

__all__ = [
    "Base",
    "SyncMode",
    "TriggerType",
    "SyncStatus",
    "FieldType",
    "SyncJob",
    "SyncRunLog",
    "LocalDatabase",
    "LocalDBRow",
]
