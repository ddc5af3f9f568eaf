"""
Pydantic schemas for data validation and serialization.

Schemas:
    record: Record alias, RecordSchema/SchemaField and schema derivation helpers
    sync: Job configuration, job snapshots, run results, source descriptors

Usage:
    from schemas.record import Record, RecordSchema, SchemaField
    from schemas.sync import SyncJobCreate, SyncJobSnapshot, SyncResult

Example:
    job = SyncJobCreate(
        name="Orders",
        source_type="csv_file",
        source_config={"filePath": "/data/orders.csv"},
        target_id=database_id,
        dedupe_key="order_id",
    )
    assert job.sync_mode == SyncMode.REPLACE
"""

from schemas.record import Record, RecordSchema, SchemaField
from schemas.sync import (
    TransformConfig,
    SyncJobCreate,
    SyncJobSnapshot,
    SyncResult,
    SyncRunLogCreate,
    SyncRunLogRead,
    ConfigField,
    SourceSpec,
    PreviewResult,
    LocalDatabaseInfo,
    LocalDBRowInfo,
)

__all__ = [
    "Record",
    "RecordSchema",
    "SchemaField",
    "TransformConfig",
    "SyncJobCreate",
    "SyncJobSnapshot",
    "SyncResult",
    "SyncRunLogCreate",
    "SyncRunLogRead",
    "ConfigField",
    "SourceSpec",
    "PreviewResult",
    "LocalDatabaseInfo",
    "LocalDBRowInfo",
]
