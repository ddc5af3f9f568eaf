"""
Write transformed records into a local database
"""

import json
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from core.exceptions import WriteError
from models.base import SyncMode, FieldType
from schemas.record import Record, RecordSchema
from schemas.sync import LocalDatabaseInfo, LocalDBRowInfo
from storage.local_db_store import LocalDatabaseStore

logger = logging.getLogger(__name__)

COLUMN_WIDTH = 150

COLUMN_TYPES = {
    FieldType.NUMBER.value: "number",
    FieldType.BOOLEAN.value: "checkbox",
    FieldType.DATETIME.value: "datetime",
}


def map_field_type(field_type: str) -> str:
    """Schema field type -> local database column type"""
    return COLUMN_TYPES.get(str(getattr(field_type, "value", field_type)), "text")


def new_column(name: str, field_type: str) -> Dict[str, Any]:
    return {
        "id": str(uuid.uuid4()),
        "name": name,
        "type": map_field_type(field_type),
        "width": COLUMN_WIDTH,
    }


class Destination(ABC):
    """Writes records into a target system"""

    @abstractmethod
    async def write(self, target_id: str, schema: RecordSchema, records: List[Record], mode: SyncMode) -> int:
        """Persist records; returns the number of rows written"""
        pass


class LocalDBWriter(Destination):
    """
    Destination for local databases.

    Ensures:
    - replace: existing rows are cleared and `columns` is reset to the schema
    - append: missing columns are added, nothing is removed
    - Other keys of the database config are left untouched

    `rows_written` tracks the rows persisted by the current write, so the
    count stays accurate when a write is cancelled or fails part-way.
    Rows already written are not rolled back.
    """

    def __init__(self, store: LocalDatabaseStore):
        self.store = store
        self.rows_written = 0

    async def write(self, target_id: str, schema: RecordSchema, records: List[Record], mode: SyncMode) -> int:
        self.rows_written = 0
        if not records:
            return 0

        try:
            if SyncMode(mode) == SyncMode.REPLACE:
                await self.store.delete_rows_by_database(target_id)
                database = await self._reset_columns(target_id, schema)
            else:
                database = await self._ensure_columns(target_id, schema)
        except WriteError:
            raise
        except Exception as e:
            raise WriteError(
                f"prepare target: {getattr(e, 'message', e)}",
                context={"target_id": target_id, "rows_written": 0},
                original_exception=e
            )

        column_ids = self._column_ids(database)

        for i, record in enumerate(records):
            data = {column_ids[k]: v for k, v in record.items() if k in column_ids}
            try:
                await self.store.create_row(LocalDBRowInfo(
                    id=str(uuid.uuid4()),
                    database_id=target_id,
                    data=data,
                    sort_order=i + 1,
                ))
            except Exception as e:
                raise WriteError(
                    f"create row {i}: {e}",
                    context={"target_id": target_id, "rows_written": self.rows_written},
                    original_exception=e
                )
            self.rows_written += 1

        logger.info(f"Wrote {self.rows_written} rows to local database {target_id} ({SyncMode(mode).value})")
        return self.rows_written

    async def _reset_columns(self, target_id: str, schema: RecordSchema) -> LocalDatabaseInfo:
        database = await self.store.get_database(target_id)
        try:
            config = json.loads(database.config_json or "{}")
        except ValueError:
            config = {}
        if not isinstance(config, dict):
            config = {}

        config["columns"] = [new_column(f.name, f.type) for f in schema.fields]
        return await self._save(database, config)

    async def _ensure_columns(self, target_id: str, schema: RecordSchema) -> LocalDatabaseInfo:
        database = await self.store.get_database(target_id)
        try:
            config = json.loads(database.config_json or "{}")
        except ValueError as e:
            raise WriteError(
                f"parse config: {e}",
                context={"target_id": target_id, "rows_written": 0},
                original_exception=e
            )
        if not isinstance(config, dict):
            raise WriteError("parse config: not an object", context={"target_id": target_id, "rows_written": 0})

        columns = config.get("columns") or []
        existing = {c.get("name") for c in columns if isinstance(c, dict)}
        for f in schema.fields:
            if f.name not in existing:
                columns.append(new_column(f.name, f.type))
                existing.add(f.name)

        config["columns"] = columns
        return await self._save(database, config)

    async def _save(self, database: LocalDatabaseInfo, config: Dict[str, Any]) -> LocalDatabaseInfo:
        updated = database.model_copy(update={"config_json": json.dumps(config, ensure_ascii=False)})
        await self.store.update_database(updated)
        return updated

    @staticmethod
    def _column_ids(database: LocalDatabaseInfo) -> Dict[str, str]:
        """Column name -> column id"""
        config = json.loads(database.config_json or "{}")
        mapping = {}
        for column in config.get("columns") or []:
            if not isinstance(column, dict):
                continue
            name, column_id = column.get("name"), column.get("id")
            if name and column_id:
                mapping[name] = column_id
        return mapping
