"""
Unit tests for the local database writer
"""

import json
import pytest
from unittest.mock import AsyncMock, MagicMock
from core.exceptions import WriteError
from etl.loaders.local_db_writer import LocalDBWriter, map_field_type, COLUMN_WIDTH
from models.base import SyncMode
from schemas.record import RecordSchema, SchemaField
from schemas.sync import LocalDatabaseInfo


SCHEMA = RecordSchema(fields=[
    SchemaField(name="id", type="number"),
    SchemaField(name="name", type="text"),
    SchemaField(name="active", type="boolean"),
])

RECORDS = [
    {"id": 1, "name": "ada", "active": True},
    {"id": 2, "name": "bob", "active": False},
]


async def load_config(local_db_store, database_id):
    database = await local_db_store.get_database(database_id)
    return json.loads(database.config_json)


def rows_by_name(config, rows):
    names = {c["id"]: c["name"] for c in config["columns"]}
    return [{names[k]: v for k, v in row.data.items()} for row in rows]


class TestFieldTypeMapping:

    @pytest.mark.parametrize("field_type,column_type", [
        ("number", "number"),
        ("boolean", "checkbox"),
        ("datetime", "datetime"),
        ("text", "text"),
        ("unknown", "text"),
    ])
    def test_map_field_type(self, field_type, column_type):
        assert map_field_type(field_type) == column_type


class TestReplaceMode:

    @pytest.mark.asyncio
    async def test_replace_resets_columns_and_preserves_other_config(self, local_db_store, target_db):
        writer = LocalDBWriter(local_db_store)

        written = await writer.write(target_db.id, SCHEMA, RECORDS, SyncMode.REPLACE)

        assert written == 2
        config = await load_config(local_db_store, target_db.id)
        assert config["activeView"] == "grid"
        assert [c["name"] for c in config["columns"]] == ["id", "name", "active"]
        assert [c["type"] for c in config["columns"]] == ["number", "text", "checkbox"]
        assert all(c["width"] == COLUMN_WIDTH for c in config["columns"])

        rows = await local_db_store.list_rows(target_db.id)
        assert [r.sort_order for r in rows] == [1, 2]
        assert rows_by_name(config, rows) == RECORDS

    @pytest.mark.asyncio
    async def test_replace_twice_leaves_single_copy(self, local_db_store, target_db):
        writer = LocalDBWriter(local_db_store)

        await writer.write(target_db.id, SCHEMA, RECORDS, SyncMode.REPLACE)
        await writer.write(target_db.id, SCHEMA, RECORDS, SyncMode.REPLACE)

        rows = await local_db_store.list_rows(target_db.id)
        config = await load_config(local_db_store, target_db.id)
        assert len(rows) == 2
        assert len(config["columns"]) == 3

    @pytest.mark.asyncio
    async def test_malformed_config_is_replaced(self, local_db_store):
        database = await local_db_store.create_database("Broken")
        await local_db_store.update_database(database.model_copy(update={"config_json": "not json"}))

        await LocalDBWriter(local_db_store).write(database.id, SCHEMA, RECORDS, SyncMode.REPLACE)

        config = await load_config(local_db_store, database.id)
        assert [c["name"] for c in config["columns"]] == ["id", "name", "active"]

    @pytest.mark.asyncio
    async def test_empty_records_leave_target_untouched(self, local_db_store, target_db):
        writer = LocalDBWriter(local_db_store)
        await writer.write(target_db.id, SCHEMA, RECORDS, SyncMode.REPLACE)

        written = await writer.write(target_db.id, SCHEMA, [], SyncMode.REPLACE)

        assert written == 0
        assert len(await local_db_store.list_rows(target_db.id)) == 2


class TestAppendMode:

    @pytest.mark.asyncio
    async def test_append_adds_missing_columns_only(self, local_db_store, target_db):
        writer = LocalDBWriter(local_db_store)
        await writer.write(target_db.id, SCHEMA, RECORDS, SyncMode.REPLACE)
        before = await load_config(local_db_store, target_db.id)

        extended = RecordSchema(fields=[
            SchemaField(name="id", type="number"),
            SchemaField(name="city", type="text"),
        ])
        await writer.write(target_db.id, extended, [{"id": 3, "city": "Oslo"}], SyncMode.APPEND)

        after = await load_config(local_db_store, target_db.id)
        assert after["columns"][:3] == before["columns"]
        assert [c["name"] for c in after["columns"]] == ["id", "name", "active", "city"]
        assert len(await local_db_store.list_rows(target_db.id)) == 3

    @pytest.mark.asyncio
    async def test_fields_without_column_are_dropped(self, local_db_store, target_db):
        schema = RecordSchema(fields=[SchemaField(name="id", type="number")])

        await LocalDBWriter(local_db_store).write(
            target_db.id, schema, [{"id": 1, "extra": "x"}], SyncMode.APPEND
        )

        config = await load_config(local_db_store, target_db.id)
        rows = await local_db_store.list_rows(target_db.id)
        assert rows_by_name(config, rows) == [{"id": 1}]

    @pytest.mark.asyncio
    async def test_non_object_config_fails(self, local_db_store):
        database = await local_db_store.create_database("Broken")
        await local_db_store.update_database(database.model_copy(update={"config_json": "[1, 2]"}))

        with pytest.raises(WriteError, match="parse config"):
            await LocalDBWriter(local_db_store).write(database.id, SCHEMA, RECORDS, SyncMode.APPEND)


class TestWriteFailures:

    @pytest.mark.asyncio
    async def test_missing_target(self, local_db_store):
        with pytest.raises(WriteError, match="prepare target"):
            await LocalDBWriter(local_db_store).write("missing", SCHEMA, RECORDS, SyncMode.REPLACE)

    @pytest.mark.asyncio
    async def test_partial_write_reports_rows_written(self):
        store = MagicMock()
        store.delete_rows_by_database = AsyncMock(return_value=0)
        store.get_database = AsyncMock(return_value=LocalDatabaseInfo(id="db-1", config_json="{}"))
        store.update_database = AsyncMock()
        store.create_row = AsyncMock(side_effect=[None, None, RuntimeError("disk full")])

        writer = LocalDBWriter(store)
        records = [{"id": i} for i in range(5)]

        with pytest.raises(WriteError) as exc_info:
            await writer.write("db-1", RecordSchema(fields=[SchemaField(name="id")]), records, SyncMode.REPLACE)

        assert writer.rows_written == 2
        assert exc_info.value.context["rows_written"] == 2
        assert "create row 2" in exc_info.value.message
        assert store.create_row.await_count == 3
