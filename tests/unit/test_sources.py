"""
Unit tests for file sources, record streams and the source registry
"""

import json
import pytest
from core.exceptions import ConfigurationError, SourceNotFoundError
from etl.sources import SourceRegistry, CSVFileSource, JSONFileSource, register_builtin_sources
from etl.sources.base import RecordStream
from etl.sources.csv_file import infer_csv_value
from models.base import FieldType


async def read_all(source, config):
    stream = source.stream(config)
    records = [record async for record in stream]
    return records, stream.terminal_error()


class TestRegistry:

    def test_builtin_sources_registered(self):
        registry = register_builtin_sources(SourceRegistry())
        types = {spec.type for spec in registry.list_specs()}
        assert types == {"csv_file", "json_file"}

    def test_unknown_type_raises_not_found(self):
        with pytest.raises(SourceNotFoundError):
            SourceRegistry().get("mongo")

    def test_re_registration_overwrites(self):
        registry = SourceRegistry()
        first, second = CSVFileSource(), CSVFileSource()
        registry.register(first)
        registry.register(second)
        assert registry.get("csv_file") is second
        assert len(registry) == 1

    def test_csv_spec_lists_config_fields_in_order(self):
        spec = CSVFileSource().spec()
        assert [f.key for f in spec.config_fields] == ["filePath", "delimiter", "hasHeader"]
        assert spec.config_fields[0].required is True


class TestRecordStream:

    @pytest.mark.asyncio
    async def test_terminal_error_observed_once(self):
        async def failing():
            yield {"a": 1}
            raise ValueError("boom")

        stream = RecordStream(failing())
        records = [r async for r in stream]

        assert records == [{"a": 1}]
        error = stream.terminal_error()
        assert isinstance(error, ValueError)
        assert stream.terminal_error() is None

    @pytest.mark.asyncio
    async def test_terminal_error_requires_exhausted_stream(self):
        async def records():
            yield {"a": 1}

        stream = RecordStream(records())
        with pytest.raises(RuntimeError):
            stream.terminal_error()

    @pytest.mark.asyncio
    async def test_drain_consumes_remainder(self):
        async def records():
            for i in range(5):
                yield {"i": i}

        stream = RecordStream(records())
        first = await stream.__anext__()
        assert first == {"i": 0}
        assert await stream.drain() == 4
        assert stream.done
        assert stream.terminal_error() is None


class TestCSVFileSource:

    @pytest.mark.parametrize("text,expected", [
        ("", None),
        ("  ", None),
        ("12", 12.0),
        ("-1.5", -1.5),
        ("true", True),
        ("No", False),
        ("yes", True),
        ("hello", "hello"),
    ])
    def test_infer_csv_value(self, text, expected):
        assert infer_csv_value(text) == expected

    @pytest.mark.asyncio
    async def test_read_with_header(self, csv_file):
        records, error = await read_all(CSVFileSource(), {"filePath": str(csv_file)})

        assert error is None
        assert records[0] == {"id": 1.0, "customer": "ada", "total": 30.0, "paid": True}
        assert records[1]["paid"] is False
        assert records[2]["total"] is None

    @pytest.mark.asyncio
    async def test_discover_reports_text_columns(self, csv_file):
        schema = await CSVFileSource().discover({"filePath": str(csv_file)})
        assert schema.field_names() == ["id", "customer", "total", "paid"]
        assert all(f.type == FieldType.TEXT.value for f in schema.fields)

    @pytest.mark.asyncio
    async def test_read_without_header(self, tmp_path):
        path = tmp_path / "plain.csv"
        path.write_text("a;1\nb;2\n", encoding="utf-8")

        records, error = await read_all(
            CSVFileSource(), {"filePath": str(path), "delimiter": ";", "hasHeader": "false"}
        )

        assert error is None
        assert records == [{"col_1": "a", "col_2": 1.0}, {"col_1": "b", "col_2": 2.0}]

    @pytest.mark.asyncio
    async def test_empty_file_is_read_error(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")

        records, error = await read_all(CSVFileSource(), {"filePath": str(path)})

        assert records == []
        assert "empty csv file" in str(error)

    @pytest.mark.asyncio
    async def test_missing_file_path_rejected(self):
        with pytest.raises(ConfigurationError):
            await CSVFileSource().discover({})

    @pytest.mark.asyncio
    async def test_missing_file_surfaces_as_terminal_error(self, tmp_path):
        records, error = await read_all(CSVFileSource(), {"filePath": str(tmp_path / "nope.csv")})
        assert records == []
        assert error is not None


class TestJSONFileSource:

    @pytest.mark.asyncio
    async def test_data_path_and_nested_values(self, json_file):
        records, error = await read_all(JSONFileSource(), {"filePath": str(json_file), "dataPath": "data.items"})

        assert error is None
        assert len(records) == 2
        assert records[0]["id"] == 1
        assert json.loads(records[0]["customer"]) == {"name": "ada", "city": "Oslo"}

    @pytest.mark.asyncio
    async def test_discover_infers_types(self, json_file):
        schema = await JSONFileSource().discover({"filePath": str(json_file), "dataPath": "data.items"})
        assert schema.field_names() == ["id", "customer", "total"]
        assert schema.type_of("id") == FieldType.NUMBER.value
        assert schema.type_of("customer") == FieldType.TEXT.value

    @pytest.mark.asyncio
    async def test_object_root_is_single_record(self, tmp_path):
        path = tmp_path / "one.json"
        path.write_text('{"name": "solo", "active": true}', encoding="utf-8")

        records, error = await read_all(JSONFileSource(), {"filePath": str(path)})

        assert error is None
        assert records == [{"name": "solo", "active": True}]

    @pytest.mark.asyncio
    async def test_invalid_data_path(self, json_file):
        with pytest.raises(ValueError, match="invalid data path"):
            await JSONFileSource().discover({"filePath": str(json_file), "dataPath": "data.items.deeper"})

    @pytest.mark.asyncio
    async def test_malformed_json_is_terminal_error(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")

        records, error = await read_all(JSONFileSource(), {"filePath": str(path)})

        assert records == []
        assert "parse json" in str(error)
