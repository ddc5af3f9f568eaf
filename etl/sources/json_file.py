"""
JSON file source
"""

import json
import logging
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List

from pydantic import BaseModel, Field

from etl.sources.base import Source, run_blocking
from schemas.record import Record, RecordSchema, infer_schema
from schemas.sync import SourceSpec, ConfigField

logger = logging.getLogger(__name__)


class JSONFileConfig(BaseModel):
    file_path: str = Field(..., min_length=1, alias="filePath")
    data_path: str = Field("", alias="dataPath")

    class Config:
        populate_by_name = True
        extra = "ignore"


def flatten_values(item: Dict[str, Any]) -> Record:
    """Keep scalars; nested objects and arrays become JSON text"""
    flat: Record = {}
    for key, value in item.items():
        if value is None or isinstance(value, (str, int, float, bool)):
            flat[key] = value
        else:
            flat[key] = json.dumps(value, ensure_ascii=False)
    return flat


def to_records(raw: Any) -> List[Record]:
    """An array yields one record per object element; an object is one record"""
    if isinstance(raw, list):
        return [flatten_values(item) for item in raw if isinstance(item, dict)]
    if isinstance(raw, dict):
        return [flatten_values(raw)]
    return []


def read_json_file(options: JSONFileConfig) -> List[Record]:
    path = Path(options.file_path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ValueError(f"read file: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"parse json: {e}") from e

    if options.data_path:
        for part in options.data_path.split("."):
            if not isinstance(raw, dict):
                raise ValueError(f"invalid data path: {part!r} not found")
            raw = raw.get(part)

    return to_records(raw)


class JSONFileSource(Source):
    """Read records from a local JSON file, optionally below a dot path"""

    def spec(self) -> SourceSpec:
        return SourceSpec(
            type="json_file",
            label="JSON File",
            icon="IconFileTypeJs",
            config_fields=[
                ConfigField(key="filePath", label="File Path", type="file", required=True,
                            help="Absolute path to the JSON file"),
                ConfigField(key="dataPath", label="Data Path", type="string",
                            help="Dot-separated path to the array (e.g., 'data.items'). "
                                 "Leave empty if root is an array."),
            ],
        )

    async def discover(self, config: Dict[str, Any]) -> RecordSchema:
        options = self.parse_config(JSONFileConfig, config)
        records = await run_blocking(read_json_file, options)
        return infer_schema(records)

    async def read(self, config: Dict[str, Any]) -> AsyncIterator[Record]:
        options = self.parse_config(JSONFileConfig, config)
        records = await run_blocking(read_json_file, options)
        logger.info(f"Read {len(records)} records from JSON {options.file_path}")

        for record in records:
            yield record
