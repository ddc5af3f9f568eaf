"""
CSV file source backed by pandas
"""

import csv
import logging
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import pandas as pd
from pydantic import BaseModel, Field, validator

from etl.sources.base import Source, run_blocking
from etl.transformers.values import parse_float
from schemas.record import Record, RecordSchema, SchemaField
from schemas.sync import SourceSpec, ConfigField

logger = logging.getLogger(__name__)


class CSVFileConfig(BaseModel):
    file_path: str = Field(..., min_length=1, alias="filePath")
    delimiter: str = ","
    has_header: bool = Field(True, alias="hasHeader")

    class Config:
        populate_by_name = True
        extra = "ignore"

    @validator("delimiter", pre=True)
    def single_char_delimiter(cls, v):
        """Only the first character is used; empty means comma"""
        return (v or ",")[0]

    @validator("has_header", pre=True)
    def header_unless_false(cls, v):
        if isinstance(v, str):
            return v.strip().lower() != "false"
        return True if v is None else v


def infer_csv_value(text: str) -> Any:
    """
    Typed value of a CSV cell.

    Empty -> None, numeric -> float, true/yes/1 and false/no/0 -> bool,
    anything else stays text.
    """
    text = text.strip()
    if text == "":
        return None

    number = parse_float(text)
    if number is not None:
        return number

    lowered = text.lower()
    if lowered in ("true", "yes", "1"):
        return True
    if lowered in ("false", "no", "0"):
        return False
    return text


def read_csv_file(options: CSVFileConfig) -> Tuple[List[str], List[List[Optional[str]]]]:
    """
    Load a CSV file into header names and raw string rows.

    Without a header row, columns are named col_1, col_2, ...
    """
    path = Path(options.file_path)
    try:
        df = pd.read_csv(
            path,
            sep=options.delimiter,
            header=None,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            skip_blank_lines=True,
            quoting=csv.QUOTE_MINIMAL,
        )
    except pd.errors.EmptyDataError:
        raise ValueError("empty csv file")
    except pd.errors.ParserError as e:
        raise ValueError(f"parse csv: {e}") from e
    except OSError as e:
        raise ValueError(f"open file: {e}") from e

    if df.empty:
        raise ValueError("empty csv file")

    # Cells missing from short rows come back as NaN, not str
    rows = [
        [cell if isinstance(cell, str) else None for cell in row]
        for row in df.itertuples(index=False, name=None)
    ]

    if options.has_header:
        headers = [h or "" for h in rows[0]]
        return headers, rows[1:]

    headers = [f"col_{i + 1}" for i in range(len(df.columns))]
    return headers, rows


class CSVFileSource(Source):
    """
    Read records from a local CSV file.

    Discovery reports every column as text; values are typed per cell
    when read (see `infer_csv_value`).
    """

    def spec(self) -> SourceSpec:
        return SourceSpec(
            type="csv_file",
            label="CSV File",
            icon="IconFileTypeCsv",
            config_fields=[
                ConfigField(key="filePath", label="File Path", type="file", required=True,
                            help="Absolute path to the CSV file"),
                ConfigField(key="delimiter", label="Delimiter", type="string", default=",",
                            help="Column delimiter (default: comma)"),
                ConfigField(key="hasHeader", label="Has Header", type="select", options=["true", "false"],
                            default="true", help="Whether the first row contains column names"),
            ],
        )

    async def discover(self, config: Dict[str, Any]) -> RecordSchema:
        options = self.parse_config(CSVFileConfig, config)
        headers, _ = await run_blocking(read_csv_file, options)
        return RecordSchema(fields=[SchemaField(name=h) for h in headers])

    async def read(self, config: Dict[str, Any]) -> AsyncIterator[Record]:
        options = self.parse_config(CSVFileConfig, config)
        headers, rows = await run_blocking(read_csv_file, options)
        logger.info(f"Read {len(rows)} rows from CSV {options.file_path}")

        for row in rows:
            record: Record = {}
            for header, cell in zip(headers, row):
                if cell is not None:
                    record[header] = infer_csv_value(cell)
            yield record
