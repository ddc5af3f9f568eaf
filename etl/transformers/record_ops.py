"""
Record-shaping transformers: filtering, projection, renaming, dedupe,
computed columns, sort/limit, defaults, math and flattening.
"""

import json
import math
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import Field, validator

from etl.transformers.base import Transformer, TransformOptions
from etl.transformers.values import stringify, to_float, substitute_placeholders, parse_float
from schemas.record import Record


# ============================================================================
# Filter / Rename / Select
# ============================================================================

class FilterOptions(TransformOptions):
    field: str = Field(..., min_length=1)
    op: Literal["eq", "neq", "gt", "lt", "contains"]
    value: Any = None


class FilterTransform(Transformer):
    """Drops records whose field does not satisfy the predicate"""

    type_key = "filter"
    config_model = FilterOptions

    def transform(self, record: Record) -> Tuple[Record, bool]:
        field, op, expected = self.options.field, self.options.op, self.options.value
        if field not in record:
            return record, False

        actual = record[field]
        if op == "eq":
            return record, stringify(actual) == stringify(expected)
        if op == "neq":
            return record, stringify(actual) != stringify(expected)
        if op == "contains":
            return record, stringify(expected) in stringify(actual)
        if op == "gt":
            return record, to_float(actual) > to_float(expected)
        return record, to_float(actual) < to_float(expected)


class RenameOptions(TransformOptions):
    mapping: Dict[str, str] = Field(..., min_length=1)

    @validator("mapping", pre=True)
    def stringify_targets(cls, v):
        if isinstance(v, dict):
            return {str(old): stringify(new) for old, new in v.items()}
        return v


class RenameTransform(Transformer):
    """
    Renames every present key; the original key is removed.

    All renames read from the incoming record, so swaps such as
    {a: b, b: a} exchange the two values.
    """

    type_key = "rename"
    config_model = RenameOptions

    def transform(self, record: Record) -> Tuple[Record, bool]:
        mapping = self.options.mapping
        renamed = {k: v for k, v in record.items() if k not in mapping}
        for old, value in record.items():
            if old in mapping:
                renamed[mapping[old]] = value
        return renamed, True


class SelectOptions(TransformOptions):
    fields: List[str] = Field(..., min_length=1)


class SelectTransform(Transformer):
    """Whitelist projection"""

    type_key = "select"
    config_model = SelectOptions

    def transform(self, record: Record) -> Tuple[Record, bool]:
        return {f: record[f] for f in self.options.fields if f in record}, True


# ============================================================================
# Stateful per-run stages
# ============================================================================

MISSING_KEY = object()


class DedupeOptions(TransformOptions):
    key: str = Field(..., min_length=1)


class DedupeTransform(Transformer):
    """
    Keeps the first record for each string form of the key.

    Records missing the key (or holding null) share one slot of their own,
    distinct from an empty-string key.
    """

    type_key = "dedupe"
    config_model = DedupeOptions

    def __init__(self, options: DedupeOptions):
        super().__init__(options)
        self._seen = set()

    def transform(self, record: Record) -> Tuple[Record, bool]:
        raw = record.get(self.options.key)
        value = MISSING_KEY if raw is None else stringify(raw)
        if value in self._seen:
            return record, False
        self._seen.add(value)
        return record, True


class LimitOptions(TransformOptions):
    count: int = Field(..., ge=0)


class LimitTransform(Transformer):
    """Keeps the first `count` records"""

    type_key = "limit"
    config_model = LimitOptions

    def __init__(self, options: LimitOptions):
        super().__init__(options)
        self._seen = 0

    def transform(self, record: Record) -> Tuple[Record, bool]:
        self._seen += 1
        return record, self._seen <= self.options.count


class SortOptions(TransformOptions):
    field: str = Field(..., min_length=1)
    direction: Literal["asc", "desc"] = "asc"

    @validator("direction", pre=True)
    def default_direction(cls, v):
        return v or "asc"


class SortTransform(Transformer):
    """
    Pass-through while streaming. The engine sorts once after every record
    has been collected (see `apply_batch_sort`).
    """

    type_key = "sort"
    config_model = SortOptions

    def transform(self, record: Record) -> Tuple[Record, bool]:
        return record, True


# ============================================================================
# Computed and filled values
# ============================================================================

class ComputeColumn(TransformOptions):
    name: str = Field(..., min_length=1)
    expression: str = Field(..., min_length=1)


class ComputeOptions(TransformOptions):
    columns: List[ComputeColumn] = Field(..., min_length=1)

    @validator("columns", pre=True)
    def drop_blank_columns(cls, v):
        if isinstance(v, list):
            return [c for c in v if not isinstance(c, dict) or (c.get("name") and c.get("expression"))]
        return v


class ComputeTransform(Transformer):
    """
    Adds or overwrites fields from `{field}` templates.

    Substitution only: the result is a float when the substituted text is a
    plain number, otherwise the text itself. No operators are evaluated.
    """

    type_key = "compute"
    config_model = ComputeOptions

    @classmethod
    def from_config(cls, raw=None):
        raw = dict(raw or {})
        if "columns" not in raw and "name" in raw:
            raw = {"columns": [{"name": raw.get("name"), "expression": raw.get("expression")}]}
        return super().from_config(raw)

    def transform(self, record: Record) -> Tuple[Record, bool]:
        for column in self.options.columns:
            resolved = substitute_placeholders(column.expression, record)
            number = parse_float(resolved)
            record[column.name] = resolved if number is None else number
        return record, True


class DefaultValueOptions(TransformOptions):
    field: str = Field(..., min_length=1)
    default_value: Any = Field("", alias="defaultValue")


class DefaultValueTransform(Transformer):
    """Fills the field only when absent, null or an empty string"""

    type_key = "default_value"
    config_model = DefaultValueOptions

    def transform(self, record: Record) -> Tuple[Record, bool]:
        field = self.options.field
        if field not in record or record[field] is None or stringify(record[field]) == "":
            record[field] = self.options.default_value
        return record, True


class MathOptions(TransformOptions):
    field: str = Field(..., min_length=1)
    op: Literal["round", "ceil", "floor", "abs"]


def _round_half_away(value: float) -> float:
    if not math.isfinite(value):
        return value
    return math.copysign(math.floor(abs(value) + 0.5), value)


class MathTransform(Transformer):
    """Numeric coercion followed by round/ceil/floor/abs"""

    type_key = "math"
    config_model = MathOptions

    _OPS = {
        "round": _round_half_away,
        "ceil": lambda v: float(math.ceil(v)) if math.isfinite(v) else v,
        "floor": lambda v: float(math.floor(v)) if math.isfinite(v) else v,
        "abs": abs,
    }

    def transform(self, record: Record) -> Tuple[Record, bool]:
        field = self.options.field
        if field in record:
            record[field] = self._OPS[self.options.op](to_float(record[field]))
        return record, True


# ============================================================================
# Flatten
# ============================================================================

class FlattenOptions(TransformOptions):
    source_field: str = Field(..., min_length=1, alias="sourceField")
    fields: Dict[str, str] = Field(..., min_length=1)

    @validator("fields", pre=True)
    def normalise_fields(cls, v):
        """Accept [{path, alias}] as stored by the editor, or {path: alias}"""
        if isinstance(v, list):
            paths = {}
            for item in v:
                if isinstance(item, dict) and item.get("path"):
                    paths[str(item["path"])] = str(item.get("alias") or "")
            return paths
        if isinstance(v, dict):
            return {str(path): str(alias or "") for path, alias in v.items() if path}
        return v


def extract_path(data: Dict[str, Any], path: str) -> Any:
    """Follow a dot-separated path; None when any step is missing"""
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


class FlattenTransform(Transformer):
    """Copies dot-path values out of a nested mapping (or JSON text) column"""

    type_key = "flatten"
    config_model = FlattenOptions

    def transform(self, record: Record) -> Tuple[Record, bool]:
        source = record.get(self.options.source_field)
        nested = self._as_mapping(source)
        if nested is None:
            return record, True

        for path, alias in self.options.fields.items():
            record[alias or path] = extract_path(nested, path)
        return record, True

    @staticmethod
    def _as_mapping(value: Union[str, Dict[str, Any], None]) -> Optional[Dict[str, Any]]:
        if isinstance(value, dict):
            return value
        if isinstance(value, str):
            try:
                decoded = json.loads(value)
            except ValueError:
                return None
            return decoded if isinstance(decoded, dict) else None
        return None
