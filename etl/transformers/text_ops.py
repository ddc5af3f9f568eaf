"""
Value-level transformers: string operations, type casts and date parts.
"""

from typing import Any, List, Literal, Optional, Tuple

from pydantic import Field, validator

from etl.transformers.base import Transformer, TransformOptions
from etl.transformers.dates import try_parse_datetime, format_date, format_rfc3339
from etl.transformers.values import stringify, to_float, to_bool
from schemas.record import Record


# ============================================================================
# String
# ============================================================================

class StringOptions(TransformOptions):
    field: str = Field(..., min_length=1)
    op: Literal["upper", "lower", "trim", "replace", "concat", "split", "substring"]
    search: str = ""
    replace_with: str = Field("", alias="replaceWith")
    parts: List[str] = Field(default_factory=list)
    target_field: str = Field("", alias="targetField")
    separator: str = ","
    index: int = 0
    start: int = 0
    end: int = 0

    @validator("separator", pre=True)
    def default_separator(cls, v):
        return v or ","

    @validator("parts", pre=True)
    def parts_as_text(cls, v):
        if isinstance(v, list):
            return [stringify(p) for p in v]
        return v


def clamp_substring(text: str, start: int, end: int) -> str:
    """Slice with out-of-range bounds pulled back into the string"""
    length = len(text)
    start = max(start, 0)
    if end <= 0 or end > length:
        end = length
    if start > length:
        start = length
    if start > end:
        start = end
    return text[start:end]


class StringTransform(Transformer):
    """
    String operations on a single field.

    upper/lower/trim/replace/substring rewrite the field in place (no-op when
    absent). concat assembles literal parts and `{field}` references into
    `targetField` (default: `field`). split writes element `index` of the
    split value to `targetField`, or "" when out of range.
    """

    type_key = "string"
    config_model = StringOptions

    def transform(self, record: Record) -> Tuple[Record, bool]:
        o = self.options
        target = o.target_field or o.field

        if o.op == "concat":
            record[target] = "".join(self._resolve_part(p, record) for p in o.parts)
            return record, True

        if o.field not in record:
            return record, True
        text = stringify(record[o.field])

        if o.op == "upper":
            record[o.field] = text.upper()
        elif o.op == "lower":
            record[o.field] = text.lower()
        elif o.op == "trim":
            record[o.field] = text.strip()
        elif o.op == "replace":
            record[o.field] = text.replace(o.search, o.replace_with)
        elif o.op == "substring":
            record[o.field] = clamp_substring(text, o.start, o.end)
        elif o.op == "split":
            pieces = text.split(o.separator)
            record[target] = pieces[o.index] if 0 <= o.index < len(pieces) else ""
        return record, True

    @staticmethod
    def _resolve_part(part: str, record: Record) -> str:
        if len(part) >= 2 and part.startswith("{") and part.endswith("}"):
            return stringify(record.get(part[1:-1]))
        return part


# ============================================================================
# Type cast
# ============================================================================

class TypeCastOptions(TransformOptions):
    field: str = Field(..., min_length=1)
    cast_type: Literal["number", "string", "bool", "date", "datetime"] = Field(..., alias="castType")


class TypeCastTransform(Transformer):
    """
    Converts a field to the configured type.

    Numbers that fail to parse become 0.0. Unparsable dates are left as they
    were. Dates are written as YYYY-MM-DD, datetimes as RFC 3339 UTC.
    """

    type_key = "type_cast"
    config_model = TypeCastOptions

    def transform(self, record: Record) -> Tuple[Record, bool]:
        field = self.options.field
        if field not in record:
            return record, True

        value = record[field]
        cast = self.options.cast_type
        if cast == "number":
            record[field] = to_float(value)
        elif cast == "string":
            record[field] = stringify(value)
        elif cast == "bool":
            record[field] = to_bool(value)
        else:
            parsed = try_parse_datetime(value)
            if parsed is not None:
                record[field] = format_date(parsed) if cast == "date" else format_rfc3339(parsed)
        return record, True


# ============================================================================
# Date part
# ============================================================================

class DatePartOptions(TransformOptions):
    field: str = Field(..., min_length=1)
    part: Literal["year", "month", "day", "hour", "minute", "weekday", "week"]
    target_field: str = Field("", alias="targetField")


def extract_date_part(value: Any, part: str) -> Optional[float]:
    parsed = try_parse_datetime(value)
    if parsed is None:
        return None
    if part == "weekday":
        # Sunday=0
        return float(parsed.isoweekday() % 7)
    if part == "week":
        return float(parsed.isocalendar()[1])
    return float(getattr(parsed, part))


class DatePartTransform(Transformer):
    """Writes one calendar component of a date field to `targetField`"""

    type_key = "date_part"
    config_model = DatePartOptions

    def transform(self, record: Record) -> Tuple[Record, bool]:
        o = self.options
        if o.field not in record:
            return record, True

        number = extract_date_part(record[o.field], o.part)
        if number is not None:
            record[o.target_field or f"{o.field}_{o.part}"] = number
        return record, True
