"""
Record and schema model shared by every pipeline stage.

Sources emit records, transformers reshape them, destinations consume them.
A record is a plain dict; a schema is the ordered column description of a
record stream.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Iterable
from models.base import FieldType


Record = Dict[str, Any]


class SchemaField(BaseModel):
    """A single column in a record stream"""
    name: str
    type: FieldType = FieldType.TEXT

    class Config:
        use_enum_values = True


class RecordSchema(BaseModel):
    """Ordered field list; order is the column order of a newly created table"""
    fields: List[SchemaField] = Field(default_factory=list)

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def type_of(self, name: str) -> Optional[str]:
        for f in self.fields:
            if f.name == name:
                return f.type
        return None


def infer_field_type(value: Any) -> FieldType:
    """Guess a column type from a single sample value"""
    if isinstance(value, bool):
        return FieldType.BOOLEAN
    if isinstance(value, (int, float)):
        return FieldType.NUMBER
    return FieldType.TEXT


def infer_schema(records: Iterable[Record]) -> RecordSchema:
    """
    Build a schema from sample records.

    Field order follows first appearance; a field's type comes from its
    first non-null value.
    """
    types: Dict[str, Optional[FieldType]] = {}
    for record in records:
        for key, value in record.items():
            if types.get(key) is None:
                types[key] = infer_field_type(value) if value is not None else None

    return RecordSchema(fields=[
        SchemaField(name=name, type=field_type or FieldType.TEXT)
        for name, field_type in types.items()
    ])


def derive_schema(records: List[Record], source_schema: Optional[RecordSchema]) -> RecordSchema:
    """
    Build the output schema from keys actually present in transformed records.

    Types are taken from the discovered source schema by name; fields the
    transforms introduced (flatten, compute, date_part...) default to text.
    Without records the discovered schema is returned unchanged.
    """
    if not records:
        return source_schema or RecordSchema()

    names: Dict[str, None] = {}
    for record in records:
        for key in record:
            names.setdefault(key, None)

    fields = []
    for name in names:
        hinted = source_schema.type_of(name) if source_schema else None
        fields.append(SchemaField(name=name, type=hinted or FieldType.TEXT))
    return RecordSchema(fields=fields)
