"""
Transformer chain: per-record stages plus the batch sort stage.

Each transformer takes a record and returns ``(record, keep)``. Stages run
in order and the first ``keep=False`` drops the record; later stages never
see it.
"""

from abc import ABC, abstractmethod
from functools import cmp_to_key
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple, Type

from pydantic import BaseModel, ValidationError

from core.exceptions import ConfigurationError
from etl.transformers.values import stringify, to_float_safe
from schemas.record import Record


class TransformOptions(BaseModel):
    """Base for transformer config models: camelCase aliases, unknown keys ignored"""

    class Config:
        populate_by_name = True
        extra = "ignore"


class Transformer(ABC):
    """
    Base class for every record transformer.

    Subclasses declare the pydantic model that narrows their JSON config;
    `from_config` validates it once, when the chain is built, so no stage
    re-parses configuration per record.
    """

    type_key: ClassVar[str] = ""
    config_model: ClassVar[Type[BaseModel]]

    def __init__(self, options: BaseModel):
        self.options = options

    @classmethod
    def from_config(cls, raw: Optional[Dict[str, Any]] = None) -> "Transformer":
        try:
            options = cls.config_model.model_validate(raw or {})
        except ValidationError as e:
            raise ConfigurationError(
                f"invalid {cls.type_key} transform config",
                context={"transform": cls.type_key, "errors": e.error_count()},
                original_exception=e
            )
        return cls(options)

    @abstractmethod
    def transform(self, record: Record) -> Tuple[Record, bool]:
        """Return the (possibly modified) record and whether to keep it"""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.options!r})"


def apply_transformers(record: Record, chain: Sequence[Transformer]) -> Tuple[Record, bool]:
    """Run a record through the chain, stopping at the first drop"""
    current = dict(record)
    for stage in chain:
        current, keep = stage.transform(current)
        if not keep:
            return current, False
    return current, True


def compare_values(a: Any, b: Any) -> int:
    """Numeric comparison when both sides parse, else lexicographic"""
    fa = to_float_safe(a)
    fb = to_float_safe(b)
    if fa is not None and fb is not None:
        return (fa > fb) - (fa < fb)
    sa = stringify(a)
    sb = stringify(b)
    return (sa > sb) - (sa < sb)


def apply_batch_sort(records: List[Record], chain: Sequence[Transformer]) -> List[Record]:
    """
    Apply the first configured sort stage across all collected records.

    Returns a new list; the sort is stable in both directions.
    """
    from etl.transformers.record_ops import SortTransform

    for stage in chain:
        if isinstance(stage, SortTransform) and stage.options.field:
            key = cmp_to_key(lambda x, y: compare_values(x.get(stage.options.field), y.get(stage.options.field)))
            return sorted(records, key=key, reverse=stage.options.direction == "desc")
    return records
