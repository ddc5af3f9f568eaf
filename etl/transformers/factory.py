"""
Builds a job's transform chain from its declarative configuration.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Type, Union

from core.exceptions import ConfigurationError
from etl.transformers.base import Transformer
from etl.transformers.record_ops import (
    FilterTransform,
    RenameTransform,
    SelectTransform,
    DedupeTransform,
    ComputeTransform,
    SortTransform,
    LimitTransform,
    DefaultValueTransform,
    MathTransform,
    FlattenTransform,
)
from etl.transformers.text_ops import StringTransform, TypeCastTransform, DatePartTransform
from schemas.sync import TransformConfig

logger = logging.getLogger(__name__)


TRANSFORMERS: Dict[str, Type[Transformer]] = {
    cls.type_key: cls
    for cls in (
        FilterTransform,
        RenameTransform,
        SelectTransform,
        DedupeTransform,
        ComputeTransform,
        SortTransform,
        LimitTransform,
        TypeCastTransform,
        StringTransform,
        DatePartTransform,
        DefaultValueTransform,
        MathTransform,
        FlattenTransform,
    )
}


def _as_transform_config(item: Union[TransformConfig, Dict[str, Any]]) -> TransformConfig:
    if isinstance(item, TransformConfig):
        return item
    if not isinstance(item, dict):
        raise ConfigurationError("transform entry must be an object", context={"entry": repr(item)})
    return TransformConfig(type=str(item.get("type") or ""), config=item.get("config") or {})


def build_transformers(
    configs: Optional[Sequence[Union[TransformConfig, Dict[str, Any]]]],
    dedupe_key: str = ""
) -> List[Transformer]:
    """
    Build a fresh transformer chain for one run.

    Each entry is validated into its typed options here, once. A declared
    `dedupe` entry is lifted out of its position: dedupe always runs last,
    at most once, and the job-level `dedupe_key` wins over the declared key.

    Raises:
        ConfigurationError: unknown transform type or invalid options
    """
    chain: List[Transformer] = []
    declared_dedupe_key = ""

    for position, raw in enumerate(configs or []):
        entry = _as_transform_config(raw)
        transformer_cls = TRANSFORMERS.get(entry.type)
        if transformer_cls is None:
            raise ConfigurationError(
                f"unknown transform type: {entry.type}",
                context={"transform": entry.type, "position": position}
            )

        if transformer_cls is DedupeTransform:
            declared = DedupeTransform.from_config(entry.config)
            declared_dedupe_key = declared_dedupe_key or declared.options.key
            continue

        chain.append(transformer_cls.from_config(entry.config))

    key = dedupe_key or declared_dedupe_key
    if key:
        chain.append(DedupeTransform.from_config({"key": key}))

    logger.debug(f"Built transform chain: {chain}")
    return chain
