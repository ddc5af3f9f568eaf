"""
Record transformers.

    chain = build_transformers(job.transforms, job.dedupe_key)
    record, keep = apply_transformers(record, chain)
"""

from etl.transformers.base import Transformer, apply_transformers, apply_batch_sort, compare_values
from etl.transformers.factory import TRANSFORMERS, build_transformers

__all__ = [
    "Transformer",
    "TRANSFORMERS",
    "apply_transformers",
    "apply_batch_sort",
    "build_transformers",
    "compare_values",
]
