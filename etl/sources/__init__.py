"""
Data sources.

    registry = SourceRegistry()
    register_builtin_sources(registry)
"""

from etl.sources.base import Source, SourceRegistry, RecordStream
from etl.sources.csv_file import CSVFileSource
from etl.sources.json_file import JSONFileSource

BUILTIN_SOURCES = (CSVFileSource, JSONFileSource)


def register_builtin_sources(registry: SourceRegistry) -> SourceRegistry:
    """Register every built-in source; called once at process start"""
    for source_cls in BUILTIN_SOURCES:
        registry.register(source_cls())
    return registry


__all__ = [
    "Source",
    "SourceRegistry",
    "RecordStream",
    "CSVFileSource",
    "JSONFileSource",
    "register_builtin_sources",
]
