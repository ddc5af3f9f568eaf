"""
Abstract base class for data sources and the source registry.

A source follows spec -> discover -> read:

    source = registry.get("csv_file")
    schema = await source.discover(config)
    stream = source.stream(config)
    async for record in stream:
        ...
    error = stream.terminal_error()
"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from core.exceptions import ConfigurationError, SourceNotFoundError
from schemas.record import Record, RecordSchema
from schemas.sync import SourceSpec

logger = logging.getLogger(__name__)

ConfigModel = TypeVar("ConfigModel", bound=BaseModel)


class RecordStream:
    """
    Single-pass record iterator with an explicit terminal state.

    Iteration ends either when the source completes or when it fails. A
    failure does not propagate out of the `async for`; it is held as the
    stream's terminal error and handed out by `terminal_error()`, once.
    Cancellation is never captured.
    """

    def __init__(self, records: AsyncIterator[Record]):
        self._records = records
        self._done = False
        self._error: Optional[BaseException] = None

    @property
    def done(self) -> bool:
        return self._done

    def __aiter__(self) -> "RecordStream":
        return self

    async def __anext__(self) -> Record:
        if self._done:
            raise StopAsyncIteration
        try:
            return await self._records.__anext__()
        except StopAsyncIteration:
            self._done = True
            raise
        except Exception as e:
            self._done = True
            self._error = e
            raise StopAsyncIteration
        except BaseException:
            self._done = True
            raise

    async def drain(self) -> int:
        """Consume and discard the remainder so the source always finishes"""
        skipped = 0
        async for _ in self:
            skipped += 1
        return skipped

    def terminal_error(self) -> Optional[BaseException]:
        """
        The error the stream ended with, or None.

        Only valid once the stream is exhausted. The error is handed out
        once; later calls return None.
        """
        if not self._done:
            raise RuntimeError("record stream is still open")
        error, self._error = self._error, None
        return error


class Source(ABC):
    """
    Base class for all data sources.

    Subclasses describe themselves through `spec()`, report their columns
    through `discover()` and yield records lazily from `read()`.
    """

    @abstractmethod
    def spec(self) -> SourceSpec:
        """Static metadata: type key, label, icon and config fields"""
        pass

    @abstractmethod
    async def discover(self, config: Dict[str, Any]) -> RecordSchema:
        """Introspect the source and return the expected schema"""
        pass

    @abstractmethod
    def read(self, config: Dict[str, Any]) -> AsyncIterator[Record]:
        """Yield records; not restartable"""
        pass

    def stream(self, config: Dict[str, Any]) -> RecordStream:
        return RecordStream(self.read(config))

    @property
    def type_key(self) -> str:
        return self.spec().type

    @staticmethod
    def parse_config(model: Type[ConfigModel], config: Optional[Dict[str, Any]]) -> ConfigModel:
        """Validate a raw source config into its typed form"""
        try:
            return model.model_validate(config or {})
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise ConfigurationError(
                f"invalid source config: {fields}",
                context={"errors": e.error_count()},
                original_exception=e
            )


class SourceRegistry:
    """
    Thread-safe map of source type key to source instance.

    Registering an existing key replaces the previous source.
    """

    def __init__(self):
        self._sources: Dict[str, Source] = {}
        self._lock = threading.RLock()

    def register(self, source: Source):
        key = source.type_key
        with self._lock:
            if key in self._sources:
                logger.debug(f"Replacing registered source: {key}")
            self._sources[key] = source

    def get(self, source_type: str) -> Source:
        with self._lock:
            source = self._sources.get(source_type)
        if source is None:
            raise SourceNotFoundError(
                f"unknown source type: {source_type!r}",
                context={"source_type": source_type}
            )
        return source

    def list_specs(self) -> List[SourceSpec]:
        with self._lock:
            sources = list(self._sources.values())
        return [s.spec() for s in sources]

    def __len__(self) -> int:
        with self._lock:
            return len(self._sources)


async def run_blocking(func, *args, **kwargs):
    """Run blocking file I/O off the event loop"""
    return await asyncio.to_thread(func, *args, **kwargs)
