"""
Sync engine: source -> transform chain -> destination, for one job run.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from core.exceptions import (
    ETLException,
    DiscoveryError,
    ReadError,
    WriteError,
)
from etl.loaders.local_db_writer import Destination
from etl.sources.base import Source, SourceRegistry
from etl.transformers.base import apply_transformers, apply_batch_sort
from etl.transformers.factory import build_transformers
from models.base import SyncStatus
from schemas.record import Record, RecordSchema, derive_schema
from schemas.sync import SyncJobSnapshot, SyncResult

logger = logging.getLogger(__name__)

STAGE_ERRORS = {
    "discover": DiscoveryError,
    "read": ReadError,
    "write": WriteError,
}


def describe(error: BaseException) -> str:
    """Short message of an error, without the context suffix"""
    if isinstance(error, ETLException):
        return error.message
    return str(error) or error.__class__.__name__


class SyncEngine:
    """
    Executes sync runs.

    Workflow:
    1. Resolve the source and build the transform chain
    2. Discover the source schema
    3. Stream and transform every record, then batch sort
    4. Check the source's terminal error; a failed read never writes
    5. Derive the output schema and write to the destination

    An engine is built per run; the destination may keep per-run state
    (see `LocalDBWriter.rows_written`).
    """

    def __init__(self, registry: SourceRegistry, destination: Optional[Destination] = None):
        self.registry = registry
        self.destination = destination
        self.result: Optional[SyncResult] = None

    async def run_sync(self, job: SyncJobSnapshot, timeout: Optional[float] = None) -> SyncResult:
        """
        Run a job end-to-end.

        Returns:
            SyncResult with status success

        Raises:
            ETLException: the stage error (SourceNotFoundError, ConfigurationError,
                DiscoveryError, ReadError, WriteError) with `.result` set to
                the populated error result
            asyncio.CancelledError: re-raised after `self.result` is filled
                in as an error result
        """
        started = time.monotonic()
        result = SyncResult(job_id=job.id, status=SyncStatus.ERROR)
        self.result = result
        stage = "resolve"

        logger.info(f"Starting sync for job {job.id} ({job.name})")

        try:
            async with asyncio.timeout(timeout):
                source = self.registry.get(job.source_type)
                chain = build_transformers(job.transforms, job.dedupe_key)

                stage = "discover"
                schema = await self._discover(source, job.source_config)

                stage = "read"
                records = await self._collect(source, job.source_config, chain, result)
                output_schema = derive_schema(records, schema)

                stage = "write"
                result.rows_written = await self._write(job, output_schema, records)

        except TimeoutError as e:
            result.rows_written = self._partial_rows_written()
            error_cls = STAGE_ERRORS.get(stage, ETLException)
            raise self._fail(error_cls(
                f"{stage}: deadline exceeded",
                context={"job_id": job.id, "timeout": timeout, "rows_written": result.rows_written},
                original_exception=e
            ), result, started)
        except asyncio.CancelledError:
            result.rows_written = self._partial_rows_written()
            result.error = f"{stage}: cancelled"
            result.duration_seconds = time.monotonic() - started
            logger.warning(f"Sync for job {job.id} cancelled during {stage}")
            raise
        except ETLException as e:
            raise self._fail(e, result, started)
        except Exception as e:
            raise self._fail(ETLException(
                f"{stage}: {describe(e)}",
                context={"job_id": job.id},
                original_exception=e
            ), result, started)

        result.status = SyncStatus.SUCCESS
        result.duration_seconds = time.monotonic() - started
        logger.info(
            f"Sync for job {job.id} completed: {result.rows_read} read, "
            f"{result.rows_written} written in {result.duration_seconds:.2f}s"
        )
        return result

    async def preview(
        self,
        source_type: str,
        config: Dict[str, Any],
        max_rows: int,
        timeout: Optional[float] = None
    ) -> Tuple[List[Record], RecordSchema]:
        """
        Read up to `max_rows` raw records from a source.

        The remainder of the stream is drained so the source always finishes;
        its terminal error is reported as ReadError.
        """
        async with asyncio.timeout(timeout):
            source = self.registry.get(source_type)
            schema = await self._discover(source, config)

            stream = source.stream(config)
            records: List[Record] = []
            async for record in stream:
                records.append(dict(record))
                if len(records) >= max_rows:
                    break
            await stream.drain()

            error = stream.terminal_error()
            if error is not None:
                raise ReadError(
                    f"read: {describe(error)}",
                    context={"source_type": source_type},
                    original_exception=error
                )

        return records, schema

    async def discover(self, source_type: str, config: Dict[str, Any], timeout: Optional[float] = None) -> RecordSchema:
        async with asyncio.timeout(timeout):
            source = self.registry.get(source_type)
            return await self._discover(source, config)

    async def _discover(self, source: Source, config: Dict[str, Any]) -> RecordSchema:
        try:
            return await source.discover(config)
        except Exception as e:
            raise DiscoveryError(
                f"discover: {describe(e)}",
                context={"source_type": source.type_key},
                original_exception=e
            )

    async def _collect(self, source: Source, config: Dict[str, Any], chain, result: SyncResult) -> List[Record]:
        """Fully buffer the transformed stream; rows_read counts every record"""
        stream = source.stream(config)
        records: List[Record] = []
        async for record in stream:
            result.rows_read += 1
            transformed, keep = apply_transformers(record, chain)
            if keep:
                records.append(transformed)

        records = apply_batch_sort(records, chain)

        error = stream.terminal_error()
        if error is not None:
            raise ReadError(
                f"read: {describe(error)}",
                context={"source_type": source.type_key, "rows_read": result.rows_read},
                original_exception=error
            )
        return records

    async def _write(self, job: SyncJobSnapshot, schema: RecordSchema, records: List[Record]) -> int:
        if self.destination is None:
            raise WriteError("write: no destination configured", context={"job_id": job.id})
        try:
            return await self.destination.write(job.target_id, schema, records, job.sync_mode)
        except Exception as e:
            raise WriteError(
                f"write: {describe(e)}",
                context={"target_id": job.target_id, "rows_written": self._partial_rows_written()},
                original_exception=e
            )

    def _partial_rows_written(self) -> int:
        return getattr(self.destination, "rows_written", 0) or 0

    def _fail(self, error: ETLException, result: SyncResult, started: float) -> ETLException:
        if isinstance(error, WriteError):
            result.rows_written = self._partial_rows_written()
        result.status = SyncStatus.ERROR
        result.error = error.message
        result.duration_seconds = time.monotonic() - started
        error.result = result

        logger.error(f"Sync for job {result.job_id} failed: {error.message}")
        return error
