"""
ETL service: job CRUD, runs, previews and trigger lifecycle.
"""

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from core.config import settings
from core.exceptions import (
    ETLException,
    ConfigurationError,
    DiscoveryError,
    ReadError,
)
from etl.engine import SyncEngine
from etl.guard import RunningJobsGuard
from etl.loaders.local_db_writer import LocalDBWriter
from etl.sources.base import SourceRegistry
from etl.transformers.factory import build_transformers
from etl.triggers import CronTriggers, FileWatchTriggers
from models.base import SyncStatus
from schemas.record import RecordSchema
from schemas.sync import (
    SyncJobCreate,
    SyncJobSnapshot,
    SyncResult,
    SyncRunLogCreate,
    SyncRunLogRead,
    SourceSpec,
    PreviewResult,
)
from services.emitter import EventEmitter, LoggingEmitter
from storage.job_store import JobStore
from storage.local_db_store import LocalDatabaseStore

logger = logging.getLogger(__name__)

SourceConfigInput = Union[str, Dict[str, Any], None]


def parse_source_config(config: SourceConfigInput) -> Dict[str, Any]:
    """Accept a source config as a mapping or as JSON text"""
    if config is None or config == "":
        return {}
    if isinstance(config, dict):
        return config
    try:
        parsed = json.loads(config)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"parse source config: {e}", original_exception=e)
    if not isinstance(parsed, dict):
        raise ConfigurationError("parse source config: expected a JSON object")
    return parsed


class ETLService:
    """
    Business logic for sync jobs.

    Owns the job store handle, the running-jobs guard, the source registry
    reference and the cron/file-watch triggers. Notifies listeners through
    an EventEmitter.
    """

    def __init__(
        self,
        job_store: JobStore,
        local_db_store: LocalDatabaseStore,
        registry: SourceRegistry,
        emitter: Optional[EventEmitter] = None,
        debounce_ms: Optional[int] = None
    ):
        self.job_store = job_store
        self.local_db_store = local_db_store
        self.registry = registry
        self.emitter = emitter or LoggingEmitter()
        self.guard = RunningJobsGuard()

        self.cron = CronTriggers(self._run_scheduled)
        self.file_watch = FileWatchTriggers(self._run_file_watch, debounce_ms=debounce_ms)
        self._watchers_lock = asyncio.Lock()

    # ========================================================================
    # Job CRUD
    # ========================================================================

    def _validate(self, data: SyncJobCreate):
        self.registry.get(data.source_type)
        build_transformers(data.transforms, data.dedupe_key)

    async def create_job(self, data: SyncJobCreate) -> SyncJobSnapshot:
        self._validate(data)
        job = await self.job_store.create_job(data)
        await self.restart_watchers()
        return job

    async def get_job(self, job_id: str) -> SyncJobSnapshot:
        return await self.job_store.get_job(job_id)

    async def list_jobs(self) -> List[SyncJobSnapshot]:
        return await self.job_store.list_jobs()

    async def update_job(self, job_id: str, data: SyncJobCreate) -> SyncJobSnapshot:
        self._validate(data)
        job = await self.job_store.update_job(job_id, data)
        await self.restart_watchers()
        return job

    async def delete_job(self, job_id: str):
        await self.job_store.delete_job(job_id)
        await self.restart_watchers()

    # ========================================================================
    # Runs
    # ========================================================================

    async def run_job(self, job_id: str) -> SyncResult:
        """
        Execute one job synchronously.

        Raises:
            JobAlreadyRunningError: a run of this job is in flight (not logged as a run)
            JobNotFoundError: unknown job id
            ETLException: the run failed; the run log and job status are
                already updated and `exc.result` holds the error result
            asyncio.CancelledError: the run was cancelled; it is logged as
                an error run before the cancellation propagates
        """
        with self.guard.hold(job_id):
            job = await self.job_store.get_job(job_id)
            await self.job_store.update_job_status(job_id, SyncStatus.RUNNING)

            engine = SyncEngine(self.registry, LocalDBWriter(self.local_db_store))
            started_at = datetime.utcnow()
            run_error: Optional[ETLException] = None
            try:
                result = await engine.run_sync(job, timeout=settings.SYNC_TIMEOUT_SECONDS)
            except ETLException as e:
                run_error = e
                result = e.result or SyncResult(job_id=job_id, status=SyncStatus.ERROR, error=e.message)
            except asyncio.CancelledError:
                result = engine.result or SyncResult(job_id=job_id, status=SyncStatus.ERROR)
                result.status = SyncStatus.ERROR
                result.error = result.error or "cancelled"
                # a second cancel must not interrupt the bookkeeping
                await asyncio.shield(self._record_run(job_id, started_at, result))
                raise

            await self._record_run(job_id, started_at, result)

            if run_error is not None:
                raise run_error

            if result.status == SyncStatus.SUCCESS and job.target_id:
                await self._emit("db:updated", {"database_id": job.target_id, "job_id": job_id})
            return result

    async def _record_run(self, job_id: str, started_at: datetime, result: SyncResult):
        """Append the run log and update the job's last status"""
        await self.job_store.create_run_log(SyncRunLogCreate(
            job_id=job_id,
            started_at=started_at,
            finished_at=datetime.utcnow(),
            status=result.status,
            rows_read=result.rows_read,
            rows_written=result.rows_written,
            error=result.error,
        ))
        await self.job_store.update_job_status(job_id, result.status, result.error)

    async def list_run_logs(self, job_id: str) -> List[SyncRunLogRead]:
        return await self.job_store.list_run_logs(job_id, limit=settings.RUN_LOG_RETENTION)

    async def _emit(self, event: str, payload: Any):
        try:
            await self.emitter.emit(event, payload)
        except Exception as e:
            logger.warning(f"Failed to emit {event}: {e}")

    # ========================================================================
    # Sources, discovery and preview
    # ========================================================================

    def list_sources(self) -> List[SourceSpec]:
        return self.registry.list_specs()

    async def discover_schema(self, source_type: str, config: SourceConfigInput) -> RecordSchema:
        parsed = parse_source_config(config)
        engine = SyncEngine(self.registry)
        try:
            return await engine.discover(source_type, parsed, timeout=settings.DISCOVER_TIMEOUT_SECONDS)
        except TimeoutError as e:
            raise DiscoveryError(
                "discover: deadline exceeded",
                context={"source_type": source_type},
                original_exception=e
            )

    async def preview_source(self, source_type: str, config: SourceConfigInput) -> PreviewResult:
        """Raw, untransformed sample of a source"""
        parsed = parse_source_config(config)
        engine = SyncEngine(self.registry)
        try:
            records, schema = await engine.preview(
                source_type,
                parsed,
                max_rows=settings.PREVIEW_MAX_ROWS,
                timeout=settings.PREVIEW_TIMEOUT_SECONDS
            )
        except TimeoutError as e:
            raise ReadError(
                "read: deadline exceeded",
                context={"source_type": source_type},
                original_exception=e
            )
        return PreviewResult(record_schema=schema, records=records)

    # ========================================================================
    # Triggers
    # ========================================================================

    async def restart_watchers(self):
        """Tear down cron and file triggers and rebuild them from the job store"""
        async with self._watchers_lock:
            self._stop_triggers()

            try:
                jobs = await self.job_store.list_enabled_scheduled_jobs()
            except Exception as e:
                logger.error(f"Failed to list scheduled jobs: {e}")
                return

            self.cron.start(jobs)
            self.file_watch.start(jobs)

    async def _run_scheduled(self, job_id: str):
        logger.info(f"Cron: running job {job_id}")
        await self._run_triggered(job_id)
        await self._emit("etl:job-completed", job_id)

    async def _run_file_watch(self, job_id: str):
        await self._run_triggered(job_id)

    async def _run_triggered(self, job_id: str):
        try:
            await self.run_job(job_id)
        except ETLException as e:
            logger.error(f"Triggered run of job {job_id} failed: {e.message}")

    async def wait_all(self, timeout: Optional[float] = None) -> bool:
        """Drain barrier: wait for in-flight runs to finish"""
        return await self.guard.wait_all(timeout)

    def _stop_triggers(self):
        self.cron.stop()
        self.file_watch.stop()

    def stop(self):
        """Tear down all triggers; safe to call more than once"""
        self._stop_triggers()
        logger.info("ETL service triggers stopped")
