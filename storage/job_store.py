"""
Job store: sync job definitions and their run history
"""

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, delete, desc
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.config import settings
from core.exceptions import JobNotFoundError
from models.base import SyncStatus, TriggerType
from models.sync_job import SyncJob
from models.sync_run_log import SyncRunLog
from schemas.sync import SyncJobCreate, SyncJobSnapshot, SyncRunLogCreate, SyncRunLogRead

logger = logging.getLogger(__name__)


class JobStore(ABC):
    """Durable storage of jobs and run logs"""

    @abstractmethod
    async def create_job(self, data: SyncJobCreate) -> SyncJobSnapshot:
        pass

    @abstractmethod
    async def get_job(self, job_id: str) -> SyncJobSnapshot:
        """Raises JobNotFoundError for unknown ids"""
        pass

    @abstractmethod
    async def list_jobs(self) -> List[SyncJobSnapshot]:
        pass

    @abstractmethod
    async def update_job(self, job_id: str, data: SyncJobCreate) -> SyncJobSnapshot:
        pass

    @abstractmethod
    async def delete_job(self, job_id: str):
        pass

    @abstractmethod
    async def update_job_status(self, job_id: str, status: SyncStatus, error: str = ""):
        pass

    @abstractmethod
    async def list_enabled_scheduled_jobs(self) -> List[SyncJobSnapshot]:
        pass

    @abstractmethod
    async def create_run_log(self, log: SyncRunLogCreate) -> SyncRunLogRead:
        pass

    @abstractmethod
    async def list_run_logs(self, job_id: str, limit: int = 50) -> List[SyncRunLogRead]:
        pass


class SQLJobStore(JobStore):
    """
    SQLAlchemy implementation of the job store.

    Run history is capped per job: inserting a log prunes everything older
    than the newest `retention` entries.
    """

    def __init__(self, session_factory: async_sessionmaker, retention: Optional[int] = None):
        self.session_factory = session_factory
        self.retention = retention or settings.RUN_LOG_RETENTION

    async def create_job(self, data: SyncJobCreate) -> SyncJobSnapshot:
        async with self.session_factory() as session:
            job = SyncJob(id=str(uuid.uuid4()), **self._columns(data))
            session.add(job)
            await session.commit()
            await session.refresh(job)
            logger.info(f"Created sync job {job.id} ({job.name})")
            return SyncJobSnapshot.model_validate(job)

    async def get_job(self, job_id: str) -> SyncJobSnapshot:
        async with self.session_factory() as session:
            job = await session.get(SyncJob, job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            return SyncJobSnapshot.model_validate(job)

    async def list_jobs(self) -> List[SyncJobSnapshot]:
        async with self.session_factory() as session:
            result = await session.execute(select(SyncJob).order_by(SyncJob.created_at))
            return [SyncJobSnapshot.model_validate(job) for job in result.scalars().all()]

    async def update_job(self, job_id: str, data: SyncJobCreate) -> SyncJobSnapshot:
        async with self.session_factory() as session:
            job = await session.get(SyncJob, job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            for column, value in self._columns(data).items():
                setattr(job, column, value)
            job.updated_at = datetime.utcnow()
            await session.commit()
            await session.refresh(job)
            return SyncJobSnapshot.model_validate(job)

    async def delete_job(self, job_id: str):
        async with self.session_factory() as session:
            job = await session.get(SyncJob, job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            await session.execute(delete(SyncRunLog).where(SyncRunLog.job_id == job_id))
            await session.delete(job)
            await session.commit()
            logger.info(f"Deleted sync job {job_id}")

    async def update_job_status(self, job_id: str, status: SyncStatus, error: str = ""):
        async with self.session_factory() as session:
            job = await session.get(SyncJob, job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            job.last_status = status
            job.last_error = error or ""
            job.last_run_at = datetime.utcnow()
            await session.commit()

    async def list_enabled_scheduled_jobs(self) -> List[SyncJobSnapshot]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(SyncJob).where(
                    SyncJob.enabled.is_(True),
                    SyncJob.trigger_type.in_([TriggerType.SCHEDULE, TriggerType.FILE_WATCH]),
                )
            )
            return [SyncJobSnapshot.model_validate(job) for job in result.scalars().all()]

    async def create_run_log(self, log: SyncRunLogCreate) -> SyncRunLogRead:
        async with self.session_factory() as session:
            entry = SyncRunLog(run_id=str(uuid.uuid4()), **log.model_dump())
            session.add(entry)
            await session.flush()

            keep = (
                select(SyncRunLog.id)
                .where(SyncRunLog.job_id == log.job_id)
                .order_by(desc(SyncRunLog.started_at), desc(SyncRunLog.id))
                .limit(self.retention)
            )
            await session.execute(
                delete(SyncRunLog)
                .where(SyncRunLog.job_id == log.job_id, SyncRunLog.id.not_in(keep))
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            await session.refresh(entry)
            return SyncRunLogRead.model_validate(entry)

    async def list_run_logs(self, job_id: str, limit: int = 50) -> List[SyncRunLogRead]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(SyncRunLog)
                .where(SyncRunLog.job_id == job_id)
                .order_by(desc(SyncRunLog.started_at), desc(SyncRunLog.id))
                .limit(limit)
            )
            return [SyncRunLogRead.model_validate(entry) for entry in result.scalars().all()]

    @staticmethod
    def _columns(data: SyncJobCreate) -> dict:
        return {
            "name": data.name,
            "source_type": data.source_type,
            "source_config": dict(data.source_config),
            "transforms": [t.model_dump() for t in data.transforms],
            "target_id": data.target_id,
            "sync_mode": data.sync_mode,
            "dedupe_key": data.dedupe_key,
            "trigger_type": data.trigger_type,
            "trigger_config": data.trigger_config,
            "enabled": data.enabled,
        }
