"""
Run a single sync job by id from the command line.

Usage:
    python scripts/run_job.py <job-id>
    python scripts/run_job.py --list
"""

import argparse
import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import engine, async_session_maker, create_tables
from core.exceptions import ETLException
from core.logging import setup_logging
from etl.sources import SourceRegistry, register_builtin_sources
from services.etl_service import ETLService
from storage.job_store import SQLJobStore
from storage.local_db_store import SQLLocalDatabaseStore

logger = logging.getLogger(__name__)


def build_service() -> ETLService:
    return ETLService(
        job_store=SQLJobStore(async_session_maker),
        local_db_store=SQLLocalDatabaseStore(async_session_maker),
        registry=register_builtin_sources(SourceRegistry()),
    )


async def run(job_id: str) -> int:
    """Run one job; the exit code is 0 on success"""
    service = build_service()
    try:
        await create_tables(engine)
        result = await service.run_job(job_id)
        logger.info(
            f"Job {job_id} succeeded: read={result.rows_read}, "
            f"written={result.rows_written}, duration={result.duration_seconds:.2f}s"
        )
        return 0
    except ETLException as e:
        logger.error(f"Job {job_id} failed: {e.message}")
        return 1
    finally:
        await engine.dispose()


async def list_jobs() -> int:
    service = build_service()
    try:
        await create_tables(engine)
        for job in await service.list_jobs():
            print(f"{job.id}  {job.name}  [{job.source_type} -> {job.target_id or '-'}]  {job.last_status.value or 'never run'}")
        return 0
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a tablesync job")
    parser.add_argument("job_id", nargs="?", help="Id of the job to run")
    parser.add_argument("--list", action="store_true", help="List jobs and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    args = parser.parse_args()

    setup_logging("DEBUG" if args.verbose else None)

    if args.list:
        return asyncio.run(list_jobs())
    if not args.job_id:
        parser.error("job_id is required unless --list is given")
    return asyncio.run(run(args.job_id))


if __name__ == "__main__":
    sys.exit(main())
