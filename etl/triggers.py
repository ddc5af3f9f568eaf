"""
Automatic job triggers: cron schedules and file watches.

Both are rebuilt from scratch whenever the job set changes; neither keeps
state across a restart.
"""

import asyncio
import logging
import os
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from watchfiles import Change, awatch

from core.config import settings
from core.exceptions import SchedulingError
from models.base import TriggerType
from schemas.sync import SyncJobSnapshot

logger = logging.getLogger(__name__)

RunCallback = Callable[[str], Awaitable[object]]


def build_cron_trigger(job_id: str, expression: str) -> CronTrigger:
    """Standard 5-field crontab expression -> APScheduler trigger"""
    try:
        return CronTrigger.from_crontab(expression)
    except ValueError as e:
        raise SchedulingError(
            f"invalid cron expression {expression!r}: {e}",
            context={"job_id": job_id},
            original_exception=e
        )


def resolve_watch_path(job_id: str, trigger_config: str) -> str:
    """Absolute path of a watched file whose directory exists"""
    path = os.path.abspath(trigger_config.strip())
    if not os.path.isdir(os.path.dirname(path)):
        raise SchedulingError(
            f"cannot watch {path!r}: directory does not exist",
            context={"job_id": job_id}
        )
    return path


class CronTriggers:
    """
    APScheduler-backed cron triggers (standard 5-field crontab syntax).

    A job with an invalid expression is logged and skipped; the remaining
    jobs are still scheduled.
    """

    def __init__(self, run_callback: RunCallback):
        self.run_callback = run_callback
        self.scheduler: Optional[AsyncIOScheduler] = None

    def start(self, jobs: Iterable[SyncJobSnapshot]) -> int:
        entries = [
            (job.id, job.trigger_config.strip())
            for job in jobs
            if job.trigger_type == TriggerType.SCHEDULE and job.trigger_config.strip()
        ]
        if not entries:
            return 0

        scheduler = AsyncIOScheduler()
        scheduled = 0
        for job_id, expression in entries:
            try:
                trigger = build_cron_trigger(job_id, expression)
            except SchedulingError as e:
                logger.error(f"Cron: skipping job {job_id}: {e.message}")
                continue

            scheduler.add_job(
                self.run_callback,
                trigger=trigger,
                args=[job_id],
                id=f"etl-cron-{job_id}",
                replace_existing=True,
                coalesce=True,
            )
            scheduled += 1

        scheduler.start()
        self.scheduler = scheduler
        logger.info(f"Cron: scheduled {scheduled} job(s)")
        return scheduled

    def scheduled_job_ids(self) -> List[str]:
        if self.scheduler is None:
            return []
        return [job.args[0] for job in self.scheduler.get_jobs()]

    def stop(self):
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=False)
            self.scheduler = None


class FileWatchTriggers:
    """
    Run jobs when their watched file changes.

    The containing directory is watched rather than the file, so editors
    that save by writing a temp file and renaming it over the original
    still trigger. Bursts of events are coalesced: each event (re)starts a
    per-job single-shot timer and the job runs once the timer expires.
    """

    def __init__(self, run_callback: RunCallback, debounce_ms: Optional[int] = None):
        self.run_callback = run_callback
        self.debounce_ms = settings.FILE_WATCH_DEBOUNCE_MS if debounce_ms is None else debounce_ms

        self.path_to_job: Dict[str, str] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._runs: Set[asyncio.Task] = set()
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    def start(self, jobs: Iterable[SyncJobSnapshot]) -> int:
        directories: Set[str] = set()
        for job in jobs:
            if job.trigger_type != TriggerType.FILE_WATCH or not job.trigger_config.strip():
                continue

            try:
                path = resolve_watch_path(job.id, job.trigger_config)
            except SchedulingError as e:
                logger.error(f"File watch: skipping job {job.id}: {e.message}")
                continue

            self.path_to_job[path] = job.id
            directories.add(os.path.dirname(path))

        if not directories:
            return 0

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._watch(sorted(directories)), name="etl-file-watch")
        self._task.add_done_callback(self._watch_done)
        logger.info(f"File watch: watching {len(self.path_to_job)} file(s)")
        return len(self.path_to_job)

    async def _watch(self, directories: List[str]):
        async for changes in awatch(
            *directories,
            watch_filter=None,
            debounce=50,
            step=50,
            stop_event=self._stop_event,
            recursive=False,
        ):
            for change, path in changes:
                if change not in (Change.added, Change.modified):
                    continue
                job_id = self.path_to_job.get(os.path.abspath(path))
                if job_id is not None:
                    self.notify(job_id, path)

    @staticmethod
    def _watch_done(task: asyncio.Task):
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"File watcher stopped: {task.exception()}")

    def notify(self, job_id: str, path: str = ""):
        """Record a change for a job and (re)start its debounce timer"""
        timer = self._timers.pop(job_id, None)
        if timer is not None:
            timer.cancel()

        loop = asyncio.get_running_loop()
        self._timers[job_id] = loop.call_later(self.debounce_ms / 1000, self._fire, job_id, path)

    def _fire(self, job_id: str, path: str):
        self._timers.pop(job_id, None)
        logger.info(f"File changed {path!r}, running job {job_id}")
        task = asyncio.ensure_future(self.run_callback(job_id))
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)

    def pending(self) -> List[str]:
        return list(self._timers)

    def stop(self):
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self.path_to_job.clear()

        if self._stop_event is not None:
            self._stop_event.set()
            self._stop_event = None
        if self._task is not None:
            self._task.cancel()
            self._task = None
