"""
Per-job mutual exclusion for sync runs
"""

import asyncio
import logging
import threading
from contextlib import contextmanager
from typing import Optional, Set

from core.exceptions import JobAlreadyRunningError

logger = logging.getLogger(__name__)


class RunningJobsGuard:
    """
    Set of job ids with a run in flight.

    At most one run per job id; unrelated jobs are not serialised. The
    idle event is set whenever nothing is running and backs `wait_all`,
    the drain barrier used on shutdown.
    """

    def __init__(self):
        self._running: Set[str] = set()
        self._lock = threading.Lock()
        self._idle: Optional[asyncio.Event] = None

    def _idle_event(self) -> asyncio.Event:
        with self._lock:
            if self._idle is None:
                self._idle = asyncio.Event()
                if not self._running:
                    self._idle.set()
            return self._idle

    def try_acquire(self, job_id: str) -> bool:
        with self._lock:
            if job_id in self._running:
                return False
            self._running.add(job_id)
            if self._idle is not None:
                self._idle.clear()
            return True

    def release(self, job_id: str):
        with self._lock:
            self._running.discard(job_id)
            if not self._running and self._idle is not None:
                self._idle.set()

    def is_running(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._running

    @property
    def running(self) -> Set[str]:
        with self._lock:
            return set(self._running)

    @contextmanager
    def hold(self, job_id: str):
        """Acquire for the duration of the block or raise JobAlreadyRunningError"""
        if not self.try_acquire(job_id):
            raise JobAlreadyRunningError(job_id)
        try:
            yield
        finally:
            self.release(job_id)

    async def wait_all(self, timeout: Optional[float] = None) -> bool:
        """Wait until no run is in flight; False when the timeout expires first"""
        idle = self._idle_event()
        try:
            async with asyncio.timeout(timeout):
                await idle.wait()
        except TimeoutError:
            logger.warning(f"Timed out waiting for running jobs: {sorted(self.running)}")
            return False
        return True
