"""
Event emitter boundary between the ETL service and whatever UI listens.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)


class EventEmitter(ABC):
    """Fire-and-forget notifications ("db:updated", "etl:job-completed")"""

    @abstractmethod
    async def emit(self, event: str, payload: Any = None):
        pass


class LoggingEmitter(EventEmitter):
    """Default emitter: events are only logged"""

    async def emit(self, event: str, payload: Any = None):
        logger.info(f"Event {event}: {payload}")
