"""
Service layer.

Services:
    etl_service: Job CRUD, runs, previews and trigger lifecycle
    emitter: EventEmitter boundary and its logging implementation
"""

from services.emitter import EventEmitter, LoggingEmitter
from services.etl_service import ETLService

__all__ = ["EventEmitter", "LoggingEmitter", "ETLService"]
