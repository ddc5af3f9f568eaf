"""
Persistence for sync jobs, run history and local databases.

Stores:
    job_store: SyncJob definitions and SyncRunLog history
    local_db_store: Local databases and rows written by sync runs

Usage:
    from core.database import async_session_maker
    from storage import SQLJobStore, SQLLocalDatabaseStore

    job_store = SQLJobStore(async_session_maker)
"""

from storage.job_store import JobStore, SQLJobStore
from storage.local_db_store import LocalDatabaseStore, SQLLocalDatabaseStore

__all__ = ["JobStore", "SQLJobStore", "LocalDatabaseStore", "SQLLocalDatabaseStore"]
