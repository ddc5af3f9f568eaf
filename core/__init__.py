"""
Core utilities and configuration for the tablesync service.

This package provides foundational components used throughout the sync pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Database engine, session factory and table creation
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration

Usage:
    from core.config import settings
    from core.database import async_session_maker
    from core.exceptions import ReadError, JobAlreadyRunningError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Ensure tables exist
    await create_tables()
"""

from core.config import settings
from core.database import async_session_maker, create_tables
from core.exceptions import (
    ETLException,
    ConfigurationError,
    SourceNotFoundError,
    ExtractionError,
    DiscoveryError,
    ReadError,
    LoadError,
    WriteError,
    TargetNotFoundError,
    ConcurrencyError,
    JobAlreadyRunningError,
    JobNotFoundError,
    SchedulingError,
)
from core.logging import setup_logging

__all__ = [
    "settings",
    "async_session_maker",
    "create_tables",
    "setup_logging",
    # Exceptions
    "ETLException",
    "ConfigurationError",
    "SourceNotFoundError",
    "ExtractionError",
    "DiscoveryError",
    "ReadError",
    "LoadError",
    "WriteError",
    "TargetNotFoundError",
    "ConcurrencyError",
    "JobAlreadyRunningError",
    "JobNotFoundError",
    "SchedulingError",
]
