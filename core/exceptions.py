"""
Custom exceptions for the sync pipeline with structured error context.

This module provides the exception hierarchy used by the sources, the
transform chain, the destination writer, the sync engine and the ETL
service. Each exception carries context information for debugging and
for the per-job error string shown to operators.

Exception Hierarchy:
    ETLException (base)
    ├── ConfigurationError
    │   └── SourceNotFoundError
    ├── ExtractionError
    │   ├── DiscoveryError
    │   └── ReadError
    ├── LoadError
    │   ├── WriteError
    │   └── TargetNotFoundError
    ├── ConcurrencyError
    │   └── JobAlreadyRunningError
    ├── JobNotFoundError
    └── SchedulingError
"""

from typing import Optional, Dict, Any
from datetime import datetime


class ETLException(Exception):
    """
    Base exception for all ETL-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (job id, source type, etc.)
        original_exception: The original exception that was caught (if any)
        result: The populated SyncResult when raised by a sync run
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()
        self.result = None

        # Add timestamp to context
        self.context["error_timestamp"] = self.timestamp.isoformat()

        # Chain original exception if provided
        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(ETLException):
    """
    Exception raised for unusable configuration: malformed JSON, unknown
    transform types, or source/transform fields that fail validation.

    Raised before anything is read or written.
    """
    pass


class SourceNotFoundError(ConfigurationError):
    """
    Exception raised when no source is registered for a type key.

    Context should include:
        - source_type: The requested type key
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ETLException):
    """Base exception for source-side failures."""
    pass


class DiscoveryError(ExtractionError):
    """
    Exception raised when a source cannot report its schema.

    Aborts a sync before any record is read.
    """
    pass


class ReadError(ExtractionError):
    """
    Exception raised when a record stream ends with an error.

    Records already buffered and transformed are discarded; no write occurs.
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(ETLException):
    """Base exception for destination-side failures."""
    pass


class WriteError(LoadError):
    """
    Exception raised when writing to the destination fails or is cancelled.

    Context should include:
        - target_id: The destination table
        - rows_written: Rows persisted before the failure (never rolled back)
    """
    pass


class TargetNotFoundError(LoadError):
    """Exception raised when the destination table does not exist."""
    pass


# ============================================================================
# Service Errors
# ============================================================================

class ConcurrencyError(ETLException):
    """Base exception for mutual-exclusion failures."""
    pass


class JobAlreadyRunningError(ConcurrencyError):
    """
    Exception raised when a job is triggered while a run of the same job
    is still in flight. Never counted as a run.
    """

    def __init__(self, job_id: str):
        super().__init__(f"job {job_id} is already running", context={"job_id": job_id})
        self.job_id = job_id


class JobNotFoundError(ETLException):
    """Exception raised when a job id is unknown to the job store."""

    def __init__(self, job_id: str):
        super().__init__(f"etl job not found: {job_id}", context={"job_id": job_id})
        self.job_id = job_id


class SchedulingError(ETLException):
    """
    Exception raised for a trigger that cannot be installed (bad cron
    expression, unwatchable path). Logged; only the affected job is skipped.
    """
    pass
