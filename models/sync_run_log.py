from sqlalchemy import Column, Integer, String, Enum, DateTime, Text, Index, ForeignKey
from datetime import datetime
import uuid
from models.base import Base, SyncStatus


class SyncRunLog(Base):
    """
    Append-only history of sync executions.

    Purpose:
    - Audit trail of every run of a job
    - Error tracking for the operator

    Only the most recent runs per job are retained; older rows are pruned
    by the job store when a new log is written.
    """
    __tablename__ = "sync_run_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String(36), default=lambda: str(uuid.uuid4()), unique=True, nullable=False)
    job_id = Column(String(36), ForeignKey("sync_jobs.id", ondelete="CASCADE"), nullable=False, index=True)

    # Timing
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    finished_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Outcome
    status = Column(Enum(SyncStatus), nullable=False)
    rows_read = Column(Integer, nullable=False, default=0)
    rows_written = Column(Integer, nullable=False, default=0)
    error = Column(Text, nullable=False, default="")

    __table_args__ = (
        Index("idx_run_log_job_started", "job_id", "started_at"),
    )
