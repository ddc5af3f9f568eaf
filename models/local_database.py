from sqlalchemy import Column, Integer, String, DateTime, Text, Index, ForeignKey
from datetime import datetime
import uuid
from models.base import Base


class LocalDatabase(Base):
    """
    A user-created structured table stored locally.

    config_json holds the column definitions (`columns` array of
    {id, name, type, width}) together with unrelated UI state such as the
    active view; the sync writer only ever touches `columns`.
    """
    __tablename__ = "local_databases"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), nullable=False, default="")
    config_json = Column(Text, nullable=False, default="{}")

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class LocalDBRow(Base):
    """
    A single row in a local database.

    data_json stores values keyed by column id: {"<column id>": value}.
    """
    __tablename__ = "local_db_rows"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    database_id = Column(String(36), ForeignKey("local_databases.id", ondelete="CASCADE"), nullable=False)
    data_json = Column(Text, nullable=False, default="{}")
    sort_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_local_row_database_order", "database_id", "sort_order"),
    )
