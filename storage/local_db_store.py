"""
Backing store for local databases, the sync destination
"""

import json
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.exceptions import TargetNotFoundError
from models.local_database import LocalDatabase, LocalDBRow
from schemas.sync import LocalDatabaseInfo, LocalDBRowInfo

logger = logging.getLogger(__name__)


class LocalDatabaseStore(ABC):
    """Persistence for local tables and their rows"""

    @abstractmethod
    async def get_database(self, database_id: str) -> LocalDatabaseInfo:
        pass

    @abstractmethod
    async def update_database(self, database: LocalDatabaseInfo):
        pass

    @abstractmethod
    async def delete_rows_by_database(self, database_id: str) -> int:
        pass

    @abstractmethod
    async def create_row(self, row: LocalDBRowInfo):
        pass

    @abstractmethod
    async def create_database(self, name: str, config: Optional[Dict[str, Any]] = None) -> LocalDatabaseInfo:
        pass

    @abstractmethod
    async def list_rows(self, database_id: str) -> List[LocalDBRowInfo]:
        pass


class SQLLocalDatabaseStore(LocalDatabaseStore):
    """
    SQLAlchemy implementation.

    Each operation runs in its own session and commits immediately, so rows
    written before a failure stay written.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def _load(self, session: AsyncSession, database_id: str) -> LocalDatabase:
        database = await session.get(LocalDatabase, database_id)
        if database is None:
            raise TargetNotFoundError(
                f"local database not found: {database_id}",
                context={"target_id": database_id}
            )
        return database

    async def get_database(self, database_id: str) -> LocalDatabaseInfo:
        async with self.session_factory() as session:
            database = await self._load(session, database_id)
            return LocalDatabaseInfo.model_validate(database)

    async def update_database(self, database: LocalDatabaseInfo):
        async with self.session_factory() as session:
            row = await self._load(session, database.id)
            row.name = database.name
            row.config_json = database.config_json
            row.updated_at = datetime.utcnow()
            await session.commit()

    async def delete_rows_by_database(self, database_id: str) -> int:
        async with self.session_factory() as session:
            result = await session.execute(
                delete(LocalDBRow).where(LocalDBRow.database_id == database_id)
            )
            await session.commit()
            logger.debug(f"Deleted {result.rowcount} rows from local database {database_id}")
            return result.rowcount

    async def create_row(self, row: LocalDBRowInfo):
        async with self.session_factory() as session:
            session.add(LocalDBRow(
                id=row.id or str(uuid.uuid4()),
                database_id=row.database_id,
                data_json=json.dumps(row.data, ensure_ascii=False, default=str),
                sort_order=row.sort_order,
            ))
            await session.commit()

    async def create_database(self, name: str, config: Optional[Dict[str, Any]] = None) -> LocalDatabaseInfo:
        async with self.session_factory() as session:
            database = LocalDatabase(
                id=str(uuid.uuid4()),
                name=name,
                config_json=json.dumps(config or {"columns": []}),
            )
            session.add(database)
            await session.commit()
            logger.info(f"Created local database {database.id} ({name})")
            return LocalDatabaseInfo.model_validate(database)

    async def list_rows(self, database_id: str) -> List[LocalDBRowInfo]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(LocalDBRow)
                .where(LocalDBRow.database_id == database_id)
                .order_by(LocalDBRow.sort_order, LocalDBRow.created_at)
            )
            return [
                LocalDBRowInfo(
                    id=row.id,
                    database_id=row.database_id,
                    data=json.loads(row.data_json or "{}"),
                    sort_order=row.sort_order,
                )
                for row in result.scalars().all()
            ]
