"""
Pytest configuration and fixtures
"""

import asyncio
import json
from typing import Any, AsyncGenerator, AsyncIterator, Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from etl.sources import SourceRegistry, register_builtin_sources
from etl.sources.base import Source
from models.base import Base
from schemas.record import Record, RecordSchema, infer_schema
from schemas.sync import SourceSpec, ConfigField
from services.emitter import EventEmitter
from services.etl_service import ETLService
from storage.job_store import SQLJobStore
from storage.local_db_store import SQLLocalDatabaseStore


# ============================================================================
# Test sources
# ============================================================================

class StaticSource(Source):
    """
    In-memory source.

    Yields `records` in order, then fails with `read_error` when one is set.
    `gate`, when given, must be set before the first record is produced.
    """

    def __init__(
        self,
        type_key: str = "static",
        records: Optional[List[Record]] = None,
        schema: Optional[RecordSchema] = None,
        read_error: Optional[Exception] = None,
        discover_error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self._type_key = type_key
        self.records = records or []
        self.schema = schema
        self.read_error = read_error
        self.discover_error = discover_error
        self.gate = gate
        self.started = asyncio.Event()
        self.yielded = 0

    def spec(self) -> SourceSpec:
        return SourceSpec(
            type=self._type_key,
            label="Static",
            config_fields=[ConfigField(key="note", label="Note")],
        )

    async def discover(self, config: Dict[str, Any]) -> RecordSchema:
        if self.discover_error is not None:
            raise self.discover_error
        return self.schema or infer_schema(self.records)

    async def read(self, config: Dict[str, Any]) -> AsyncIterator[Record]:
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        for record in self.records:
            self.yielded += 1
            yield dict(record)
        if self.read_error is not None:
            raise self.read_error


class RecordingEmitter(EventEmitter):
    """Keeps every emitted event"""

    def __init__(self):
        self.events = []

    async def emit(self, event: str, payload: Any = None):
        self.events.append((event, payload))

    def named(self, event: str) -> list:
        return [payload for name, payload in self.events if name == event]


# ============================================================================
# Database
# ============================================================================

@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create test database engine on a throwaway SQLite file"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        poolclass=NullPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def job_store(session_factory):
    return SQLJobStore(session_factory, retention=50)


@pytest.fixture
def local_db_store(session_factory):
    return SQLLocalDatabaseStore(session_factory)


@pytest_asyncio.fixture
async def target_db(local_db_store):
    """Local database with UI state that sync runs must preserve"""
    return await local_db_store.create_database(
        "Orders",
        {"columns": [], "activeView": "grid"},
    )


# ============================================================================
# Pipeline
# ============================================================================

@pytest.fixture
def registry():
    return register_builtin_sources(SourceRegistry())


@pytest.fixture
def make_source(registry):
    """Build a StaticSource and register it under its type key"""
    def factory(**kwargs) -> StaticSource:
        source = StaticSource(**kwargs)
        registry.register(source)
        return source
    return factory


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def etl_service(job_store, local_db_store, registry, emitter):
    service = ETLService(
        job_store=job_store,
        local_db_store=local_db_store,
        registry=registry,
        emitter=emitter,
        debounce_ms=20,
    )
    yield service
    service.stop()


@pytest.fixture
def orders():
    """Order records with a duplicate id (2)"""
    return [
        {"id": 1, "customer": "ada", "total": 30.0, "status": "paid"},
        {"id": 2, "customer": "bob", "total": 12.5, "status": "open"},
        {"id": 2, "customer": "bob", "total": 12.5, "status": "open"},
        {"id": 3, "customer": "cy", "total": 99.0, "status": "paid"},
    ]


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "orders.csv"
    path.write_text(
        "id,customer,total,paid\n"
        "1,ada,30,true\n"
        "2,bob,12.5,no\n"
        "3,cy,,yes\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def json_file(tmp_path):
    path = tmp_path / "orders.json"
    path.write_text(json.dumps({
        "data": {
            "items": [
                {"id": 1, "customer": {"name": "ada", "city": "Oslo"}, "total": 30},
                {"id": 2, "customer": {"name": "bob", "city": "Rome"}, "total": 12.5},
                "not-an-object",
            ]
        }
    }), encoding="utf-8")
    return path
