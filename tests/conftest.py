"""Shared test fixtures for the test suite."""

from __future__ import annotations

import pytest
from sqlalchemy import Engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog.testing import capture_logs

from infrabase.cli import Runtime
from infrabase.config import Settings
from infrabase.database import init_db, make_async_engine, make_async_session_factory, make_session_factory, make_sync_engine
from infrabase.schemas.host import HostRecord
from infrabase.services.inventory import InventoryService
from infrabase.services.query import QueryEngine
from infrabase.services.repository import HostRepository


@pytest.fixture(autouse=True)
def captured_logs():
    """Keep structlog output out of stdout and let tests inspect events."""
    with capture_logs() as logs:
        yield logs


# ── One SQLite file shared by the sync and async engines ──

@pytest.fixture
def settings(tmp_path) -> Settings:
    db = tmp_path / "inventory.db"
    return Settings(
        database_url=f"sqlite+aiosqlite:///{db}",
        database_url_sync=f"sqlite:///{db}",
        db_pool_size=4,
        resolve_timeout=5.0,
    )


@pytest.fixture
def engine(settings: Settings) -> Engine:
    engine = make_sync_engine(settings)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine: Engine) -> HostRepository:
    return HostRepository(make_session_factory(engine))


@pytest.fixture
def async_sessions(settings: Settings, engine: Engine) -> async_sessionmaker[AsyncSession]:
    # NullPool for SQLite, so nothing to dispose
    return make_async_session_factory(make_async_engine(settings))


@pytest.fixture
def query(settings: Settings, async_sessions: async_sessionmaker[AsyncSession]) -> QueryEngine:
    return QueryEngine(
        async_sessions,
        concurrency=settings.db_pool_size,
        timeout=settings.resolve_timeout,
    )


@pytest.fixture
def service(repository: HostRepository, query: QueryEngine) -> InventoryService:
    return InventoryService(repository, query)


@pytest.fixture
def runtime(service: InventoryService) -> Runtime:
    return Runtime(service)


@pytest.fixture
def sample_hosts(service: InventoryService) -> list[HostRecord]:
    """A small inventory: two networks, one host per role."""
    return [
        service.add({
            "hostname": "web10",
            "owner": "ivan",
            "addresses": [{"address": "10.0.0.10", "network": "lan", "ssh_port": 22}],
            "tags": ["web", "prod"],
            "metadata": {"rack": "b2"},
        }),
        service.add({
            "hostname": "web2",
            "owner": "ivan",
            "addresses": [{"address": "10.0.0.2", "network": "lan", "ssh_port": 22}],
            "tags": ["web"],
        }),
        service.add({
            "hostname": "db1",
            "owner": "ops",
            "addresses": [
                {"address": "10.0.1.5", "network": "backend", "ssh_port": 2222},
                {"address": "192.0.2.5"},
            ],
            "tags": ["db", "prod"],
            "metadata": {"rack": "a1", "engine": "postgres"},
        }),
        service.add({"hostname": "reserved3"}),
    ]
