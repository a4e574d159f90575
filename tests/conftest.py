"""
Test fixtures for the ledger test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - sql_service: AccountService over the SQL stores, one SAVEPOINT per operation
  - memory_service: AccountService over the in-memory stores, no scope
  - service: Parametrized over both, for properties every store must honor
  - client: Async HTTP test client with the test database injected

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database — no state leaks between tests.
  - The test engine gets the same SAVEPOINT recipe as the real one, so
    service tests exercise the real atomicity path.
  - We override FastAPI's get_db dependency to inject our test engine,
    so the application code works exactly as it does in production.
  - The caller's identity is just the X-User-Id header, so API tests pass
    it per request instead of logging in.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import ledger.models  # noqa: F401
from ledger.database import Base, enable_sqlite_savepoints, get_db
from ledger.main import app
from ledger.services.account_service import AccountService
from ledger.stores.memory import InMemoryAccountStore, InMemoryTransactionStore
from ledger.stores.sql import SqlAccountStore, SqlTransactionStore


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()

@pytest_asyncio.fixture
async def db_session(db_engine):
    """Provide an async session bound to the test engine."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session

@pytest.fixture
def sql_service(db_session):
    return AccountService(
        SqlAccountStore(db_session),
        SqlTransactionStore(db_session),
        scope=db_session.begin_nested,
    )

@pytest.fixture
def memory_service():
    return AccountService(InMemoryAccountStore(), InMemoryTransactionStore())

@pytest.fixture(params=["sql", "memory"])
def service(request, sql_service, memory_service):
    """The same service contract over both store implementations."""
    return sql_service if request.param == "sql" else memory_service

@pytest_asyncio.fixture
async def client(db_engine):
    """
    Async HTTP test client with the test database injected.

    This overrides the get_db dependency so all requests hit the
    in-memory test database instead of the real one.
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
    app.dependency_overrides.clear()
