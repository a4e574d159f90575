"""
FastAPI application and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager — logging setup, table creation, engine disposal
  2. CORS middleware — allows frontend origins to make cross-origin requests
  3. Exception handlers — maps ledger error kinds to HTTP responses
  4. Router registration — mounts all API endpoint groups

Running locally:
    uvicorn ledger.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import ledger.models  # noqa: F401  (registers tables on Base.metadata)
from ledger.config import settings
from ledger.database import Base, engine
from ledger.exceptions import register_exception_handlers
from ledger.logging_config import setup_logging
from ledger.routers import accounts, transactions, transfers

logger = logging.getLogger(__name__)


def _ensure_sqlite_directory(url: str) -> None:
    # sqlite will not create missing parent directories for its file
    prefix = "sqlite+aiosqlite:///"
    if url.startswith(prefix) and len(url) > len(prefix):
        Path(url[len(prefix):]).parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
      Configures logging and creates all tables if they don't exist. Table
      creation is a convenience for development; a production deployment
      would manage the schema with migrations.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    _ensure_sqlite_directory(settings.DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield
    # --- Shutdown ---
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Personal banking ledger: accounts, deposits, withdrawals and transfers",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(accounts.router, prefix="/accounts", tags=["Accounts"])
app.include_router(transactions.router, prefix="/accounts", tags=["Transactions"])
app.include_router(transfers.router, prefix="/transfers", tags=["Transfers"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe for load balancers and orchestrators."""
    return {"status": "ok", "version": settings.APP_VERSION}
