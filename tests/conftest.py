"""Database fixtures shared by unit and feature tests.

Tests run against a SQLite file per test by default. Set
``REPORTFLOW_TEST_DB=pglite`` to run them against a throwaway Postgres
started by py-pglite instead; if it cannot start, SQLite is used.
"""

from __future__ import annotations

import contextlib
import logging
import os
import socket
import typing as typ

import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from reportflow.generator_service.storage import init_generator_storage
from reportflow.reports.storage import init_report_storage

if typ.TYPE_CHECKING:
    from pathlib import Path

try:
    from py_pglite import PGliteConfig, PGliteManager

    _PGLITE_AVAILABLE = True
except ImportError:  # pragma: no cover - optional dependency
    _PGLITE_AVAILABLE = False

logger = logging.getLogger(__name__)


def sqlite_url(tmp_path: Path, name: str = "reportflow_test.db") -> str:
    """Return an aiosqlite URL for a database file below *tmp_path*."""
    return f"sqlite+aiosqlite:///{tmp_path / name}"


async def init_all_storage(engine: AsyncEngine) -> None:
    """Create the orchestrator and generator tables on one database."""
    await init_report_storage(engine)
    await init_generator_storage(engine)


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@contextlib.asynccontextmanager
async def _sqlite_engine(tmp_path: Path) -> typ.AsyncIterator[AsyncEngine]:
    engine = create_async_engine(sqlite_url(tmp_path))
    try:
        await init_all_storage(engine)
        yield engine
    finally:
        await engine.dispose()


@contextlib.asynccontextmanager
async def _pglite_engine(tmp_path: Path) -> typ.AsyncIterator[AsyncEngine]:
    config = PGliteConfig(
        use_tcp=True,
        tcp_host="127.0.0.1",
        tcp_port=_free_port(),
        work_dir=tmp_path / "pglite",
    )
    with PGliteManager(config):
        engine = create_async_engine(
            "postgresql+asyncpg://postgres:postgres@"
            f"{config.tcp_host}:{config.tcp_port}/postgres"
        )
        try:
            await init_all_storage(engine)
            yield engine
        finally:
            await engine.dispose()


async def _enter_engine(
    stack: contextlib.AsyncExitStack, tmp_path: Path
) -> AsyncEngine:
    """Open the requested database, falling back to SQLite."""
    wants_pglite = os.getenv("REPORTFLOW_TEST_DB", "sqlite").lower() == "pglite"
    if wants_pglite and _PGLITE_AVAILABLE:
        attempt = contextlib.AsyncExitStack()
        try:
            engine = await attempt.enter_async_context(_pglite_engine(tmp_path))
        except Exception as exc:  # noqa: BLE001 - any start-up failure falls back
            logger.warning("py-pglite unavailable, using SQLite: %s", exc)
            await attempt.aclose()
        else:
            stack.push_async_exit(attempt.pop_all())
            return engine
    return await stack.enter_async_context(_sqlite_engine(tmp_path))


@pytest_asyncio.fixture
async def session_factory(
    tmp_path: Path,
) -> typ.AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Yield a session factory over a fresh database with every table."""
    async with contextlib.AsyncExitStack() as stack:
        engine = await _enter_engine(stack, tmp_path)
        yield async_sessionmaker(engine, expire_on_commit=False)
