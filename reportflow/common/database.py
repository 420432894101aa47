"""Per-URL session factories for Dramatiq actor processes.

Actors run on several worker threads and each invocation drives its own
event loop through ``asyncio.run``. Engines therefore use ``NullPool`` so
no connection outlives the loop that opened it; only the engine and
session factory objects are shared.
"""

from __future__ import annotations

import threading

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

type SessionFactory = async_sessionmaker[AsyncSession]

_factories: dict[str, SessionFactory] = {}
_factories_lock = threading.Lock()


def get_or_create_session_factory(database_url: str) -> SessionFactory:
    """Return the session factory for *database_url*, building it once.

    Concurrent first calls for the same URL share a single engine.
    """
    with _factories_lock:
        factory = _factories.get(database_url)
        if factory is None:
            engine = create_async_engine(database_url, poolclass=NullPool)
            factory = async_sessionmaker(engine, expire_on_commit=False)
            _factories[database_url] = factory
        return factory
