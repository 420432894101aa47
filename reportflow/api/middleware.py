"""ASGI lifespan middleware tying an orchestrator runtime to the app.

The runtime starts on the ASGI ``lifespan.startup`` event and is closed on
``lifespan.shutdown``, so the worker pool, generator clients and blob store
live exactly as long as the server process.

Usage
-----
>>> app = falcon.asgi.App(middleware=[RuntimeLifespan(runtime)])

"""

from __future__ import annotations

import typing as typ

from reportflow.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    from reportflow.orchestrator.runtime import OrchestratorRuntime

__all__ = ["RuntimeLifespan"]

logger = get_logger(__name__)


class _Startable(typ.Protocol):
    async def start(self) -> object: ...

    async def aclose(self) -> None: ...


class RuntimeLifespan:
    """Falcon middleware starting and stopping a runtime with the server.

    Parameters
    ----------
    runtime
        Any object with async ``start()`` and ``aclose()`` methods, usually
        an :class:`~reportflow.orchestrator.runtime.OrchestratorRuntime`.

    """

    def __init__(self, runtime: OrchestratorRuntime | _Startable) -> None:
        """Remember the runtime to manage."""
        self._runtime = runtime

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Start the runtime before the first request is served."""
        await self._runtime.start()
        log_info(logger, "Runtime started for ASGI lifespan")

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Release the runtime once the server stops."""
        await self._runtime.aclose()
        log_info(logger, "Runtime closed for ASGI lifespan")
