"""Process entrypoints: the orchestrator ASGI factory and Granian boot.

``reportflow.runtime:create_app`` is the factory Granian loads for the
orchestrator. With ``REPORTFLOW_DATABASE_URL`` set it wires an
:class:`~reportflow.orchestrator.runtime.OrchestratorRuntime` (Dramatiq bus
and email notifier included) into the Falcon app, to be started by the ASGI
lifespan. Without it only the health probes are served, which keeps the
container bootable before its database exists.

:func:`serve` is shared with :mod:`reportflow.generator_service.runtime`.

Environment
-----------
``REPORTFLOW_HOST`` / ``REPORTFLOW_PORT``
    Bind address and port (``0.0.0.0`` and ``8080``).
``REPORTFLOW_LOG_LEVEL``
    femtologging level, ``INFO`` when unset or unknown.
``REPORTFLOW_DATABASE_URL``
    Orchestrator database; enables the report routes.

The remaining ``REPORTFLOW_*`` variables belong to the settings classes of
the orchestrator, worker pool, generator clients and blob store.
"""

from __future__ import annotations

import os
import typing as typ

from reportflow.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["create_app", "main", "parse_port", "serve"]

logger = get_logger(__name__)

_PORT_RANGE = range(1, 65536)


def parse_port(port_str: str, *, variable: str = "REPORTFLOW_PORT") -> int:
    """Return *port_str* as a TCP port.

    Raises
    ------
    SystemExit
        With status 1 when the value is not an integer in 1-65535; the
        reason is logged against *variable*.

    """
    try:
        port = int(port_str)
    except ValueError:
        port = 0
    if port not in _PORT_RANGE:
        log_error(
            logger,
            "Invalid %s value: %r (must be %d-%d)",
            variable,
            port_str,
            _PORT_RANGE.start,
            _PORT_RANGE.stop - 1,
        )
        raise SystemExit(1)
    return port


def serve(
    factory: str,
    *,
    host_variable: str,
    port_variable: str,
    default_port: int,
) -> None:
    """Configure logging and run the ASGI app factory *factory* on Granian.

    Parameters
    ----------
    factory
        ``module:callable`` path of a zero-argument app factory.
    host_variable, port_variable
        Environment variables holding the bind address and port.
    default_port
        Port used when *port_variable* is unset.

    """
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get(host_variable, "0.0.0.0")  # noqa: S104 - container bind
    port = parse_port(
        os.environ.get(port_variable, str(default_port)), variable=port_variable
    )
    raw_level = os.environ.get("REPORTFLOW_LOG_LEVEL", "INFO")
    level, rejected = configure_logging(raw_level)
    if rejected:
        log_warning(
            logger, "Unknown REPORTFLOW_LOG_LEVEL %r, using %s", raw_level, level
        )
    log_info(logger, "Serving %s on %s:%d (log_level=%s)", factory, host, port, level)

    Granian(
        factory,
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    ).serve()


def create_app() -> falcon.asgi.App:
    """Build the orchestrator's Falcon app from the environment.

    Returns
    -------
    falcon.asgi.App
        Report routes backed by a lifespan-managed runtime when
        ``REPORTFLOW_DATABASE_URL`` is set, health probes only otherwise.

    """
    from reportflow.api.app import AppDependencies
    from reportflow.api.app import create_app as create_api_app

    database_url = os.environ.get("REPORTFLOW_DATABASE_URL")
    if database_url is None:
        return create_api_app()

    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from reportflow.messaging import (
        DramatiqEmailNotifier,
        DramatiqNotificationBus,
        ensure_broker_configured,
    )
    from reportflow.orchestrator.runtime import (
        OrchestratorRuntime,
        OrchestratorSettings,
    )

    session_factory = async_sessionmaker(
        create_async_engine(database_url), expire_on_commit=False
    )
    broker = ensure_broker_configured()
    return create_api_app(
        AppDependencies(
            runtime=OrchestratorRuntime(
                OrchestratorSettings.from_env(),
                session_factory,
                bus=DramatiqNotificationBus(broker),
                notifier=DramatiqEmailNotifier(broker),
            )
        )
    )


def main() -> None:
    """Serve the orchestrator."""
    serve(
        "reportflow.runtime:create_app",
        host_variable="REPORTFLOW_HOST",
        port_variable="REPORTFLOW_PORT",
        default_port=8080,
    )


if __name__ == "__main__":
    main()
