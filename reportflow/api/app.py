"""Application factory for the reportflow Falcon ASGI application.

``create_app()`` always registers the health probes and error handlers.
Report endpoints are added when an orchestrator is supplied directly or an
:class:`~reportflow.orchestrator.runtime.OrchestratorRuntime` is supplied to
be started by the ASGI lifespan.

Usage
-----
Create a health-only app::

    app = create_app()

Create a full app whose runtime starts with the server::

    from reportflow.api.app import AppDependencies, create_app

    runtime = OrchestratorRuntime(settings, session_factory, bus=bus)
    app = create_app(AppDependencies(runtime=runtime))

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from reportflow.api.errors import register_error_handlers
from reportflow.api.health.resources import HealthResource, ReadyResource

if typ.TYPE_CHECKING:
    from reportflow.api.reports.resources import OrchestratorProvider
    from reportflow.orchestrator.runtime import OrchestratorRuntime
    from reportflow.orchestrator.service import ReportOrchestrator

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    orchestrator
        Already running orchestrator, typically used by tests.
    runtime
        Runtime started on ``lifespan.startup`` and closed on
        ``lifespan.shutdown``. Ignored when ``orchestrator`` is set.

    """

    orchestrator: ReportOrchestrator | None = None
    runtime: OrchestratorRuntime | None = None


def _orchestrator_provider(
    dependencies: AppDependencies | None,
) -> OrchestratorProvider | None:
    """Return a callable resolving the orchestrator, or ``None``."""
    if dependencies is None:
        return None
    orchestrator = dependencies.orchestrator
    if orchestrator is not None:
        return lambda: orchestrator
    runtime = dependencies.runtime
    if runtime is not None:
        return lambda: runtime.orchestrator
    return None


def _add_report_routes(app: falcon.asgi.App, provider: OrchestratorProvider) -> None:
    from reportflow.api.reports.resources import (
        ArtifactContentResource,
        AsyncSubmissionResource,
        ReportCollectionResource,
        ReportItemResource,
        SyncSubmissionResource,
    )

    app.add_route("/reports", ReportCollectionResource(provider))
    # Literal segments take precedence over {request_id} in the router
    app.add_route("/reports/sync", SyncSubmissionResource(provider))
    app.add_route("/reports/async", AsyncSubmissionResource(provider))
    app.add_route("/reports/{request_id}", ReportItemResource(provider))
    app.add_route(
        "/reports/{request_id}/artifacts/{kind}/content",
        ArtifactContentResource(provider),
    )


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies. When ``None``, or when neither
        an orchestrator nor a runtime is given, only ``/health`` and
        ``/ready`` are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    middleware: list[object] = []
    runtime = None
    if dependencies is not None and dependencies.orchestrator is None:
        runtime = dependencies.runtime
    if runtime is not None:
        from reportflow.api.middleware import RuntimeLifespan

        middleware.append(RuntimeLifespan(runtime))

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    if runtime is not None:
        started = runtime
        app.add_route("/ready", ReadyResource(lambda: started.started))
    else:
        app.add_route("/ready", ReadyResource())

    provider = _orchestrator_provider(dependencies)
    if provider is not None:
        _add_report_routes(app, provider)

    register_error_handlers(app)
    return app
