"""Dramatiq actors run by the orchestrator's worker processes.

``reconcile_artifact_job`` consumes generator callbacks and
``sweep_stalled_deletions_job`` finishes deletions that stalled. Both read
the orchestrator database from ``REPORTFLOW_DATABASE_URL`` and build a
fresh :class:`OrchestratorRuntime` per invocation, so no event-loop bound
resource outlives its ``asyncio.run``.

Usage
-----
Generators publish callbacks by name; operators can also enqueue directly:

>>> reconcile_artifact_job.send(
...     {"requestId": "Req-...", "kind": "pdf", "failed": False, ...}
... )
>>> sweep_stalled_deletions_job.send()

"""

from __future__ import annotations

import asyncio
import os
import typing as typ

import dramatiq
import msgspec

from reportflow.common.database import get_or_create_session_factory
from reportflow.generators.models import CallbackMessage
from reportflow.logging import get_logger, log_info
from reportflow.messaging._broker import ensure_broker_configured
from reportflow.messaging.notifier import DramatiqEmailNotifier
from reportflow.messaging.queues import (
    CALLBACK_ACTOR,
    CALLBACK_QUEUE,
    MAINTENANCE_QUEUE,
    SWEEP_ACTOR,
)
from reportflow.orchestrator.runtime import OrchestratorRuntime, OrchestratorSettings

if typ.TYPE_CHECKING:
    from reportflow.orchestrator.service import ReportOrchestrator
    from reportflow.reports.models import ReconcileResult

logger = get_logger(__name__)

_broker = ensure_broker_configured()


class ActorConfigurationError(RuntimeError):
    """Raised when an actor cannot find the orchestrator database."""

    @classmethod
    def missing_database_url(cls) -> ActorConfigurationError:
        """Return an error for an unset ``REPORTFLOW_DATABASE_URL``."""
        return cls("REPORTFLOW_DATABASE_URL is required for orchestrator actors")


def _database_url() -> str:
    url = os.environ.get("REPORTFLOW_DATABASE_URL", "").strip()
    if not url:
        raise ActorConfigurationError.missing_database_url()
    return url


async def handle_callback(
    orchestrator: ReportOrchestrator, payload: dict[str, typ.Any]
) -> ReconcileResult:
    """Decode a generator callback and reconcile it.

    Callbacks for requests that no longer exist are ignored, so late or
    duplicated deliveries after a delete are harmless.

    Raises
    ------
    msgspec.ValidationError
        If *payload* is not a valid callback message.

    """
    callback = msgspec.convert(payload, CallbackMessage)
    reconciliation = await orchestrator.reconcile(
        callback.request_id,
        callback.kind,
        callback.to_outcome(),
        missing_ok=True,
    )
    return reconciliation.result


def _run_with_orchestrator[T](
    fn: typ.Callable[[ReportOrchestrator], typ.Awaitable[T]],
) -> T:
    """Run *fn* against a freshly started runtime on a new event loop."""
    session_factory = get_or_create_session_factory(_database_url())
    settings = OrchestratorSettings.from_env()

    async def run() -> T:
        async with OrchestratorRuntime(
            settings,
            session_factory,
            notifier=DramatiqEmailNotifier(_broker),
        ) as runtime:
            return await fn(runtime.orchestrator)

    return asyncio.run(run())


@dramatiq.actor(queue_name=CALLBACK_QUEUE, actor_name=CALLBACK_ACTOR)
def reconcile_artifact_job(payload: dict[str, typ.Any]) -> str:
    """Apply a generator callback to its artifact.

    Parameters
    ----------
    payload
        ``CallbackMessage`` in its camelCase wire form.

    Returns
    -------
    str
        The reconciliation result (``applied``, ``duplicate``,
        ``conflict`` or ``request_gone``).

    """
    result = _run_with_orchestrator(
        lambda orchestrator: handle_callback(orchestrator, payload)
    )
    log_info(
        logger,
        "Callback for %s (%s) reconciled: %s",
        payload.get("requestId"),
        payload.get("kind"),
        result,
    )
    return result.value


@dramatiq.actor(queue_name=MAINTENANCE_QUEUE, actor_name=SWEEP_ACTOR)
def sweep_stalled_deletions_job() -> int:
    """Re-drive remote deletes for requests stuck in deletion.

    Returns
    -------
    int
        Number of stalled requests processed.

    """
    processed = _run_with_orchestrator(
        lambda orchestrator: orchestrator.sweep_stalled_deletions()
    )
    log_info(logger, "Deletion sweep processed %d request(s)", processed)
    return processed
