"""Ports through which the orchestrator talks to the messaging layer.

Both protocols are ``runtime_checkable`` so runtimes can verify injected
implementations.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from reportflow.generators.models import RenderRequest
    from reportflow.reports.models import ArtifactKind, ArtifactOutcome, RequestView


@typ.runtime_checkable
class NotificationBus(typ.Protocol):
    """At-least-once channel carrying submissions to the generators."""

    async def publish_submission(self, payload: RenderRequest) -> None:
        """Publish *payload* to every generator.

        Raises
        ------
        NotificationBusError
            If the message could not be handed to the transport.

        """
        ...


@typ.runtime_checkable
class SubmitterNotifier(typ.Protocol):
    """Best-effort notification sent after an artifact reaches a terminal state."""

    async def notify_artifact_reconciled(
        self,
        request: RequestView,
        kind: ArtifactKind,
        outcome: ArtifactOutcome,
    ) -> None:
        """Tell the submitter of *request* that *kind* finished."""
        ...
