"""Dramatiq-backed notification bus for asynchronous submissions.

One submission is fanned out as one message per generator queue, which
gives topic semantics on top of Dramatiq's point-to-point queues.
"""

from __future__ import annotations

import typing as typ

import msgspec

from reportflow.logging import get_logger, log_info
from reportflow.messaging.publisher import MessagePublisher, build_message
from reportflow.messaging.queues import RENDER_ACTORS, RENDER_QUEUES
from reportflow.reports.models import ArtifactKind

if typ.TYPE_CHECKING:
    import dramatiq

    from reportflow.generators.models import RenderRequest

logger = get_logger(__name__)


class DramatiqNotificationBus:
    """Publish submissions to every generator's render queue."""

    def __init__(self, broker: dramatiq.Broker) -> None:
        """Publish through *broker*."""
        self._publisher = MessagePublisher(broker)

    async def publish_submission(self, payload: RenderRequest) -> None:
        """Enqueue *payload* once per generator kind.

        Raises
        ------
        NotificationBusError
            If the broker rejects a message.

        """
        body = msgspec.to_builtins(payload)
        await self._publisher.publish(
            build_message(RENDER_QUEUES[kind], RENDER_ACTORS[kind], body)
            for kind in ArtifactKind
        )
        log_info(
            logger,
            "Published submission %s to %d generator queues",
            payload.request_id,
            len(ArtifactKind),
        )
