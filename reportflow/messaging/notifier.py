"""Submitter notifications sent after an artifact is reconciled.

Delivery of the email itself happens outside reportflow: the
:class:`DramatiqEmailNotifier` only enqueues an :class:`EmailMessage` on
the email queue.
"""

from __future__ import annotations

import typing as typ

import msgspec

from reportflow.logging import get_logger, log_info
from reportflow.messaging.publisher import MessagePublisher, build_message
from reportflow.messaging.queues import EMAIL_ACTOR, EMAIL_QUEUE
from reportflow.reports.models import SuccessOutcome

if typ.TYPE_CHECKING:
    import dramatiq

    from reportflow.reports.models import ArtifactKind, ArtifactOutcome, RequestView

logger = get_logger(__name__)


class EmailMessage(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Email request consumed by the external mail service."""

    to: str
    subject: str
    body: str
    request_id: str
    kind: str


def build_email(
    request: RequestView, kind: ArtifactKind, outcome: ArtifactOutcome
) -> EmailMessage:
    """Compose the notification for *kind* of *request* finishing."""
    if isinstance(outcome, SuccessOutcome):
        subject = f"Your {kind.value} report is ready"
        body = (
            f"The {kind.value} report for request {request.id} "
            f"({request.description}) has been generated."
        )
    else:
        subject = f"Your {kind.value} report failed"
        body = (
            f"The {kind.value} report for request {request.id} "
            f"({request.description}) could not be generated: {outcome.reason}"
        )
    return EmailMessage(
        to=request.submitter,
        subject=subject,
        body=body,
        request_id=request.id,
        kind=kind.value,
    )


class DramatiqEmailNotifier:
    """Enqueue an email to the submitter on the email queue."""

    def __init__(self, broker: dramatiq.Broker) -> None:
        """Publish through *broker*."""
        self._publisher = MessagePublisher(broker)

    async def notify_artifact_reconciled(
        self,
        request: RequestView,
        kind: ArtifactKind,
        outcome: ArtifactOutcome,
    ) -> None:
        """Enqueue the email for *request*."""
        email = build_email(request, kind, outcome)
        await self._publisher.publish(
            [build_message(EMAIL_QUEUE, EMAIL_ACTOR, msgspec.to_builtins(email))]
        )


class LoggingNotifier:
    """Log notifications instead of sending them; for local runs."""

    async def notify_artifact_reconciled(
        self,
        request: RequestView,
        kind: ArtifactKind,
        outcome: ArtifactOutcome,
    ) -> None:
        """Log the email that would have been sent."""
        email = build_email(request, kind, outcome)
        log_info(logger, "Notify %s: %s", email.to, email.subject)
