"""Dramatiq actors consuming asynchronous submissions in a generator.

Each actor listens on its kind's render queue, renders the submission with
a freshly started :class:`GeneratorServiceRuntime`, and publishes a
:class:`~reportflow.generators.models.CallbackMessage` to the orchestrator's
callback queue by name, so generator processes never import orchestrator
actors.

Usage
-----
Run one worker per generator kind::

    dramatiq reportflow.generator_service.actors --queues reportflow.render.pdf

"""

from __future__ import annotations

import asyncio
import typing as typ

import dramatiq
import msgspec

from reportflow.common.database import get_or_create_session_factory
from reportflow.generator_service.config import GeneratorServiceConfig
from reportflow.generator_service.errors import GeneratorConfigurationError
from reportflow.generator_service.runtime import GeneratorServiceRuntime
from reportflow.generators.models import CallbackMessage, RenderRequest
from reportflow.logging import get_logger, log_info
from reportflow.messaging._broker import ensure_broker_configured
from reportflow.messaging.publisher import MessagePublisher, build_message
from reportflow.messaging.queues import (
    CALLBACK_ACTOR,
    CALLBACK_QUEUE,
    RENDER_ACTORS,
    RENDER_QUEUES,
)
from reportflow.reports.models import ArtifactKind

if typ.TYPE_CHECKING:
    from reportflow.generator_service.service import GeneratorService

logger = get_logger(__name__)

_broker = ensure_broker_configured()


async def handle_render(
    service: GeneratorService,
    publisher: MessagePublisher,
    payload: dict[str, typ.Any],
) -> CallbackMessage:
    """Render *payload* and publish the resulting callback.

    Raises
    ------
    msgspec.ValidationError
        If *payload* is not a render request.
    NotificationBusError
        If the callback cannot be enqueued.

    """
    request = msgspec.convert(payload, RenderRequest)
    descriptor = await service.create_file(request)
    callback = CallbackMessage.from_descriptor(service.kind, descriptor)
    await publisher.publish(
        [build_message(CALLBACK_QUEUE, CALLBACK_ACTOR, msgspec.to_builtins(callback))]
    )
    return callback


def _render(kind: ArtifactKind, payload: dict[str, typ.Any]) -> CallbackMessage:
    config = GeneratorServiceConfig.from_env(kind)
    if config.database_url is None:
        raise GeneratorConfigurationError.missing_database_url()
    session_factory = get_or_create_session_factory(config.database_url)

    async def run() -> CallbackMessage:
        async with GeneratorServiceRuntime(config, session_factory) as runtime:
            return await handle_render(
                runtime.service, MessagePublisher(_broker), payload
            )

    callback = asyncio.run(run())
    log_info(
        logger,
        "Rendered %s for %s (failed=%s)",
        kind,
        callback.request_id,
        callback.failed,
    )
    return callback


@dramatiq.actor(
    queue_name=RENDER_QUEUES[ArtifactKind.PDF],
    actor_name=RENDER_ACTORS[ArtifactKind.PDF],
)
def render_pdf_job(payload: dict[str, typ.Any]) -> None:
    """Render a PDF for an asynchronous submission."""
    _render(ArtifactKind.PDF, payload)


@dramatiq.actor(
    queue_name=RENDER_QUEUES[ArtifactKind.SPREADSHEET],
    actor_name=RENDER_ACTORS[ArtifactKind.SPREADSHEET],
)
def render_spreadsheet_job(payload: dict[str, typ.Any]) -> None:
    """Render a spreadsheet for an asynchronous submission."""
    _render(ArtifactKind.SPREADSHEET, payload)
