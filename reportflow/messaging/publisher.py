"""Enqueue named Dramatiq messages without importing the consuming actor."""

from __future__ import annotations

import asyncio
import typing as typ

import dramatiq
from dramatiq.errors import DramatiqError

from reportflow.messaging.errors import NotificationBusError

if typ.TYPE_CHECKING:
    import collections.abc as cabc


def build_message(
    queue_name: str,
    actor_name: str,
    *args: typ.Any,  # noqa: ANN401
    **kwargs: typ.Any,  # noqa: ANN401
) -> dramatiq.Message[typ.Any]:
    """Return a message for *actor_name* on *queue_name*."""
    return dramatiq.Message(
        queue_name=queue_name,
        actor_name=actor_name,
        args=args,
        kwargs=kwargs,
        options={},
    )


class MessagePublisher:
    """Hand messages to a Dramatiq broker from async code.

    Enqueueing may block on network I/O (Redis), so it runs in a worker
    thread.
    """

    def __init__(self, broker: dramatiq.Broker) -> None:
        """Publish through *broker*."""
        self._broker = broker

    @property
    def broker(self) -> dramatiq.Broker:
        """Return the broker messages are enqueued on."""
        return self._broker

    async def publish(self, messages: cabc.Iterable[dramatiq.Message[typ.Any]]) -> None:
        """Enqueue *messages* in order.

        Raises
        ------
        NotificationBusError
            If the broker rejects a message.

        """
        await asyncio.to_thread(self._enqueue_all, list(messages))

    def _enqueue_all(self, messages: list[dramatiq.Message[typ.Any]]) -> None:
        for message in messages:
            try:
                self._broker.declare_queue(message.queue_name)
                self._broker.enqueue(message)
            except DramatiqError as exc:
                raise NotificationBusError.publish_failed(
                    message.queue_name, str(exc)
                ) from exc
