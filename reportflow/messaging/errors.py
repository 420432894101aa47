"""Errors raised by the messaging layer."""

from __future__ import annotations


class MessagingError(RuntimeError):
    """Base class for bus and broker failures."""


class NotificationBusError(MessagingError):
    """Raised when a message cannot be handed to the notification bus."""

    @classmethod
    def not_configured(cls) -> NotificationBusError:
        """Return an error for asynchronous submission without a bus."""
        return cls("no notification bus is configured for async submission")

    @classmethod
    def publish_failed(cls, queue_name: str, detail: str) -> NotificationBusError:
        """Return an error for a failed enqueue on *queue_name*."""
        return cls(f"could not publish to {queue_name}: {detail}")


class BrokerConfigurationError(MessagingError):
    """Raised when no Dramatiq broker can be configured."""

    @classmethod
    def missing_redis_url(cls) -> BrokerConfigurationError:
        """Return an error when neither Redis nor the stub broker is allowed."""
        return cls(
            "REPORTFLOW_REDIS_URL must be set, or REPORTFLOW_ALLOW_STUB_BROKER=1 "
            "for local development"
        )
