"""Notification bus, submitter notifications and orchestrator actors.

The Dramatiq actors live in :mod:`reportflow.messaging.actors` and are not
imported here, so producers do not register consumers they never run.
"""

from reportflow.messaging._broker import ensure_broker_configured
from reportflow.messaging.bus import DramatiqNotificationBus
from reportflow.messaging.errors import (
    BrokerConfigurationError,
    MessagingError,
    NotificationBusError,
)
from reportflow.messaging.notifier import (
    DramatiqEmailNotifier,
    EmailMessage,
    LoggingNotifier,
)
from reportflow.messaging.protocols import NotificationBus, SubmitterNotifier

__all__ = [
    "BrokerConfigurationError",
    "DramatiqEmailNotifier",
    "DramatiqNotificationBus",
    "EmailMessage",
    "LoggingNotifier",
    "MessagingError",
    "NotificationBus",
    "NotificationBusError",
    "SubmitterNotifier",
    "ensure_broker_configured",
]
