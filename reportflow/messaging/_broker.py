"""Broker configuration for reportflow Dramatiq actors and producers.

The broker is chosen once per process: Redis when ``REPORTFLOW_REDIS_URL``
is set, a ``StubBroker`` under pytest or when
``REPORTFLOW_ALLOW_STUB_BROKER`` is truthy, and a configuration error
otherwise.
"""

from __future__ import annotations

import os
import sys
import threading

import dramatiq
from dramatiq.brokers.stub import StubBroker

from reportflow.common.env import parse_flag, read_optional_str
from reportflow.logging import get_logger, log_info
from reportflow.messaging.errors import BrokerConfigurationError

logger = get_logger(__name__)

_BROKER_LOCK = threading.Lock()
_configured_broker: dramatiq.Broker | None = None


def _is_running_tests() -> bool:
    """Return True when pytest has been imported or has set its env vars."""
    return "pytest" in sys.modules or any(
        key in os.environ
        for key in ["PYTEST_CURRENT_TEST", "PYTEST_XDIST_WORKER", "PYTEST_ADDOPTS"]
    )


def _should_use_stub_broker() -> bool:
    return parse_flag("REPORTFLOW_ALLOW_STUB_BROKER") or _is_running_tests()


def _build_broker() -> dramatiq.Broker:
    redis_url = read_optional_str("REPORTFLOW_REDIS_URL")
    if redis_url is not None:
        from dramatiq.brokers.redis import RedisBroker

        log_info(logger, "Using Redis broker for reportflow queues")
        return RedisBroker(url=redis_url)
    if _should_use_stub_broker():
        log_info(logger, "Using stub broker for reportflow queues")
        return StubBroker()
    raise BrokerConfigurationError.missing_redis_url()


def ensure_broker_configured() -> dramatiq.Broker:
    """Install the process broker on first use and return it.

    Thread-safe and idempotent: Dramatiq worker threads and producers may
    call it concurrently.

    Raises
    ------
    BrokerConfigurationError
        If neither Redis nor the stub broker may be used.

    """
    global _configured_broker  # noqa: PLW0603

    if _configured_broker is not None:
        return _configured_broker

    with _BROKER_LOCK:
        if _configured_broker is None:
            broker = _build_broker()
            dramatiq.set_broker(broker)
            _configured_broker = broker
        return _configured_broker
