"""Liveness and readiness probes for the reportflow HTTP surfaces."""

from reportflow.api.health.resources import HealthResource, ReadyResource

__all__ = ["HealthResource", "ReadyResource"]
