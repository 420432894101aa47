"""Report request orchestration across independent artifact generators.

A report request is rendered into two artifacts, a PDF and a spreadsheet,
by two separately owned generator services. ``reportflow`` persists the
request, drives both generators either by blocking fan-out or through
notification-bus callbacks, reconciles each artifact's status, and serves
retrieval and deletion.

Public API
----------
ReportOrchestrator
    Core service driving submission, reconciliation, retrieval and deletion.
OrchestratorRuntime
    Owner of the worker pool, HTTP clients and blob store lifecycle.
ReportSubmission
    Caller-supplied report request payload.

"""

from reportflow.orchestrator import (
    OrchestratorConfig,
    OrchestratorDependencies,
    OrchestratorRuntime,
    ReportOrchestrator,
)
from reportflow.reports import ArtifactKind, ArtifactStatus, ReportSubmission

__all__ = [
    "ArtifactKind",
    "ArtifactStatus",
    "OrchestratorConfig",
    "OrchestratorDependencies",
    "OrchestratorRuntime",
    "ReportOrchestrator",
    "ReportSubmission",
]
