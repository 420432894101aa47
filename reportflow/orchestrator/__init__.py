"""Report orchestration service and its runtime.

Public API
----------
ReportOrchestrator
    Submission, reconciliation, retrieval and deletion of report requests.
OrchestratorDependencies
    Frozen dataclass grouping the orchestrator's collaborators.
OrchestratorConfig
    Join deadline and remote delete retry settings.
OrchestratorRuntime
    Explicit owner of the pool, generator clients and blob store.
ContentFetcher
    Protocol resolving a completed artifact to its bytes.

"""

from reportflow.orchestrator.config import OrchestratorConfig
from reportflow.orchestrator.content import (
    BlobStoreContentFetcher,
    ContentFetcher,
    GeneratorContentFetcher,
)
from reportflow.orchestrator.errors import ContentUnavailableError
from reportflow.orchestrator.observability import (
    OrchestratorEventLogger,
    OrchestratorEventType,
)
from reportflow.orchestrator.runtime import (
    OrchestratorRuntime,
    OrchestratorSettings,
    RuntimeNotStartedError,
)
from reportflow.orchestrator.service import (
    OrchestratorDependencies,
    ReportOrchestrator,
)

__all__ = [
    "BlobStoreContentFetcher",
    "ContentFetcher",
    "ContentUnavailableError",
    "GeneratorContentFetcher",
    "OrchestratorConfig",
    "OrchestratorDependencies",
    "OrchestratorEventLogger",
    "OrchestratorEventType",
    "OrchestratorRuntime",
    "OrchestratorSettings",
    "ReportOrchestrator",
    "RuntimeNotStartedError",
]
