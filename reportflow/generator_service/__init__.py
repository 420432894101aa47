"""Generator service: renders, stores and serves files of one kind.

The orchestrator reaches a generator over HTTP (:mod:`.api`) for
synchronous submissions and over Dramatiq (:mod:`.actors`) for
asynchronous ones. The actors module is not imported here so HTTP-only
processes do not register consumers.
"""

from reportflow.generator_service.config import GeneratorServiceConfig
from reportflow.generator_service.errors import (
    GeneratedFileNotFoundError,
    GeneratorConfigurationError,
    GeneratorServiceError,
    RenderError,
)
from reportflow.generator_service.renderer import MockRenderer, Renderer
from reportflow.generator_service.service import (
    GeneratorService,
    GeneratorServiceDependencies,
)
from reportflow.generator_service.storage import (
    GeneratedFile,
    init_generator_storage,
)

__all__ = [
    "GeneratedFile",
    "GeneratedFileNotFoundError",
    "GeneratorConfigurationError",
    "GeneratorService",
    "GeneratorServiceConfig",
    "GeneratorServiceDependencies",
    "GeneratorServiceError",
    "MockRenderer",
    "RenderError",
    "Renderer",
    "init_generator_storage",
]
