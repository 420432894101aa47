"""Clients and wire structures for the PDF and spreadsheet generators."""

from reportflow.generators.client import GeneratorClient
from reportflow.generators.config import GeneratorClientConfig
from reportflow.generators.errors import (
    GeneratorError,
    GeneratorResponseError,
    GeneratorUnreachableError,
)
from reportflow.generators.models import (
    GENERATOR_FAILED_REASON,
    CallbackMessage,
    GeneratorDescriptor,
    RenderRequest,
)

__all__ = [
    "GENERATOR_FAILED_REASON",
    "CallbackMessage",
    "GeneratorClient",
    "GeneratorClientConfig",
    "GeneratorDescriptor",
    "GeneratorError",
    "GeneratorResponseError",
    "GeneratorUnreachableError",
    "RenderRequest",
]
