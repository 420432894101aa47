"""Generator service error types."""

from __future__ import annotations


class GeneratorServiceError(RuntimeError):
    """Base class for generator service failures."""


class GeneratedFileNotFoundError(GeneratorServiceError):
    """Raised when a file id is not known to the generator."""

    def __init__(self, file_id: str) -> None:
        """Record the unknown file id."""
        self.file_id = file_id
        super().__init__(f"generated file {file_id} not found")


class RenderError(GeneratorServiceError):
    """Raised by a renderer that cannot produce output."""

    @classmethod
    def failed(cls, request_id: str, detail: str) -> RenderError:
        """Return an error for a render of *request_id* that failed."""
        return cls(f"render failed for {request_id}: {detail}")


class GeneratorConfigurationError(GeneratorServiceError):
    """Raised when a generator process is missing required settings."""

    @classmethod
    def missing_database_url(cls) -> GeneratorConfigurationError:
        """Return an error for an unset ``REPORTFLOW_GENERATOR_DATABASE_URL``."""
        return cls("REPORTFLOW_GENERATOR_DATABASE_URL is required for render actors")
