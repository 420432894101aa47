"""Connection settings for generator services."""

from __future__ import annotations

import dataclasses as dc

from reportflow.common.env import parse_positive_float, read_str
from reportflow.reports.models import ArtifactKind

_DEFAULT_BASE_URLS = {
    ArtifactKind.PDF: "http://localhost:9001",
    ArtifactKind.SPREADSHEET: "http://localhost:9002",
}


@dc.dataclass(frozen=True, slots=True)
class GeneratorClientConfig:
    """Settings for one :class:`~reportflow.generators.client.GeneratorClient`.

    Attributes
    ----------
    base_url
        Root URL of the generator service.
    timeout_s
        Upper bound on a single RPC, connect and read included.
    user_agent
        Value of the ``User-Agent`` header.

    """

    base_url: str
    timeout_s: float = 30.0
    user_agent: str = "reportflow/0.1"

    @classmethod
    def from_env(cls, kind: ArtifactKind) -> GeneratorClientConfig:
        """Create configuration for the *kind* generator.

        Reads ``REPORTFLOW_<KIND>_GENERATOR_URL`` (for example
        ``REPORTFLOW_PDF_GENERATOR_URL``) and the shared
        ``REPORTFLOW_GENERATOR_TIMEOUT_S``.

        Raises
        ------
        ValueError
            If the timeout is malformed or not positive.

        """
        url_var = f"REPORTFLOW_{kind.value.upper()}_GENERATOR_URL"
        return cls(
            base_url=read_str(url_var, _DEFAULT_BASE_URLS[kind]),
            timeout_s=parse_positive_float("REPORTFLOW_GENERATOR_TIMEOUT_S", 30.0),
        )
