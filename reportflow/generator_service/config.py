"""Generator service settings read from the environment."""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path

from reportflow.common.env import read_optional_str, read_str
from reportflow.reports.models import ArtifactKind


@dc.dataclass(frozen=True, slots=True)
class GeneratorServiceConfig:
    """Where a generator keeps its scratch files and uploads.

    Attributes
    ----------
    kind
        Artifact kind this generator renders.
    bucket
        Blob bucket receiving rendered files; stored locations are
        ``<bucket>/<fileId>``.
    scratch_dir
        Directory for rendered files before upload.
    database_url
        Database holding the generator's file records.

    """

    kind: ArtifactKind
    bucket: str = ""
    scratch_dir: Path = Path("var/scratch")
    database_url: str | None = None

    def __post_init__(self) -> None:
        """Default the bucket to one per kind."""
        if not self.bucket:
            object.__setattr__(self, "bucket", f"reportflow-{self.kind.value}")
        if "/" in self.bucket:
            msg = f"bucket name must not contain '/', got: {self.bucket!r}"
            raise ValueError(msg)

    @classmethod
    def from_env(cls, kind: ArtifactKind | None = None) -> GeneratorServiceConfig:
        """Create configuration from ``REPORTFLOW_GENERATOR_*`` variables.

        Parameters
        ----------
        kind
            Kind to configure. When omitted ``REPORTFLOW_GENERATOR_KIND`` is
            read and defaults to ``pdf``.

        Raises
        ------
        InvalidInputError
            If ``REPORTFLOW_GENERATOR_KIND`` names no known kind.

        """
        resolved = kind or ArtifactKind.parse(
            read_str("REPORTFLOW_GENERATOR_KIND", ArtifactKind.PDF.value)
        )
        return cls(
            kind=resolved,
            bucket=read_str("REPORTFLOW_GENERATOR_BUCKET", ""),
            scratch_dir=Path(
                read_str("REPORTFLOW_GENERATOR_SCRATCH_DIR", "var/scratch")
            ),
            database_url=read_optional_str("REPORTFLOW_GENERATOR_DATABASE_URL"),
        )
