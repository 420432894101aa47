"""Queue and actor names shared by the orchestrator and the generators.

Producers address messages by these names instead of importing each
other's actors, so the orchestrator and generator processes stay
independently deployable on one broker.
"""

from __future__ import annotations

import typing as typ

from reportflow.reports.models import ArtifactKind

if typ.TYPE_CHECKING:
    import collections.abc as cabc

RENDER_QUEUES: cabc.Mapping[ArtifactKind, str] = {
    ArtifactKind.PDF: "reportflow.render.pdf",
    ArtifactKind.SPREADSHEET: "reportflow.render.spreadsheet",
}
RENDER_ACTORS: cabc.Mapping[ArtifactKind, str] = {
    ArtifactKind.PDF: "render_pdf_job",
    ArtifactKind.SPREADSHEET: "render_spreadsheet_job",
}

CALLBACK_QUEUE = "reportflow.callbacks"
CALLBACK_ACTOR = "reconcile_artifact_job"

MAINTENANCE_QUEUE = "reportflow.maintenance"
SWEEP_ACTOR = "sweep_stalled_deletions_job"

EMAIL_QUEUE = "reportflow.emails"
EMAIL_ACTOR = "send_report_email"
