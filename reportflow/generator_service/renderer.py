"""Renderers turning a render request into a file on disk.

Real document pipelines plug in through the :class:`Renderer` protocol.
:class:`MockRenderer` writes small deterministic placeholders so the whole
flow can run without one.
"""

from __future__ import annotations

import asyncio
import typing as typ

from reportflow.reports.models import ArtifactKind

if typ.TYPE_CHECKING:
    from pathlib import Path

    from reportflow.generators.models import RenderRequest


@typ.runtime_checkable
class Renderer(typ.Protocol):
    """Render a request into *destination*."""

    suffix: str

    async def render(self, request: RenderRequest, destination: Path) -> None:
        """Write the rendered document to *destination*.

        Raises
        ------
        RenderError
            If the document cannot be produced.

        """
        ...


def _table_lines(request: RenderRequest, separator: str) -> list[str]:
    lines = [separator.join(request.headers)] if request.headers else []
    lines.extend(separator.join(row) for row in request.data)
    return lines


def _pdf_placeholder(request: RenderRequest) -> bytes:
    body = [
        "%PDF-1.4",
        f"% reportflow placeholder for {request.request_id}",
        f"% submitter: {request.submitter}",
        f"% description: {request.description}",
        *(f"% {line}" for line in _table_lines(request, " | ")),
        "%%EOF",
    ]
    return ("\n".join(body) + "\n").encode()


def _spreadsheet_placeholder(request: RenderRequest) -> bytes:
    body = [f"# {request.description}", *_table_lines(request, "\t")]
    return ("\n".join(body) + "\n").encode()


class MockRenderer:
    """Deterministic placeholder output for one artifact kind."""

    def __init__(self, kind: ArtifactKind) -> None:
        """Render documents of *kind*."""
        self._kind = kind
        self.suffix = "pdf" if kind is ArtifactKind.PDF else "tsv"

    async def render(self, request: RenderRequest, destination: Path) -> None:
        """Write the placeholder for *request* to *destination*."""
        if self._kind is ArtifactKind.PDF:
            payload = _pdf_placeholder(request)
        else:
            payload = _spreadsheet_placeholder(request)
        await asyncio.to_thread(destination.write_bytes, payload)
