"""Report request resources.

Routes
------
``POST /reports/sync``
    Submit and wait for both artifacts; 200 with the request view.
``POST /reports/async``
    Submit through the notification bus; 202 with the pending view.
``GET /reports``
    List visible requests, newest first.
``GET /reports/{request_id}``
    Fetch one request.
``DELETE /reports/{request_id}``
    Start the two-phase delete; 202.
``GET /reports/{request_id}/artifacts/{kind}/content``
    Stream the bytes of a completed artifact.

"""

from __future__ import annotations

import typing as typ

import falcon
import msgspec

from reportflow.reports.errors import InvalidInputError
from reportflow.reports.models import ArtifactKind, ReportSubmission

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from reportflow.orchestrator.service import ReportOrchestrator
    from reportflow.reports.models import RequestView

__all__ = [
    "ArtifactContentResource",
    "AsyncSubmissionResource",
    "OrchestratorProvider",
    "ReportCollectionResource",
    "ReportItemResource",
    "SyncSubmissionResource",
]

type OrchestratorProvider = typ.Callable[[], ReportOrchestrator]


async def _read_submission(req: Request) -> ReportSubmission:
    """Decode and validate the JSON body of a submission.

    Raises
    ------
    InvalidInputError
        If the body is not a valid submission.

    """
    raw = await req.stream.read()
    if not raw:
        msg = "request body is required"
        raise InvalidInputError(msg)
    try:
        submission = msgspec.json.decode(raw, type=ReportSubmission)
    except msgspec.ValidationError as exc:
        raise InvalidInputError(str(exc)) from exc
    except msgspec.DecodeError as exc:
        msg = f"request body is not valid JSON: {exc}"
        raise InvalidInputError(msg) from exc
    return submission.validated()


def _serialize(view: RequestView) -> dict[str, typ.Any]:
    return view.to_payload()


class _OrchestratorResource:
    """Resolve the orchestrator lazily so runtimes may start after routing."""

    def __init__(self, provider: OrchestratorProvider) -> None:
        self._provider = provider

    @property
    def _orchestrator(self) -> ReportOrchestrator:
        return self._provider()


class SyncSubmissionResource(_OrchestratorResource):
    """``POST /reports/sync``."""

    async def on_post(self, req: Request, resp: Response) -> None:
        """Render both artifacts before answering.

        Parameters
        ----------
        req
            Request carrying a JSON submission.
        resp
            Response receiving the reconciled request view.

        """
        submission = await _read_submission(req)
        view = await self._orchestrator.submit_sync(submission)
        resp.media = _serialize(view)
        resp.status = falcon.HTTP_200


class AsyncSubmissionResource(_OrchestratorResource):
    """``POST /reports/async``."""

    async def on_post(self, req: Request, resp: Response) -> None:
        """Accept the submission and answer before rendering."""
        submission = await _read_submission(req)
        view = await self._orchestrator.submit_async(submission)
        resp.media = _serialize(view)
        resp.status = falcon.HTTP_202


class ReportCollectionResource(_OrchestratorResource):
    """``GET /reports``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """List every visible request."""
        views = await self._orchestrator.list_requests()
        resp.media = {"reports": [_serialize(view) for view in views]}
        resp.status = falcon.HTTP_200


class ReportItemResource(_OrchestratorResource):
    """``GET`` and ``DELETE /reports/{request_id}``."""

    async def on_get(self, _req: Request, resp: Response, *, request_id: str) -> None:
        """Return one request view."""
        view = await self._orchestrator.get_request(request_id)
        resp.media = _serialize(view)
        resp.status = falcon.HTTP_200

    async def on_delete(
        self, _req: Request, resp: Response, *, request_id: str
    ) -> None:
        """Accept the request for deletion.

        The request is hidden immediately; generator copies are released in
        the background, hence 202 rather than 204.
        """
        await self._orchestrator.delete(request_id)
        resp.media = {"id": request_id, "deleting": True}
        resp.status = falcon.HTTP_202


class ArtifactContentResource(_OrchestratorResource):
    """``GET /reports/{request_id}/artifacts/{kind}/content``."""

    async def on_get(
        self,
        _req: Request,
        resp: Response,
        *,
        request_id: str,
        kind: str,
    ) -> None:
        """Stream the artifact bytes; Falcon closes the stream afterwards."""
        artifact_kind = ArtifactKind.parse(kind)
        stream = await self._orchestrator.get_file_body(request_id, artifact_kind)
        resp.content_type = stream.content_type
        if stream.content_length is not None:
            resp.content_length = stream.content_length
        resp.downloadable_as = f"{request_id}-{artifact_kind.value}"
        resp.stream = stream
        resp.status = falcon.HTTP_200
