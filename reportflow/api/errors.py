"""Falcon error handlers translating domain errors into JSON responses.

Every handler answers with ``{"title": ..., "description": ...}`` and an
HTTP status matching the error kind:

===========================  ======
Error                        Status
===========================  ======
RequestNotFoundError         404
ArtifactNotReadyError        409
InvalidInputError            400
ContentUnavailableError      502
StorageFailureError          503
NotificationBusError         503
===========================  ======

Usage
-----
>>> register_error_handlers(app)

"""

from __future__ import annotations

import typing as typ

import falcon

from reportflow.logging import get_logger, log_exception
from reportflow.messaging.errors import NotificationBusError
from reportflow.orchestrator.errors import ContentUnavailableError
from reportflow.reports.errors import (
    ArtifactNotReadyError,
    InvalidInputError,
    RequestNotFoundError,
    StorageFailureError,
)

if typ.TYPE_CHECKING:
    import falcon.asgi
    from falcon.asgi import Request, Response

__all__ = [
    "handle_artifact_not_ready",
    "handle_content_unavailable",
    "handle_invalid_input",
    "handle_notification_bus_error",
    "handle_request_not_found",
    "handle_storage_failure",
    "register_error_handlers",
]

logger = get_logger(__name__)


async def handle_request_not_found(
    _req: Request,
    resp: Response,
    ex: RequestNotFoundError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``RequestNotFoundError`` to an HTTP 404 JSON response.

    Parameters
    ----------
    _req
        Falcon request (unused).
    resp
        Falcon response whose status and media are set.
    ex
        The lookup miss carrying the request identifier.
    _params
        URI template parameters (unused).

    """
    resp.status = falcon.HTTP_404
    resp.media = {
        "title": "Report request not found",
        "description": str(ex),
    }


async def handle_artifact_not_ready(
    _req: Request,
    resp: Response,
    ex: ArtifactNotReadyError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``ArtifactNotReadyError`` to an HTTP 409 JSON response."""
    resp.status = falcon.HTTP_409
    resp.media = {
        "title": "Artifact not ready",
        "description": str(ex),
        "status": ex.status.value,
    }


async def handle_invalid_input(
    _req: Request,
    resp: Response,
    ex: InvalidInputError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidInputError`` to 400, naming the offending field if known."""
    resp.status = falcon.HTTP_400
    media: dict[str, str] = {
        "title": "Invalid input",
        "description": str(ex),
    }
    if ex.field is not None:
        media["field"] = ex.field
    resp.media = media


async def handle_content_unavailable(
    _req: Request,
    resp: Response,
    ex: ContentUnavailableError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``ContentUnavailableError`` to an HTTP 502 JSON response."""
    resp.status = falcon.HTTP_502
    resp.media = {
        "title": "Artifact content unavailable",
        "description": str(ex),
    }


async def handle_storage_failure(
    _req: Request,
    resp: Response,
    ex: StorageFailureError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``StorageFailureError`` to an HTTP 503 JSON response.

    The underlying database error is logged but not exposed to callers.
    """
    log_exception(logger, f"Storage failure during {ex.operation}", ex)
    resp.status = falcon.HTTP_503
    resp.media = {
        "title": "Storage unavailable",
        "description": f"The report store could not complete {ex.operation}.",
    }


async def handle_notification_bus_error(
    _req: Request,
    resp: Response,
    ex: NotificationBusError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``NotificationBusError`` to an HTTP 503 JSON response."""
    resp.status = falcon.HTTP_503
    resp.media = {
        "title": "Asynchronous submission unavailable",
        "description": str(ex),
    }


def register_error_handlers(app: falcon.asgi.App) -> None:
    """Install every reportflow error handler on *app*."""
    app.add_error_handler(RequestNotFoundError, handle_request_not_found)
    app.add_error_handler(ArtifactNotReadyError, handle_artifact_not_ready)
    app.add_error_handler(InvalidInputError, handle_invalid_input)
    app.add_error_handler(ContentUnavailableError, handle_content_unavailable)
    app.add_error_handler(StorageFailureError, handle_storage_failure)
    app.add_error_handler(NotificationBusError, handle_notification_bus_error)
