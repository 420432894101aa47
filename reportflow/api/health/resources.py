"""Health probe resources for liveness and readiness checks.

``/health`` answers as long as the process serves requests. ``/ready``
additionally consults an optional readiness callable, typically "has the
runtime started", and answers 503 until it returns ``True``.

Usage
-----
>>> app.add_route("/health", HealthResource())
>>> app.add_route("/ready", ReadyResource(lambda: runtime.started))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe gated on an optional callable.

    Parameters
    ----------
    is_ready
        Returns ``True`` once the service can accept traffic. When omitted
        the service is always ready.

    """

    def __init__(self, is_ready: typ.Callable[[], bool] | None = None) -> None:
        """Store the readiness check."""
        self._is_ready = is_ready

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response populated with readiness status.

        """
        if self._is_ready is not None and not self._is_ready():
            resp.media = {"status": "starting"}
            resp.status = HTTPStatus.SERVICE_UNAVAILABLE
            return
        resp.media = {"status": "ready"}
        resp.status = HTTPStatus.OK
