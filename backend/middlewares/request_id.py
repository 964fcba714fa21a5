"""Middleware Starlette pour ajouter et propager un identifiant de requête.

L'identifiant vient de l'en-tête `X-Request-ID` s'il est présentable, sinon il est généré.
Il est exposé via `request.state.request_id` (trace_id des enveloppes d'erreur), lié au
contexte structlog le temps de la requête et renvoyé dans la réponse.
"""

import re
from collections.abc import Callable
from uuid import uuid4

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.types import ASGIApp

_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attribue un identifiant à chaque requête et le lie aux logs."""

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID") -> None:
        super().__init__(app)
        self.header_name = header_name

    def _request_id(self, request: Request) -> str:
        incoming = request.headers.get(self.header_name, "")
        if _SAFE_REQUEST_ID.match(incoming):
            return incoming
        return uuid4().hex

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = self._request_id(request)
        request.state.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=request.method, path=request.url.path
        )
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()
        response.headers[self.header_name] = request_id
        return response
