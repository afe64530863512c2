"""Shared-secret check for the internal hook and feed routes."""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.config import settings

_EXEMPT_PATHS = ("/healthz",)


class ApiKeyMiddleware(BaseHTTPMiddleware):
    """Require ``X-API-Key`` to match ``settings.api_key``.

    The check is skipped entirely when no key is configured, and always
    for the health probe.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not settings.api_key or request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        if request.headers.get("X-API-Key") != settings.api_key:
            return JSONResponse(
                status_code=401, content={"detail": "Invalid or missing API key"}
            )
        return await call_next(request)
