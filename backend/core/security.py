"""CORS origin resolution and security headers applied to every HTTP response."""

import logging
from typing import Callable, List, Optional

from fastapi import Request
from fastapi.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware

from core.config import settings
from core.error_reporting import report_error
from core.errors import internal_error_response

logger = logging.getLogger(__name__)

PRODUCTION_ORIGINS = (
    "https://inv-seg.coderage.pro",
    "https://inventory.coderage.pro",
)

# Docs pages load scripts and styles, so they get no headers.
_DOCS_PREFIXES = ("/docs", "/redoc", "/openapi")


def allowed_origins(app_url: Optional[str] = None, allowed_origin: Optional[str] = None) -> List[str]:
    app_url = settings.app_url if app_url is None else app_url
    allowed_origin = settings.allowed_origin if allowed_origin is None else allowed_origin
    configured = [app_url, *(allowed_origin or "").split(",")]
    origins = [o.strip() for o in configured if o and o.strip()]
    if not origins or "*" in origins:
        return origins
    return origins + [o for o in PRODUCTION_ORIGINS if o not in origins]


def resolve_origin(request_origin: Optional[str], origins: List[str]) -> str:
    """`*` for an open list, the request origin when listed, the literal "null" otherwise."""
    if not origins or "*" in origins:
        return "*"
    if request_origin and request_origin in origins:
        return request_origin
    return "null"


def security_headers(origin: str = "*") -> dict:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "GET, POST, PUT, OPTIONS, DELETE",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
        "Access-Control-Max-Age": "86400",
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none';",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains; preload",
    }


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Answers preflight requests with 204, adds CORS and security headers, and
    turns any exception that escaped the routers into a JSON 500.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        if request.url.path.startswith(_DOCS_PREFIXES):
            return await call_next(request)

        origin = resolve_origin(request.headers.get("Origin"), allowed_origins())

        if request.method == "OPTIONS":
            response = Response(status_code=204)
        else:
            try:
                response = await call_next(request)
            except Exception as e:
                report_error(e, {"method": request.method, "path": request.url.path})
                response = internal_error_response()

        for key, value in security_headers(origin).items():
            response.headers[key] = value
        return response
