from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


def error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(content={"error": message, **extra}, status_code=status_code)


def internal_error_response() -> JSONResponse:
    return error_response(500, "Internal server error", timestamp=datetime.now(timezone.utc).isoformat())


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg", "Invalid request"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path", "form"))
    return f"{field}: {message}" if field else message


def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        # dict details carry extra fields such as errorType
        if isinstance(exc.detail, dict):
            content = dict(exc.detail)
        else:
            content = {"error": str(exc.detail)}
        return JSONResponse(content=content, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return error_response(400, _first_validation_message(exc))
