"""HTTP error taxonomy and the handlers that render it as ``{"error": ...}``."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .supabase import SupabaseError

logger = logging.getLogger(__name__)


class BadRequest(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=400, detail=detail)


class Unauthorized(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=401, detail=detail)


class TooManyRequests(HTTPException):
    def __init__(self, detail: str, retry_after: int) -> None:
        super().__init__(
            status_code=429,
            detail=detail,
            headers={"Retry-After": str(retry_after)},
        )
        self.retry_after = retry_after


class InternalError(HTTPException):
    def __init__(self, detail: str = "Internal Server Error") -> None:
        super().__init__(status_code=500, detail=detail)


def _error_response(
    status_code: int,
    message: Any,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    if not isinstance(message, str):
        message = str(message)
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    # loc is ("body", "field") / ("query", "field"); a bare ("body",) means the body itself
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query")]
    message = first.get("msg", "invalid value")
    if location:
        return f"{'.'.join(location)}: {message}"
    return f"Invalid request body: {message}"


async def _http_exception_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, exc.detail, getattr(exc, "headers", None))


async def _validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(400, _describe_validation_error(exc))


async def _supabase_exception_handler(_: Request, exc: SupabaseError) -> JSONResponse:
    logger.warning(
        "unhandled provider failure",
        extra={"provider_status": exc.status_code, "error_code": exc.error_code},
    )
    return _error_response(500, exc.message)


async def _transport_exception_handler(_: Request, exc: httpx.HTTPError) -> JSONResponse:
    logger.warning("provider unreachable: %s", exc)
    return _error_response(500, "Upstream service unreachable")


async def _unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error_response(500, "Internal Server Error")


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(SupabaseError, _supabase_exception_handler)
    app.add_exception_handler(httpx.HTTPError, _transport_exception_handler)
    app.add_exception_handler(Exception, _unexpected_exception_handler)
