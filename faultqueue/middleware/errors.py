"""Global exception handling for the operator API."""

from __future__ import annotations

from typing import Any, Mapping

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from faultqueue.errors import AppError, ErrorCode, InternalServerError, to_response
from faultqueue.logging import get_logger

_logger = get_logger(__name__)


def _format_validation_field(raw_loc: list[Any]) -> str:
    location: list[str] = [str(part) for part in raw_loc]
    if location and location[0] in {"body", "query", "path", "header", "cookie"}:
        location = location[1:]
    return ".".join(location) if location else ""


def _extract_detail_message(detail: Any, default: str) -> str:
    if isinstance(detail, str) and detail.strip():
        return detail
    if isinstance(detail, Mapping):
        candidate = detail.get("message")
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return default


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields: list[dict[str, str]] = []
    for error in exc.errors():
        raw_loc = error.get("loc", [])
        components = list(raw_loc) if isinstance(raw_loc, (list, tuple)) else [raw_loc]
        location = _format_validation_field(components)
        fields.append({"name": location or "?", "message": error.get("msg", "Invalid input.")})
    return to_response(
        message="Request validation failed.",
        code=ErrorCode.VALIDATION_ERROR,
        status_code=422,
        request_path=request.url.path,
        method=request.method,
        meta={"fields": fields} if fields else None,
    )


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    status_code = exc.status_code or status.HTTP_500_INTERNAL_SERVER_ERROR
    if status_code == status.HTTP_404_NOT_FOUND:
        code = ErrorCode.NOT_FOUND
        message = _extract_detail_message(exc.detail, "Resource not found.")
    elif status_code == status.HTTP_409_CONFLICT:
        code = ErrorCode.CONFLICT
        message = _extract_detail_message(exc.detail, "Request conflicts with running work.")
    elif status.HTTP_400_BAD_REQUEST <= status_code < status.HTTP_500_INTERNAL_SERVER_ERROR:
        code = ErrorCode.VALIDATION_ERROR
        message = _extract_detail_message(exc.detail, "Request could not be completed.")
    else:
        code = ErrorCode.INTERNAL_ERROR
        message = _extract_detail_message(exc.detail, "An unexpected error occurred.")
    return to_response(
        message=message,
        code=code,
        status_code=status_code,
        request_path=request.url.path,
        method=request.method,
    )


async def _handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    return exc.as_response(request_path=request.url.path, method=request.method)


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    _logger.exception("Unhandled application error", exc_info=exc)
    error = InternalServerError()
    return error.as_response(request_path=request.url.path, method=request.method)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the canonical exception handlers for the API."""

    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(HTTPException, _handle_http_exception)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(AppError, _handle_app_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)


__all__ = ["setup_exception_handlers"]
