"""Error types for the reconciler core and the operator API."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from enum import Enum
import logging
from typing import Any
from uuid import uuid4

from fastapi import status
from fastapi.responses import JSONResponse

from faultqueue.logging import get_logger


class ErrorCode(str, Enum):
    """Application level error codes exposed via the operator API."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


_logger = get_logger(__name__)


class ReconcilerError(Exception):
    """Base class for data-integrity problems found while reconciling a record."""


class UnknownItemKindError(ReconcilerError):
    """Raised when a parked record carries an item kind no dispatcher handles."""

    def __init__(self, item_kind: object) -> None:
        super().__init__(f"unknown item kind: {item_kind!r}")
        self.item_kind = item_kind


class UnknownFaultKindError(ReconcilerError):
    """Raised when a parked record carries an unrecognised fault kind."""

    def __init__(self, fault_kind: object) -> None:
        super().__init__(f"unknown fault kind: {fault_kind!r}")
        self.fault_kind = fault_kind


class PayloadDecodeError(ReconcilerError):
    """Raised when a stored request snapshot cannot be decoded."""


class PassInProgressError(RuntimeError):
    """Raised when a manual pass is requested while another one is running."""


class AppError(Exception):
    """Base exception for operator API errors."""

    __slots__ = ("message", "code", "http_status", "meta")

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        meta: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.http_status = http_status
        self.meta = meta

    def as_response(self, *, request_path: str, method: str) -> JSONResponse:
        """Serialise the exception into the canonical error envelope."""

        return to_response(
            message=self.message,
            code=self.code,
            status_code=self.http_status,
            request_path=request_path,
            method=method,
            meta=self.meta,
        )


class ValidationAppError(AppError):
    """Error raised when a client submitted invalid input."""

    def __init__(self, message: str, *, meta: Mapping[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            http_status=status.HTTP_400_BAD_REQUEST,
            meta=meta,
        )


class NotFoundError(AppError):
    """Error raised when a resource could not be located."""

    def __init__(self, message: str = "Resource not found.") -> None:
        super().__init__(
            message=message,
            code=ErrorCode.NOT_FOUND,
            http_status=status.HTTP_404_NOT_FOUND,
        )


class ConflictError(AppError):
    """Error raised when the requested action clashes with running work."""

    def __init__(self, message: str, *, meta: Mapping[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.CONFLICT,
            http_status=status.HTTP_409_CONFLICT,
            meta=meta,
        )


class InternalServerError(AppError):
    """Error raised when the application encountered an unexpected failure."""

    def __init__(self, message: str = "An unexpected error occurred.") -> None:
        super().__init__(
            message=message,
            code=ErrorCode.INTERNAL_ERROR,
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


def _log_level_for_status(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code == status.HTTP_409_CONFLICT:
        return logging.WARNING
    return logging.INFO


def to_response(
    *,
    message: str,
    code: ErrorCode,
    status_code: int,
    request_path: str,
    method: str,
    meta: Mapping[str, Any] | None = None,
) -> JSONResponse:
    """Create an error response with the standard envelope."""

    debug_id = uuid4().hex
    payload: MutableMapping[str, Any] = {
        "ok": False,
        "error": {"code": code.value, "message": message},
    }
    if meta:
        payload["error"]["meta"] = dict(meta)

    response = JSONResponse(status_code=status_code, content=payload)
    response.headers["X-Debug-Id"] = debug_id

    _logger.log(
        _log_level_for_status(status_code),
        "API request failed",
        extra={
            "event": "api.error",
            "code": code.value,
            "status": status_code,
            "path": request_path,
            "method": method,
            "debug_id": debug_id,
        },
    )
    return response


__all__ = [
    "AppError",
    "ConflictError",
    "ErrorCode",
    "InternalServerError",
    "NotFoundError",
    "PassInProgressError",
    "PayloadDecodeError",
    "ReconcilerError",
    "UnknownFaultKindError",
    "UnknownItemKindError",
    "ValidationAppError",
    "to_response",
]
