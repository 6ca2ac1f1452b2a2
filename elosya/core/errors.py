"""
Error types raised by Elosya services and the handlers that render them.

Every error response has the same envelope:
    {"error": {"code", "message", "request_id"}, "detail": message}
and carries the request id in the x-request-id header.
"""

import logging
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from elosya.core.logging import get_request_id

logger = logging.getLogger("elosya")


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.code
        self.status_code = status_code or self.status_code
        self.request_id = request_id


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, LookupError):
    code = "not_found"
    status_code = 404


class InsufficientBalanceError(AppError):
    """A coin gift costs more than the sender's wallet holds."""

    code = "insufficient_balance"
    status_code = 400

    def __init__(self, message: str, *, balance=None, required=None, **kwargs):
        super().__init__(message, **kwargs)
        self.balance = balance
        self.required = required


class ConflictError(AppError):
    """Duplicate resource, or a write that kept losing optimistic-concurrency races."""

    code = "conflict"
    status_code = 409


def _resolve_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id() or str(uuid4())


def error_response(status_code: int, code: str, message: str, request_id: str) -> JSONResponse:
    body = {
        "error": {"code": code, "message": message, "request_id": request_id},
        "detail": message,
    }
    return JSONResponse(status_code=status_code, content=body, headers={"x-request-id": request_id})


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _resolve_request_id(request)
    logger.log(
        logging.ERROR if exc.status_code >= 500 else logging.WARNING,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    return error_response(exc.status_code, exc.code, exc.message, rid)


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _resolve_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    return error_response(exc.status_code, code, exc.detail or "HTTP error", rid)


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _resolve_request_id(request)
    logger.error("unhandled.exception", exc_info=exc, extra={"request_id": rid, "error_code": "internal_error"})
    return error_response(500, "internal_error", "Unexpected error", rid)
