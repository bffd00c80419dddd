"""
Error taxonomy and HTTP error responses.

Domain failures are raised as subclasses of ``ExchangeError``.  Each
class carries the HTTP status and the stable machine-readable code
clients use to tell "fix your input" apart from "this exchange is
gone" and "server problem, retry later".  The handlers registered in
``main.create_app`` render every error with the same JSON shape::

    {"error": {"code": "...", "message": "...", "status": 404, "details": null}}
"""

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException


class ExchangeError(Exception):
    """Base class for failures of an exchange operation."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    message: str = "Exchange operation failed"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message


class ExchangeNotFound(ExchangeError):
    """The exchange never existed, was finished or has expired."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    message = "Exchange not found"


class KeyAlreadySet(ExchangeError):
    """The second party's key has already been submitted."""

    status_code = status.HTTP_409_CONFLICT
    code = "already_set"
    message = "Exchange already has a second key"


class ExchangeNotReady(ExchangeError):
    """The exchange is still waiting for the second party's key."""

    status_code = status.HTTP_425_TOO_EARLY
    code = "not_ready"
    message = "Exchange is still waiting for the second key"


class ExchangeStorageError(ExchangeError):
    """The storage backend failed while handling the operation."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"
    message = "Internal storage error"


class ErrorBody(BaseModel):
    code: str = Field(..., description="Stable machine-readable code")
    message: str = Field(..., description="Human-readable explanation")
    status: int = Field(..., description="HTTP status code duplicated here for convenience")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Optional diagnostic details")

    @staticmethod
    def code_for_status(status_code: int) -> str:
        return {
            400: "bad_request",
            401: "unauthorized",
            403: "forbidden",
            404: "not_found",
            405: "method_not_allowed",
            409: "already_set",
            425: "not_ready",
            500: "internal_error",
        }.get(status_code, "error")


def _render(body: ErrorBody, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse({"error": body.model_dump()}, status_code=body.status, headers=headers)


def exchange_error_handler(request: Request, exc: ExchangeError) -> JSONResponse:
    return _render(ErrorBody(code=exc.code, message=exc.message, status=exc.status_code))


def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Error"
    details = exc.detail if isinstance(exc.detail, dict) else None
    body = ErrorBody(
        code=ErrorBody.code_for_status(exc.status_code),
        message=message,
        status=exc.status_code,
        details=details,
    )
    return _render(body, headers=getattr(exc, "headers", None))


def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # FastAPI reports validation failures as 422; clients of this service
    # only need to know the request was malformed.
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    body = ErrorBody(
        code="bad_request",
        message="Invalid request",
        status=status.HTTP_400_BAD_REQUEST,
        details={"errors": errors},
    )
    return _render(body)
