"""
Custom exception hierarchy for the journal backend.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages. The envelope is
`{success: false, error, code, details?}`.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class BujoException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {
            "success": False,
            "error": self.message,
            "code": self.code,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(BujoException):
    """Malformed input, bad entry type, empty content or a forbidden transition."""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"


class NotFoundError(BujoException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, kind: str, ref: Any):
        super().__init__(
            message=f"{kind} {ref} not found.",
            details={"kind": kind, "ref": str(ref)},
        )


class ConflictError(BujoException):
    http_status = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class IntegrityError(BujoException):
    """Foreign-key or uniqueness violation, or a corrupt backup file."""
    http_status = status.HTTP_409_CONFLICT
    code = "INTEGRITY_ERROR"


class StoreError(BujoException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "STORE_ERROR"


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def bujo_exception_handler(request: Request, exc: BujoException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error": "Request validation failed.",
            "code": "VALIDATION_ERROR",
            "details": {"errors": field_errors},
        },
    )


async def store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("store failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=StoreError("The journal store failed to complete the request.").to_dict(),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "An unexpected error occurred.",
            "code": "INTERNAL_ERROR",
        },
    )
