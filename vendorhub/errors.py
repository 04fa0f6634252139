"""
VendorHub — Service error taxonomy and the global exception handlers.

Every failure that crosses the HTTP boundary is folded into the
``{"data": null, "error": {...}}`` envelope; raw store exceptions never
reach the client.
"""

import logging
from typing import Any, Awaitable, TypeVar

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from vendorhub.schemas.api import ApiError, ApiResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(
        self,
        message: str,
        code: str = "service_error",
        status_code: int = 400,
        details: dict | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_api_error(self) -> ApiError:
        return ApiError(
            message=self.message,
            code=self.code,
            status=self.status_code,
            details=self.details,
        )


class WriteError(ServiceError):
    """The store rejected an activity insert."""

    def __init__(self, message: str = "Failed to write activity log entry", details: dict | None = None):
        super().__init__(message, code="write_error", status_code=500, details=details)


class FetchError(ServiceError):
    """A read against one source failed (store error or timeout)."""

    def __init__(self, source: str, message: str | None = None, details: dict | None = None):
        self.source = source
        super().__init__(
            message or f"Failed to load {source.replace('_', ' ')}",
            code="fetch_error",
            status_code=502,
            details={"source": source, **(details or {})},
        )


class InputValidationError(ServiceError):
    """Malformed input, rejected before any store call."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message,
            code="validation_error",
            status_code=422,
            details={"field": field} if field else {},
        )


class NotFoundError(ServiceError):
    def __init__(self, resource: str, identifier: str):
        super().__init__(
            f"{resource} not found",
            code="not_found",
            status_code=404,
            details={"resource": resource, "id": identifier},
        )


class AppendOnlyViolation(ServiceError):
    """Someone tried to edit or delete audit history."""

    def __init__(self, entry_id: str | None = None):
        super().__init__(
            "Activity log entries are append-only; write a new entry instead",
            code="append_only_violation",
            status_code=409,
            details={"id": entry_id} if entry_id else {},
        )


class UnauthenticatedError(ServiceError):
    """The request carries no user identity."""

    def __init__(self, message: str = "Sign in to access this resource"):
        super().__init__(message, code="unauthenticated", status_code=401)


class ConflictError(ServiceError):
    def __init__(self, resource: str, identifier: str):
        super().__init__(
            f"{resource} already exists",
            code="conflict",
            status_code=409,
            details={"resource": resource, "id": identifier},
        )


async def handle_api_error(awaitable: Awaitable[T]) -> ApiResponse:
    """Await ``awaitable`` and fold the outcome into an ``ApiResponse``."""
    try:
        data = await awaitable
        return ApiResponse(data=data, error=None)
    except ServiceError as e:
        logger.warning("%s: %s", e.code, e.message)
        return ApiResponse(data=None, error=e.to_api_error())
    except SQLAlchemyError as e:
        logger.error("Unhandled store error: %s", e)
        return ApiResponse(
            data=None,
            error=ApiError(message="A database error occurred", code="database_error", status=500),
        )


def envelope(data: Any) -> dict:
    """Success envelope."""
    return {"data": data, "error": None}


def setup_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        logger.warning("Service error %s on %s: %s", exc.code, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"data": None, "error": exc.to_api_error().model_dump()},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Database error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={
                "data": None,
                "error": {
                    "message": "A database error occurred",
                    "code": "database_error",
                    "status": 500,
                    "details": {},
                },
            },
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"loc": [str(part) for part in e.get("loc", ())], "msg": e.get("msg", ""), "type": e.get("type", "")}
            for e in exc.errors()
        ]
        first = errors[0] if errors else {"loc": [], "msg": "Invalid request"}
        field = first["loc"][-1] if first["loc"] else None
        logger.warning("Invalid request on %s: %s (%s)", request.url.path, first["msg"], field)
        return JSONResponse(
            status_code=422,
            content={
                "data": None,
                "error": {
                    "message": first["msg"],
                    "code": "validation_error",
                    "status": 422,
                    "details": {"field": field, "errors": errors},
                },
            },
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unexpected error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={
                "data": None,
                "error": {
                    "message": "An unexpected error occurred",
                    "code": "internal_error",
                    "status": 500,
                    "details": {},
                },
            },
        )
