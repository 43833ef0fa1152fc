# app/core/errors.py
"""
Error taxonomy shared by every service and both gateways.

Services raise these directly (they are HTTPExceptions, so FastAPI turns
them into responses without extra glue). Collaborator failures are caught at
the service boundary and re-raised as UpstreamError so internal detail never
reaches the caller.
"""
import logging
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ServiceError(HTTPException):
    status_code_default: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail_default: str = "Internal server error"

    def __init__(self, detail: str | None = None, headers: dict[str, str] | None = None):
        super().__init__(
            status_code=self.status_code_default,
            detail=detail or self.detail_default,
            headers=headers,
        )


class NotFoundError(ServiceError):
    status_code_default = status.HTTP_404_NOT_FOUND
    detail_default = "Not found"


class UnauthenticatedError(ServiceError):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    detail_default = "Authentication required"

    def __init__(self, detail: str | None = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(ServiceError):
    status_code_default = status.HTTP_403_FORBIDDEN
    detail_default = "Forbidden"


class ConflictError(ServiceError):
    status_code_default = status.HTTP_409_CONFLICT
    detail_default = "Conflict"


class ValidationFailedError(ServiceError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    detail_default = "Invalid request"


class InsufficientStockError(ServiceError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    detail_default = "Not enough products in stock to add given quantity to cart"


class UpstreamError(ServiceError):
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail_default = "Internal server error"


def _error_body(request: Request, detail) -> dict:
    return {
        "detail": detail,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": request.url.path,
    }


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Malformed input is a 400, keyed by field name:

        {"detail": {"body.username": "String should match pattern ..."}}
    """
    errors: dict[str, str] = {}
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()))
        errors[field or "request"] = err.get("msg", "invalid value")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(request, errors),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, UpstreamError.detail_default),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
