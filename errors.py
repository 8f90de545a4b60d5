"""
Application exceptions and the FastAPI handlers that turn them into
JSON error responses.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self, include_details: bool = True) -> dict:
        body = {"error": self.message}
        if include_details and self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    """Missing required field or value outside an enumerated set."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class StoreError(AppError):
    """Connectivity or constraint failure in the relational store."""


class ImportSourceError(StoreError):
    """An import JSON file is missing or does not hold the expected records."""


def _show_details(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return settings is None or not settings.is_production()


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error-translation handlers to ``app``."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        # Store failures hide their internals outside development
        include_details = not isinstance(exc, StoreError) or _show_details(request)
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(include_details=include_details),
        )

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(
            "Database error on %s %s: %s", request.method, request.url.path, exc
        )
        content = {"error": "Database operation failed"}
        if _show_details(request):
            content["details"] = str(getattr(exc, "orig", None) or exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in err["loc"] if part != "body"),
                "message": err["msg"],
            }
            for err in exc.errors()
        ]
        fields = ", ".join(dict.fromkeys(item["field"] for item in details))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": f"Invalid value for: {fields}", "details": details},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return JSONResponse(
                status_code=exc.status_code, content={"message": "Route not found"}
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message": "Something went wrong!",
                "error": str(exc) if _show_details(request) else "Internal server error",
            },
        )
