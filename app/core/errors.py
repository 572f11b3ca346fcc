"""Error types and the JSON envelope handlers registered on the app.

Every error leaves the API as::

    {"success": false, "message": "...", "errors": [{"field": ..., "message": ...}]}

``errors`` is only present for field-level validation failures.
"""

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException


class NotFoundError(ValueError):
    """A referenced row does not exist."""


class ConflictError(ValueError):
    """The change collides with existing data (duplicate name, second sales team, ...)."""


class FieldValidationError(Exception):
    """Business validation failure tied to specific request fields."""

    def __init__(self, errors: list[dict], message: str = "Validation error"):
        self.errors = errors
        self.message = message
        super().__init__(message)

    @classmethod
    def single(cls, field: str, message: str) -> "FieldValidationError":
        return cls([{"field": field, "message": message}], message=message)


def http_error(exc: ValueError) -> HTTPException:
    """Translate a service-layer ValueError into the matching HTTP status."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def error_body(message: str, errors: list[dict] | None = None) -> dict:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def _field_name(loc) -> str:
    # ("body", "hasAccessTo", "3") -> "hasAccessTo.3"
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "request"


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": _field_name(err.get("loc", ())), "message": err.get("msg", "Invalid value")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body("Validation error", errors),
    )


async def field_validation_handler(request: Request, exc: FieldValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(exc.message, exc.errors),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_body("Record conflicts with existing data"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(FieldValidationError, field_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
