"""Domain errors raised by the service layer.

Routers do not catch these; ``register_exception_handlers`` turns each class
into a JSON response with a fixed status code:

    ValidationError       -> 400
    UnauthorizedError     -> 403
    NotFoundError         -> 404
    DuplicateReviewError  -> 409
    CityGuideError        -> 500

Request bodies and query parameters FastAPI rejects are rendered like
``ValidationError``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class CityGuideError(Exception):
    """Base class for application errors.

    ``message`` is safe to return to the client, ``context`` is only logged.
    """

    code = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "An unexpected error occurred", context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(message)


class ValidationError(CityGuideError):
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Validation failed", *, field: str | None = None) -> None:
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class NotFoundError(CityGuideError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "Resource", resource_id: str | None = None) -> None:
        ctx = {"resource": resource}
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(f"{resource} not found", ctx)
        self.resource = resource
        self.resource_id = resource_id


class DuplicateReviewError(CityGuideError):
    """A review already exists for this (place, author) pair."""

    code = "duplicate_review"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, place_id: str, user_id: str) -> None:
        super().__init__("You have already reviewed this place", {"place_id": place_id, "user_id": user_id})
        self.place_id = place_id
        self.user_id = user_id


class UnauthorizedError(CityGuideError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CityGuideError)
    async def handle_app_error(request: Request, exc: CityGuideError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s %s", request.method, request.url.path, exc.message, exc.context)
        else:
            logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = []
        for err in exc.errors():
            loc = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path"))
            problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
        message = "; ".join(problems) or "Invalid request"
        logger.info("%s %s -> %s: %s", request.method, request.url.path, ValidationError.code, message)
        return JSONResponse(
            status_code=ValidationError.status_code,
            content={"error": ValidationError.code, "detail": message},
        )
