"""Error responses for the PanPal API.

Every error renders as a Result wrapper holding one Message:

    {"messages": [{"code": "NotFound", "messageType": "Error", "text": ..., "timestamp": ...}]}
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, Field

from panpal.cache.keys import InvalidKeyComponentError
from panpal.recipes.errors import (
    DomainError,
    FavoriteNotFoundError,
    PermissionDeniedError,
    RatingNotFoundError,
    RecipeNotFoundError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """Type of message in error response."""

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"
    EXCEPTION = "Exception"


class Message(BaseModel):
    model_config = {"extra": "forbid", "populate_by_name": True}

    code: str
    message_type: MessageType = Field(alias="messageType")
    text: str
    timestamp: str | None = None


class Result(BaseModel):
    """Result wrapper for errors."""

    model_config = {"extra": "forbid"}

    messages: list[Message]


def _result(code: str, text: str, message_type: MessageType = MessageType.ERROR) -> dict:
    return Result(
        messages=[
            Message(
                code=code,
                messageType=message_type,
                text=text,
                timestamp=datetime.now(UTC).isoformat(),
            )
        ]
    ).model_dump(by_alias=True)


class ApiError(HTTPException):
    """Base exception for API errors."""

    def __init__(
        self,
        status_code: int,
        code: str,
        text: str,
        message_type: MessageType = MessageType.ERROR,
    ):
        self.code = code
        self.text = text
        self.message_type = message_type
        super().__init__(status_code=status_code, detail=text)

    def to_content(self) -> dict:
        return _result(self.code, self.text, self.message_type)


class NotFoundError(ApiError):
    """Resource not found (404)."""

    def __init__(self, text: str):
        super().__init__(status_code=404, code="NotFound", text=text)


class ForbiddenError(ApiError):
    """Caller may not modify the resource (403)."""

    def __init__(self, text: str = "Not allowed to modify this resource"):
        super().__init__(status_code=403, code="Forbidden", text=text)


class BadRequestError(ApiError):
    """Invalid request (400)."""

    def __init__(self, text: str):
        super().__init__(status_code=400, code="BadRequest", text=text)


class UnauthorizedError(ApiError):
    """Missing caller identity (401)."""

    def __init__(self, text: str = "Authentication required"):
        super().__init__(status_code=401, code="Unauthorized", text=text)


_NOT_FOUND = (
    RecipeNotFoundError,
    RatingNotFoundError,
    FavoriteNotFoundError,
    UserNotFoundError,
)


def to_api_error(exc: Exception) -> ApiError:
    """Map a service-layer exception onto its HTTP error."""
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, _NOT_FOUND):
        return NotFoundError(str(exc))
    if isinstance(exc, PermissionDeniedError):
        return ForbiddenError(str(exc))
    if isinstance(exc, (InvalidKeyComponentError, DomainError)):
        return BadRequestError(str(exc))
    return ApiError(
        status_code=500,
        code="InternalServerError",
        text="An unexpected error occurred",
        message_type=MessageType.EXCEPTION,
    )


async def api_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    error = to_api_error(exc)
    return ORJSONResponse(status_code=error.status_code, content=error.to_content())


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    text = f"{location}: {first.get('msg', 'Invalid request')}" if location else "Invalid request"
    return ORJSONResponse(status_code=400, content=_result("BadRequest", text))


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Exception handler for unexpected errors."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return ORJSONResponse(
        status_code=500,
        content=_result(
            "InternalServerError", "An unexpected error occurred", MessageType.EXCEPTION
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_exception_handler)
    app.add_exception_handler(DomainError, api_exception_handler)
    app.add_exception_handler(InvalidKeyComponentError, api_exception_handler)
    app.add_exception_handler(
        RequestValidationError, validation_exception_handler  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, generic_exception_handler)
