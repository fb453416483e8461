"""
Error handling

- StorefrontError subclasses are rendered with their own status and code
- Unhandled exceptions are logged with traceback; the client gets a generic
  body unless DEBUG is on
"""
import logging
from typing import Union

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.core.config import settings
from storefront.core.exceptions import StorefrontError

logger = logging.getLogger(__name__)

# Patterns that indicate internal/sensitive error information
SENSITIVE_PATTERNS = [
    "password",
    "secret",
    "token",
    "api_key",
    "credential",
    "sqlalchemy",
    "asyncpg",
    "postgresql",
    "redis://",
    "traceback",
    "file \"",
]


def is_sensitive_error(message: str) -> bool:
    message_lower = message.lower()
    return any(pattern in message_lower for pattern in SENSITIVE_PATTERNS)


def sanitize_error_message(error: Union[str, Exception]) -> str:
    """Return a message safe to show the client."""
    message = error if isinstance(error, str) else str(error)

    if settings.DEBUG:
        return message

    if is_sensitive_error(message):
        return "An internal error occurred. Please try again later."

    if len(message) > 200:
        return message[:200] + "..."

    return message


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message} {exc.details}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")

    body = exc.to_dict()
    body["message"] = sanitize_error_message(exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


def internal_error_body(exc: Exception, error_id: str) -> dict:
    body = {"error": "internal_error", "error_id": error_id}
    if settings.DEBUG:
        body.update(message=str(exc), type=type(exc).__name__)
    else:
        body["message"] = "An unexpected error occurred. Please try again later."
    return body


class ErrorSanitizationMiddleware(BaseHTTPMiddleware):
    """Turn anything the routes let escape into a logged, generic 500."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except HTTPException:
            raise
        except Exception as exc:
            client = request.client.host if request.client else "unknown"
            error_id = f"{client}-{id(exc):x}"
            logger.exception(
                f"Unhandled {type(exc).__name__} [{error_id}] on {request.method} {request.url.path}"
            )
            return JSONResponse(status_code=500, content=internal_error_body(exc, error_id))
