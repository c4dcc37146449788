"""
Error taxonomy shared by storage, sanitization and the HTTP handlers.

Each error carries the HTTP status it maps to; the exception handler in
``main`` renders it as ``{"detail": message}``.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse


class GatewayError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestError(GatewayError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad Request"


class InvalidPathError(BadRequestError):
    default_message = "Invalid path: directory traversal not allowed"


class UnsafeContentError(BadRequestError):
    default_message = "Unsafe content"


class UnauthorizedError(GatewayError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class ForbiddenError(GatewayError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(GatewayError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not Found"


class ConflictError(GatewayError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class PayloadTooLargeError(GatewayError):
    status_code = status.HTTP_413_CONTENT_TOO_LARGE
    default_message = "Payload Too Large"


def error_response(
    status_code: int, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"detail": message}, headers=headers
    )


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    return error_response(exc.status_code, exc.message)
