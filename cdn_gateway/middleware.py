"""
Request pipeline middleware.

``RequestContextMiddleware`` wraps every request: it assigns the request id,
records metrics, logs the outcome and turns unexpected exceptions into a 500
that does not leak error details.

``AccessPolicyMiddleware`` decides, per request and in order:

1. ``OPTIONS`` is answered with a CORS preflight response.
2. Public routes (auth, CDN, listing, thumbnails) and non-API paths pass.
3. Protected ``/api`` routes are refused in readonly mode for writes (403),
   require a live session (401) and, for writes, a rate-limit slot (429).
"""

import time
import uuid

from fastapi import Request, status
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .dependencies import (
    get_metrics,
    get_rate_limiter,
    get_settings,
    session_from_request,
)
from .errors import error_response
from .logger import logger
from .rate_limit import get_client_identifier

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}

PUBLIC_PREFIXES = ("/api/auth/", "/cdn/")
PUBLIC_GET_PATHS = frozenset({"/api/list", "/api/thumbnail"})


def generate_request_id() -> str:
    return f"req_{uuid.uuid4().hex}"


def is_protected_route(method: str, path: str) -> bool:
    if not path.startswith("/api/"):
        return False
    if path.startswith(PUBLIC_PREFIXES):
        return False
    if method == "GET" and path in PUBLIC_GET_PATHS:
        return False
    return True


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Request id, timing, metrics and last-resort error handling."""

    async def dispatch(self, request: Request, call_next):
        request_id = generate_request_id()
        request.state.request_id = request_id
        method = request.method
        path = request.url.path

        metrics = get_metrics(request)
        metrics.record_request(method)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            metrics.record_error()
            logger.error(
                f"[{request_id}] {method} {path} failed after {duration_ms:.1f}ms: "
                f"{type(e).__name__}: {e}",
                exc_info=True,
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": "Internal Server Error", "requestId": request_id},
                headers={"X-Request-ID": request_id},
            )

        duration_ms = (time.perf_counter() - start_time) * 1000
        if response.status_code >= 500:
            metrics.record_error()

        logger.info(
            f"[{request_id}] {method} {path} -> {response.status_code} "
            f"({duration_ms:.1f}ms)"
        )
        response.headers["X-Request-ID"] = request_id
        return response


class AccessPolicyMiddleware(BaseHTTPMiddleware):
    """Preflight, readonly, authentication and rate-limit gate."""

    async def dispatch(self, request: Request, call_next):
        method = request.method
        path = request.url.path

        if method == "OPTIONS":
            return Response(
                status_code=status.HTTP_204_NO_CONTENT, headers=PREFLIGHT_HEADERS
            )

        if not is_protected_route(method, path):
            return await call_next(request)

        settings = get_settings(request)
        if settings.readonly and method != "GET":
            return error_response(
                status.HTTP_403_FORBIDDEN, "Service is in read-only mode"
            )

        session = session_from_request(request)
        if session is None:
            return error_response(
                status.HTTP_401_UNAUTHORIZED, "Authentication required"
            )
        request.state.session = session

        if method != "GET":
            rate_limiter = get_rate_limiter(request)
            result = rate_limiter.check(get_client_identifier(request))
            if not result.allowed:
                retry_after = result.retry_after(time.time())
                response = JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={
                        "detail": "Rate limit exceeded",
                        "retryAfter": retry_after,
                    },
                    headers={
                        "Retry-After": str(retry_after),
                        "X-RateLimit-Remaining": str(result.remaining),
                    },
                )
                return response

        return await call_next(request)
