"""Request logging middleware for FastAPI.

Writes one line per request:

    GET /projects/7/inventory/elements [200] <512> [3 ms] - 10.0.0.1
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from bamb.core.logger import get_logger

logger = get_logger("api")

# Paths that should not be logged
EXCLUDED_PATHS = {
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
}


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start_time) * 1000)

        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"
        length = response.headers.get("content-length", "-")

        line = "%s %s [%d] <%s> [%d ms] - %s"
        args = (request.method, path, response.status_code, length, duration_ms, get_client_ip(request))
        if response.status_code >= 500:
            logger.error(line, *args)
        elif response.status_code >= 400:
            logger.warning(line, *args)
        else:
            logger.info(line, *args)
        return response
