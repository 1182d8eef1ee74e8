"""HTTP middleware for the API."""

from __future__ import annotations

import logging
import os
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Paths not worth a log line per request
EXCLUDED_PATHS = {
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}

EXCLUDED_PATH_PREFIXES = (
    "/vault/",  # Static file serving
)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log one line per API call with method, path, status and duration.

    4xx responses log at warning, 5xx at error.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        started = time.perf_counter()

        response = await call_next(request)

        if self._should_log(request, path):
            elapsed_ms = (time.perf_counter() - started) * 1000
            message = f"{request.method} {path} -> {response.status_code} ({elapsed_ms:.1f} ms)"
            if response.status_code >= 500:
                logger.error(message)
            elif response.status_code >= 400:
                logger.warning(message)
            else:
                logger.info(message)

        return response

    def _should_log(self, request: Request, path: str) -> bool:
        # Skip OPTIONS requests (CORS preflight)
        if request.method == "OPTIONS":
            return False
        if path in EXCLUDED_PATHS:
            return False
        if path.startswith(EXCLUDED_PATH_PREFIXES):
            return False
        return True


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses.

    The API serves JSON and vault images only, so the policy is restrictive.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"

        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # HSTS - Force HTTPS in production
        environment = os.getenv("ENVIRONMENT", "development")
        if environment == "production" or request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # Interactive docs load scripts from a CDN
        if not request.url.path.startswith(("/docs", "/redoc")):
            response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        return response
