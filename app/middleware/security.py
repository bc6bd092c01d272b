"""
WorkForce - Security Middleware

Request logging and response security headers.
"""

import logging
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all API responses.

    Headers:
    - X-Content-Type-Options
    - X-Frame-Options
    - Strict-Transport-Security (production only)
    - Referrer-Policy
    """

    def __init__(self, app: FastAPI, development_mode: bool = False):
        super().__init__(app)
        self.development_mode = development_mode

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if not self.development_mode:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log requests for monitoring.

    Every failed request is logged; successful ones only on sensitive paths.
    """

    SENSITIVE_PATHS = [
        "/api/v1/auth",
        "/api/v1/billing",
        "/api/v1/organization-users",
    ]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path
        method = request.method

        response = await call_next(request)

        duration = time.time() - start_time
        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        is_sensitive = any(path.startswith(p) for p in self.SENSITIVE_PATHS)

        if is_sensitive or response.status_code >= 400:
            logger.log(
                log_level,
                f"{method} {path} - {response.status_code} - {duration:.3f}s - {client_ip}",
            )

        response.headers["X-Response-Time"] = f"{duration:.3f}s"
        return response


def setup_security_middleware(app: FastAPI, development_mode: bool = False) -> None:
    """Add the security middleware stack to the app."""
    app.add_middleware(SecurityHeadersMiddleware, development_mode=development_mode)
    app.add_middleware(RequestLoggingMiddleware)
    logger.info("Security middleware enabled")
