"""
HTTP middleware chain.

Registered in create_app() (outermost last):

    RequestLoggingMiddleware (development only)
    SecurityHeadersMiddleware
    BodySizeLimitMiddleware
    RateLimitMiddleware
"""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from jobboard.core.config import settings
from jobboard.core.error_handlers import render_error
from jobboard.core.exceptions import AppError, RateLimitExceededError
from jobboard.core.rate_limiter import RateLimiter, get_client_ip

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
    "Cross-Origin-Opener-Policy": "same-origin",
}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject API requests beyond the client's allowance with 429."""

    def __init__(self, app, limiter: RateLimiter, path_prefix: str = "/api"):
        super().__init__(app)
        self.limiter = limiter
        self.path_prefix = path_prefix

    async def dispatch(self, request: Request, call_next):
        if request.url.path.startswith(self.path_prefix):
            client_ip = get_client_ip(request)
            if not self.limiter.allow(client_ip):
                logger.warning(f"Rate limit exceeded for {client_ip} on {request.url.path}")
                return render_error(RateLimitExceededError())
        return await call_next(request)


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Refuse JSON bodies larger than MAX_JSON_BODY_BYTES (uploads are not limited here)."""

    def __init__(self, app, max_bytes: int):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next):
        content_type = request.headers.get("content-type", "")
        content_length = request.headers.get("content-length")
        if content_type.startswith("application/json") and content_length and content_length.isdigit():
            if int(content_length) > self.max_bytes:
                return render_error(AppError(f"Request body exceeds {self.max_bytes} bytes", 413))
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Hardening headers on every response; API responses are never cached."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        if not settings.is_development:
            response.headers.setdefault("Strict-Transport-Security", "max-age=15552000; includeSubDomains")
        if request.url.path.startswith(settings.API_V1_STR):
            response.headers["Cache-Control"] = "no-store"
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"{request.method} {request.url.path} {response.status_code} {duration_ms:.1f}ms",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 1),
            },
        )
        return response
