"""
Security Headers Middleware

Adds security headers to API responses:
- X-Frame-Options / frame-ancestors: clickjacking
- X-Content-Type-Options: MIME sniffing
- Content-Security-Policy: resource loading (allows the Twilio Video SDK)
- Strict-Transport-Security: HTTPS (production only)
- Cache-Control: no caching of authenticated JSON
"""

import logging
import os
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .config import ALLOWED_ORIGINS

logger = logging.getLogger(__name__)

IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"


def get_csp_policy() -> str:
    """Content-Security-Policy for the API and the bundled single-page app"""
    frame_ancestors = " ".join(["'self'"] + [o for o in ALLOWED_ORIGINS if o])
    directives = [
        "default-src 'self'",
        f"frame-ancestors {frame_ancestors}",
        "script-src 'self' https://sdk.twilio.com",
        "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com",
        "font-src 'self' data: https://fonts.gstatic.com",
        "img-src 'self' data: blob: https:",
        # Video signalling and media relays
        "connect-src 'self' ws: wss: https://*.twilio.com wss://*.twilio.com",
        "media-src 'self' blob:",
        "base-uri 'none'",
        "form-action 'self'",
    ]
    return "; ".join(directives)


def get_permissions_policy() -> str:
    # Camera and microphone stay enabled on our own origin for video sessions
    features = [
        "accelerometer=()",
        "camera=(self)",
        "geolocation=()",
        "gyroscope=()",
        "microphone=(self)",
        "payment=()",
        "usb=()",
    ]
    return ", ".join(features)


def get_security_headers_dict() -> dict:
    headers = {
        "X-Frame-Options": "SAMEORIGIN",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Content-Security-Policy": get_csp_policy(),
        "Permissions-Policy": get_permissions_policy(),
        "X-Permitted-Cross-Domain-Policies": "none",
        "Cross-Origin-Opener-Policy": "same-origin",
        "X-DNS-Prefetch-Control": "off",
    }
    if IS_PRODUCTION:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains; preload"
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds the headers from get_security_headers_dict() to every non-excluded response"""

    def __init__(self, app, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or []
        self.headers = get_security_headers_dict()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        path = request.url.path
        if any(path.startswith(excluded) for excluded in self.exclude_paths):
            return response

        for name, value in self.headers.items():
            response.headers[name] = value

        # JSON API responses are per-user; static assets keep their own caching
        if path.startswith("/api") and "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"

        return response
