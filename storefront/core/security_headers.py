"""
Security headers middleware
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from storefront.core.config import settings

DOCS_PATHS = ("/docs", "/redoc", "/openapi.json")


def _build_csp(directives: dict) -> str:
    return "; ".join(f"{key} {value}" for key, value in directives.items())


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add CSP, framing, sniffing and referrer headers to every response."""

    # JSON API only; nothing should load from here
    API_CSP = _build_csp({
        "default-src": "'none'",
        "frame-ancestors": "'none'",
        "base-uri": "'none'",
    })

    # Swagger UI loads its assets from jsdelivr
    DOCS_CSP = _build_csp({
        "default-src": "'self'",
        "script-src": "'self' 'unsafe-inline' https://cdn.jsdelivr.net",
        "style-src": "'self' 'unsafe-inline' https://cdn.jsdelivr.net",
        "img-src": "'self' data: https:",
        "frame-ancestors": "'self'",
        "object-src": "'none'",
    })

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        is_docs_path = request.url.path in DOCS_PATHS
        response.headers["Content-Security-Policy"] = self.DOCS_CSP if is_docs_path else self.API_CSP
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=(), usb=()"

        # HTTPS only in production
        if settings.ENVIRONMENT == "production" and not settings.DEBUG:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response
