# app/core/security_headers.py
from __future__ import annotations

from typing import Dict, List, Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

CSP_REPORT_PATH = "/report-violation"

# Empty source list -> 'none'
CSP_DIRECTIVES: List[Tuple[str, List[str]]] = [
    ("default-src", ["'self'", "http:", "https:"]),
    ("script-src", ["'self'", "'unsafe-inline'", "https://cdn.polyfill.io"]),
    ("style-src", ["'self'", "https://fonts.googleapis.com"]),
    ("font-src", ["'self'", "https://fonts.gstatic.com"]),
    ("img-src", ["data:", "https:"]),
    ("report-uri", [CSP_REPORT_PATH]),
    ("frame-ancestors", ["'none'"]),
    ("object-src", []),
]

# Same header set as helmet's defaults
HARDENING_HEADERS: Dict[str, str] = {
    "X-DNS-Prefetch-Control": "off",
    "X-Frame-Options": "SAMEORIGIN",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Download-Options": "noopen",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
}

CSP_HEADER_NAMES = ("Content-Security-Policy", "X-Content-Security-Policy", "X-WebKit-CSP")


def build_csp(directives: List[Tuple[str, List[str]]] = CSP_DIRECTIVES) -> str:
    parts = []
    for name, sources in directives:
        value = " ".join(sources) if sources else "'none'"
        parts.append(f"{name} {value}")
    return "; ".join(parts)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, csp: str | None = None):
        super().__init__(app)
        self.csp = csp or build_csp()

    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        for name in CSP_HEADER_NAMES:
            response.headers[name] = self.csp
        for name, value in HARDENING_HEADERS.items():
            response.headers.setdefault(name, value)
        if "x-powered-by" in response.headers:
            del response.headers["x-powered-by"]
        return response
