from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


_BASE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "same-origin",
}
_HSTS = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, app_env: str, api_prefix: str = "/api/") -> None:
        super().__init__(app)
        self._headers = dict(_BASE_HEADERS)
        if app_env.lower() == "production":
            self._headers["Strict-Transport-Security"] = _HSTS
        self._api_prefix = api_prefix

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in self._headers.items():
            response.headers.setdefault(name, value)
        # Session payloads and customer data must not land in shared caches.
        if request.url.path.startswith(self._api_prefix):
            response.headers.setdefault("Cache-Control", "no-store")
            response.headers.setdefault("Pragma", "no-cache")
        return response
