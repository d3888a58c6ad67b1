from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


logger = logging.getLogger("backoffice.api")

REQUEST_ID_HEADER = "X-Request-ID"
_QUIET_PATHS = frozenset({"/metrics"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and write one access line once the response is ready.

    ``user_id`` is filled in by the session dependency, so anonymous routes log ``None``.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        started_at = time.perf_counter()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        if request.url.path in _QUIET_PATHS:
            return response

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "http.request",
            extra={
                "request_id": request_id,
                "user_id": getattr(request.state, "user_id", None),
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started_at) * 1000, 1),
            },
        )
        return response
