from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, max_request_body_bytes: int) -> None:
        super().__init__(app)
        self._max_request_body_bytes = max_request_body_bytes

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        try:
            parsed_length = int(content_length) if content_length is not None else None
        except ValueError:
            parsed_length = None
        if parsed_length is not None and parsed_length > self._max_request_body_bytes:
            return JSONResponse(
                status_code=413,
                content={
                    "success": False,
                    "error": "요청 본문이 너무 큽니다.",
                    "code": "payload_too_large",
                    "details": {"max_bytes": self._max_request_body_bytes},
                },
            )
        return await call_next(request)
