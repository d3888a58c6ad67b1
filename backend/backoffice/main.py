from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from backoffice.api.response import exception_envelope
from backoffice.api.v1.router import build_api_router
from backoffice.core.config import get_settings
from backoffice.core.logging_config import configure_logging
from backoffice.core.metrics import render_metrics
from backoffice.core.middleware import (
    MetricsMiddleware,
    RequestLoggingMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
import backoffice.db.session as db_session
from backoffice.services.auth_service import seed_local_admin

settings = get_settings()
configure_logging(log_level=settings.log_level, app_env=settings.app_env)
logger = logging.getLogger("backoffice.api")

VALIDATION_MESSAGE = "필수 파라미터가 누락되었거나 형식이 올바르지 않습니다."
INTERNAL_ERROR_MESSAGE = "요청을 처리하는 중 오류가 발생했습니다. 잠시 후 다시 시도해주세요."


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    if settings.app_env.lower() in {"test", "production"}:
        yield
        return
    if not inspect(db_session.get_engine()).has_table("users"):
        logger.warning("Database schema missing; run `alembic upgrade head` before first use.")
        yield
        return
    db = db_session.SessionLocal()
    try:
        seed_local_admin(db)
    finally:
        db.close()
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestSizeLimitMiddleware, max_request_body_bytes=settings.max_request_body_bytes)
app.add_middleware(MetricsMiddleware)
app.add_middleware(SecurityHeadersMiddleware, app_env=settings.app_env)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(build_api_router(), prefix=settings.api_v1_prefix)

if settings.metrics_enabled:
    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        payload, content_type = render_metrics()
        return Response(content=payload, media_type=content_type)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        details = dict(exc.detail)
        message = str(details.pop("message", "요청을 처리할 수 없습니다."))
        code = str(details.pop("reason_code", f"http_{exc.status_code}"))
    else:
        details = {}
        message = str(exc.detail) if exc.detail else "요청을 처리할 수 없습니다."
        code = f"http_{exc.status_code}"
    payload = exception_envelope(
        request=request,
        status_code=exc.status_code,
        message=message,
        code=code,
        details=details,
    )
    return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    payload = exception_envelope(
        request=request,
        status_code=400,
        message=VALIDATION_MESSAGE,
        code="validation_error",
        details={"errors": errors},
    )
    return JSONResponse(status_code=400, content=payload)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error", exc_info=exc)
    payload = exception_envelope(
        request=request,
        status_code=500,
        message=INTERNAL_ERROR_MESSAGE,
        code="internal_server_error",
    )
    return JSONResponse(status_code=500, content=payload)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception", exc_info=exc)
    payload = exception_envelope(
        request=request,
        status_code=500,
        message=INTERNAL_ERROR_MESSAGE,
        code="internal_server_error",
    )
    return JSONResponse(status_code=500, content=payload)
