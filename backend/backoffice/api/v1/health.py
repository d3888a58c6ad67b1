import logging
import time

from fastapi import APIRouter, Request
from sqlalchemy.exc import SQLAlchemyError

from backoffice.api.response import envelope
from backoffice.core.config import get_settings
from backoffice.db.database import Database

logger = logging.getLogger("backoffice.api")

router = APIRouter(tags=["ops"])

# Reset on every process start.
SERVER_START_TIME_MS = int(time.time() * 1000)


def _database_connected() -> bool:
    try:
        return Database().ping()
    except SQLAlchemyError:
        logger.exception("health.database_unreachable")
        return False


@router.get("/health")
def health(request: Request) -> dict:
    db_ok = _database_connected()
    return envelope(
        request,
        {
            "status": "ok" if db_ok else "degraded",
            "database": "connected" if db_ok else "not connected",
        },
    )


@router.get("/server-status")
def server_status(request: Request) -> dict:
    settings = get_settings()
    now_ms = int(time.time() * 1000)
    return envelope(
        request,
        {
            "app_name": settings.app_name,
            "app_env": settings.app_env,
            "serverStartTime": SERVER_START_TIME_MS,
            "currentTime": now_ms,
            "uptime": now_ms - SERVER_START_TIME_MS,
        },
    )
