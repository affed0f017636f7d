import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ..auth.deps import get_container
from ..config import APP_VERSION
from ..container import Container

logger = logging.getLogger(__name__)

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
def health() -> dict[str, Any]:
    return {"status": "ok", "version": APP_VERSION, "timestamp": _now()}


@router.get("/live")
def liveness() -> dict[str, str]:
    return {"status": "alive"}


@router.get("/ready")
def readiness(container: Container = Depends(get_container)):
    try:
        container.store.ping()
        depth = container.queue.approximate_count()
    except SQLAlchemyError:
        logger.exception("Readiness check failed")
        return JSONResponse(status_code=503, content={"status": "not_ready", "checks": {"database": "error"}})
    return {"status": "ready", "checks": {"database": "ok", "queueDepth": depth}, "timestamp": _now()}
