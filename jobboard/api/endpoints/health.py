"""
Health check endpoints.

Provides liveness and dependency status (database, image storage).
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jobboard.core import storage
from jobboard.core.database import get_db

router = APIRouter(tags=["Health"])
logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", status_code=status.HTTP_200_OK)
def health_check() -> Dict[str, str]:
    """
    Basic health check endpoint.

    Use this for uptime monitoring and load balancer health checks.
    """
    return {"status": "healthy", "timestamp": _timestamp()}


@router.get("/health/detailed")
def detailed_health_check(db: Session = Depends(get_db)):
    """
    Health check with dependency status.

    Returns 503 when the database is unreachable.
    """
    checks: Dict[str, Any] = {}
    healthy = True

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = {"status": "healthy"}
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = {"status": "unhealthy"}
        healthy = False

    checks["storage"] = {
        "status": "healthy",
        "backend": type(storage.image_storage).__name__,
    }

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": _timestamp(),
            "checks": checks,
        },
    )
