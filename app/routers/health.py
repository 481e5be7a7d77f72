"""
Health Check Endpoints

- /health/live - Liveness check (is process running)
- /health/ready - Readiness check (database reachable)
- /health/detailed - Component statuses (admin only)
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import text
from datetime import datetime, timezone
import time

from ..database import get_db
from ..config import settings
from ..models.user import User
from ..services.typing_indicator import TypingIndicator
from ..utils.dependencies import require_admin

router = APIRouter(prefix="/health", tags=["Health"])

VERSION = "1.0.0"


def get_db_health(db: Session) -> dict:
    """Check database connectivity and latency"""
    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000
        return {
            "status": "up",
            "latency_ms": round(latency_ms, 2),
            "type": db.bind.dialect.name,
        }
    except Exception as e:
        return {
            "status": "down",
            "error": str(e)[:100]
        }


def get_redis_health() -> dict:
    """Redis holds typing indicators only; an outage degrades, never fails"""
    return TypingIndicator().ping()


@router.get("/live")
async def liveness_check():
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/ready")
def readiness_check(db: Session = Depends(get_db)):
    db_health = get_db_health(db)

    if db_health["status"] == "up":
        return {
            "status": "ready",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Database unavailable"
    )


@router.get("/detailed")
def detailed_health_check(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    checks = {
        "database": get_db_health(db),
        "redis": get_redis_health(),
    }

    if checks["database"]["status"] == "down":
        overall_status = "unhealthy"
    elif checks["redis"]["status"] == "down":
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return {
        "status": overall_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "environment": settings.environment,
        "checks": checks,
        "config": {
            "scheduler_enabled": settings.scheduler_enabled,
            "push_enabled": settings.push_enabled,
            "rate_limit_enabled": settings.rate_limit_enabled,
        }
    }


@router.get("")
async def simple_health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION
    }
