"""
Health Check Endpoints

- /health/live  - is the process running
- /health/ready - can both stores be reached
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from ..database import StoreRegistry, get_stores
from ..utils.db_helpers import STORE_FAILURES

router = APIRouter(prefix="/health", tags=["Health"])


def get_store_health(stores: StoreRegistry, engine: Engine) -> dict:
    """Connectivity and latency of one store"""
    try:
        start = time.time()
        stores.ping(engine)
        latency_ms = (time.time() - start) * 1000
        return {
            "status": "up",
            "latency_ms": round(latency_ms, 2),
            "type": engine.dialect.name
        }
    except STORE_FAILURES as e:
        return {
            "status": "down",
            "error": str(e)[:100]
        }


@router.get("/live")
async def liveness_check():
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/ready")
async def readiness_check(stores: StoreRegistry = Depends(get_stores)):
    """Ready only when both stores answer"""
    checks = {
        "community": get_store_health(stores, stores.community_engine),
        "registry": get_store_health(stores, stores.registry_engine),
    }
    ready = all(check["status"] == "up" for check in checks.values())

    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "not_ready",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": checks
        }
    )
