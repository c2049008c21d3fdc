"""
Health Check Routes

Liveness and readiness of the API and its datastore.
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from studiobase.database import get_db
from studiobase.schemas import HealthResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


def get_version() -> str:
    """Read version from VERSION file."""
    version_file = Path(__file__).parent.parent.parent / "VERSION"
    if version_file.exists():
        return version_file.read_text().strip()
    return "unknown"


async def datastore_healthy(db: AsyncSession) -> bool:
    """Round-trip a trivial query through the session."""
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Datastore check failed: %s", type(e).__name__)
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Report the version and whether the datastore answers."""
    healthy = await datastore_healthy(db)
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=get_version(),
        services={"database": "healthy" if healthy else "unhealthy"},
    )


@router.get("/health/live")
async def liveness():
    """The process is up. Never touches the datastore."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(db: AsyncSession = Depends(get_db)):
    """
    Whether requests can be served.

    Every store operation needs the datastore, so without it the API
    answers 503 and should be taken out of rotation.
    """
    if await datastore_healthy(db):
        return {"status": "ready"}
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not ready", "services": {"database": "unhealthy"}},
    )
