"""
Health check endpoint with database and import status
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select, text
from api.dependencies import get_db
from schemas.api import HealthCheckResponse, ImportRunInfo
from models.import_error import ImportErrorRecord
from models.import_run import ImportRun
from models.ride import Ride
from models.station import Station
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    runs: int = Query(5, ge=0, le=50, description="Number of recent import runs to return"),
    db: AsyncSession = Depends(get_db)
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Station, ride and import error counts
    - Most recent import runs, newest first
    """
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")
        return HealthCheckResponse(database_connected=False)

    counts = {}
    for label, model in (("stations", Station), ("rides", Ride), ("errors", ImportErrorRecord)):
        result = await db.execute(select(func.count()).select_from(model))
        counts[label] = result.scalar() or 0

    result = await db.execute(
        select(ImportRun).order_by(ImportRun.started_at.desc(), ImportRun.id.desc()).limit(runs)
    )
    recent_runs = [ImportRunInfo.model_validate(run) for run in result.scalars().all()]

    return HealthCheckResponse(
        database_connected=True,
        station_count=counts["stations"],
        ride_count=counts["rides"],
        import_error_count=counts["errors"],
        recent_runs=recent_runs
    )
