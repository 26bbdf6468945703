"""
Reporting query endpoints
"""

import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from analytics.queries import QUERY_REGISTRY
from api.dependencies import get_db
from core.config import settings
from schemas.api import QueryInfo, QueryListResponse, QueryResultResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Statistics"])


@router.get("/stats", response_model=QueryListResponse)
async def list_queries():
    """List the available reporting queries"""
    return QueryListResponse(queries=[
        QueryInfo(number=number, title=query.title, path=f"/stats/{number}")
        for number, query in sorted(QUERY_REGISTRY.items())
    ])


@router.get("/stats/{number}", response_model=QueryResultResponse)
async def run_query(
    number: int,
    request: Request,
    min_rides: Optional[int] = Query(None, ge=1, description="Minimum rides per station"),
    top: Optional[int] = Query(None, ge=1, le=1000, description="Number of rows to return"),
    db: AsyncSession = Depends(get_db)
):
    """Run one reporting query and return its result"""
    query = QUERY_REGISTRY.get(number)
    if query is None:
        raise HTTPException(status_code=404, detail=f"Unknown query: {number}")

    min_rides = min_rides or settings.STATS_MIN_RIDES
    top = top or settings.STATS_TOP_N
    request_id = getattr(request.state, "request_id", "-")

    logger.info(f"[{request_id}] GET /stats/{number} min_rides={min_rides} top={top}")

    started = time.perf_counter()
    result = await query.run(db, min_rides, top)
    duration_ms = (time.perf_counter() - started) * 1000

    logger.info(f"[{request_id}] Q{number:02d} finished in {duration_ms:.2f}ms")

    return QueryResultResponse(
        number=number,
        title=query.title,
        min_rides=min_rides,
        top=top,
        duration_ms=round(duration_ms, 2),
        result=jsonable_encoder(result)
    )
