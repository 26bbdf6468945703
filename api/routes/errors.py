"""
Import error retrieval endpoint with pagination and filtering
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from api.dependencies import get_db
from schemas.api import ImportErrorPage, ImportErrorResponse, PaginationMetadata
from models.base import ImportErrorCode
from models.import_error import ImportErrorRecord
from typing import Optional
import math
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Import errors"])


@router.get("/import-errors", response_model=ImportErrorPage)
async def get_import_errors(
    request: Request,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=1000, description="Items per page"),
    error_code: Optional[ImportErrorCode] = Query(None, description="Filter by error code"),
    source_file: Optional[str] = Query(None, description="Filter by CSV entry name"),
    db: AsyncSession = Depends(get_db)
):
    """
    Retrieve rejected rows, oldest first.

    Features:
    - Pagination
    - Filter by error code and source file
    """
    request_id = getattr(request.state, "request_id", "-")

    logger.info(
        f"[{request_id}] GET /import-errors - page={page}, page_size={page_size}, "
        f"filters: error_code={error_code}, source_file={source_file}"
    )

    filters = []
    if error_code:
        filters.append(ImportErrorRecord.error_code == error_code)
    if source_file:
        filters.append(ImportErrorRecord.source_file == source_file)

    count_query = select(func.count()).select_from(ImportErrorRecord)
    query = select(ImportErrorRecord)
    if filters:
        count_query = count_query.where(and_(*filters))
        query = query.where(and_(*filters))

    total_items = (await db.execute(count_query)).scalar() or 0
    total_pages = math.ceil(total_items / page_size) if total_items > 0 else 0

    query = query.order_by(ImportErrorRecord.id).offset((page - 1) * page_size).limit(page_size)
    result = await db.execute(query)
    items = [ImportErrorResponse.model_validate(e) for e in result.scalars().all()]

    logger.info(f"[{request_id}] Returned {len(items)} of {total_items} import errors")

    return ImportErrorPage(
        items=items,
        pagination=PaginationMetadata(
            current_page=page,
            page_size=page_size,
            total_items=total_items,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1
        ),
        filters_applied={k: v for k, v in {
            "error_code": error_code.value if error_code else None,
            "source_file": source_file
        }.items() if v is not None}
    )
