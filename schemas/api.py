"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, List, Optional
from datetime import datetime
from models.base import ImportErrorCode, ImportStatus, utcnow

# ============================================================================
# Health Check Schemas
# ============================================================================

class ImportRunInfo(BaseModel):
    """Import run information for health check"""
    id: int
    archive_path: str
    entry_name: str
    status: ImportStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    rows_read: int = 0
    rows_loaded: int = 0
    rows_rejected: int = 0
    batches_committed: int = 0
    error_message: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=utcnow)
    database_connected: bool
    station_count: int = 0
    ride_count: int = 0
    import_error_count: int = 0
    recent_runs: List[ImportRunInfo] = Field(default_factory=list)

    @model_validator(mode="after")
    def determine_status(self):
        """Derive overall health from connectivity and the latest run"""
        if not self.database_connected:
            self.status = "unhealthy"
        elif self.recent_runs and self.recent_runs[0].status == ImportStatus.FAILED.value:
            self.status = "degraded"
        else:
            self.status = "healthy"
        return self

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "status": "healthy",
            "timestamp": "2024-08-01T10:30:00",
            "database_connected": True,
            "station_count": 2154,
            "ride_count": 4722896,
            "import_error_count": 312,
            "recent_runs": [
                {
                    "id": 1,
                    "archive_path": "202407-citibike-tripdata.zip",
                    "entry_name": "202407-citibike-tripdata_1.csv",
                    "status": "success",
                    "started_at": "2024-08-01T10:00:00",
                    "rows_read": 1000000,
                    "rows_loaded": 999931,
                    "rows_rejected": 69,
                    "batches_committed": 100
                }
            ]
        }
    })

# ============================================================================
# Import Error Schemas
# ============================================================================

class ImportErrorResponse(BaseModel):
    """One rejected CSV row"""
    id: int
    source_file: str
    row_number: int
    error_code: ImportErrorCode
    raw_line: str
    occurred_at: datetime
    ride_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class PaginationMetadata(BaseModel):
    """Pagination metadata"""
    total_items: int
    total_pages: int
    current_page: int
    page_size: int
    has_next: bool
    has_previous: bool


class ImportErrorPage(BaseModel):
    """Paginated import error response"""
    items: List[ImportErrorResponse]
    pagination: PaginationMetadata
    filters_applied: dict = Field(default_factory=dict)

# ============================================================================
# Statistics Schemas
# ============================================================================

class QueryInfo(BaseModel):
    """One available reporting query"""
    number: int
    title: str
    path: str


class QueryListResponse(BaseModel):
    queries: List[QueryInfo]


class QueryResultResponse(BaseModel):
    """Result of one reporting query"""
    number: int
    title: str
    min_rides: int
    top: int
    duration_ms: float
    result: Any = None
