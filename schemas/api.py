"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from schemas.traffic import TrafficRecordResponse


# ============================================================================
# Health Check Schemas
# ============================================================================

class LastRunInfo(BaseModel):
    """Summary of the most recent ingestion run"""
    status: str
    report_type: str
    completed_at: Optional[datetime] = None
    reports_listed: int = 0
    reports_failed: int = 0
    records_loaded: int = 0
    catalog_complete: bool = True


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    scheduler_running: bool = False
    ingestion_in_progress: bool = False
    last_run: Optional[LastRunInfo] = None

    @classmethod
    def evaluate(cls, database_connected: bool, last_run: Optional[LastRunInfo]) -> str:
        if not database_connected:
            return "unhealthy"
        if last_run is None:
            return "healthy"  # Nothing ingested yet
        if last_run.reports_failed or not last_run.catalog_complete:
            return "degraded"
        return "healthy"

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-11-03T10:30:00Z",
                "database_connected": True,
                "scheduler_running": True,
                "ingestion_in_progress": False,
                "last_run": {
                    "status": "success",
                    "report_type": "GET_VENDOR_REAL_TIME_TRAFFIC_REPORT",
                    "completed_at": "2024-11-03T10:00:00Z",
                    "reports_listed": 4,
                    "reports_failed": 0,
                    "records_loaded": 96,
                    "catalog_complete": True
                }
            }
        }


# ============================================================================
# Ingestion Trigger Schemas
# ============================================================================

class IngestionTriggerResponse(BaseModel):
    """Acknowledgement returned by the on-demand trigger"""
    message: str
    report_type: str


# ============================================================================
# Traffic Data Schemas
# ============================================================================

class PaginationMetadata(BaseModel):
    """Pagination metadata"""
    total_items: int
    total_pages: int
    current_page: int
    page_size: int
    has_next: bool
    has_previous: bool


class TrafficDataResponse(BaseModel):
    """Paginated traffic rows"""
    items: List[TrafficRecordResponse]
    pagination: PaginationMetadata
    filters_applied: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Error Response Schema
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
