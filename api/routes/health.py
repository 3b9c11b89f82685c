"""
Health check endpoint with database and ingestion status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db, get_scheduler
from schemas.api import HealthCheckResponse, LastRunInfo
from ingestion.loaders.postgres_loader import TrafficReportLoader
from ingestion.scheduler import ReportScheduler
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    scheduler: ReportScheduler = Depends(get_scheduler)
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Scheduler state and whether a run is in progress
    - Summary of the most recent ingestion run
    """
    db_connected = await TrafficReportLoader(db).ping()

    last_run = None
    result = scheduler.last_result
    if result is not None:
        last_run = LastRunInfo(
            status=result.status.value,
            report_type=result.report_type,
            completed_at=result.completed_at,
            reports_listed=result.reports_listed,
            reports_failed=result.reports_failed,
            records_loaded=result.records_loaded,
            catalog_complete=result.catalog_truncated_reason is None
        )

    return HealthCheckResponse(
        status=HealthCheckResponse.evaluate(db_connected, last_run),
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        scheduler_running=scheduler.scheduler.running,
        ingestion_in_progress=scheduler.is_running,
        last_run=last_run
    )
