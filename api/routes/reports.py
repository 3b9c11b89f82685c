"""
Report ingestion trigger, run status and stored traffic data
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from api.dependencies import get_db, get_scheduler
from schemas.api import IngestionTriggerResponse, PaginationMetadata, TrafficDataResponse
from schemas.traffic import TrafficRecordResponse
from models.traffic_report import RealTimeTrafficReport
from ingestion.scheduler import ReportScheduler
from typing import Optional
from datetime import datetime
import math
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/reports", tags=["Reports"])


async def _run_in_background(scheduler: ReportScheduler, report_type: str):
    try:
        await scheduler.run_ingestion(report_type)
    except Exception as e:
        logger.error(f"On-demand ingestion for {report_type} failed: {e}")


@router.get("/fetch", status_code=202, response_model=IngestionTriggerResponse)
async def fetch_reports(
    background_tasks: BackgroundTasks,
    report_type: Optional[str] = Query(None, description="Report type to ingest"),
    scheduler: ReportScheduler = Depends(get_scheduler)
):
    """
    Trigger an ingestion run and return immediately.

    The run itself happens after the response is sent; its outcome is
    available from /reports/runs/latest.
    """
    report_type = report_type or scheduler.report_type

    if scheduler.is_running:
        raise HTTPException(
            status_code=409,
            detail="An ingestion run is already in progress"
        )

    background_tasks.add_task(_run_in_background, scheduler, report_type)
    logger.info(f"Queued on-demand ingestion for {report_type}")

    return IngestionTriggerResponse(
        message="Reports are being processed",
        report_type=report_type
    )


@router.get("/runs/latest")
async def latest_run(scheduler: ReportScheduler = Depends(get_scheduler)):
    """Per-report outcome summary of the most recent run."""
    if scheduler.last_result is None:
        raise HTTPException(status_code=404, detail="No ingestion run has completed yet")
    return scheduler.last_result.to_dict()


@router.get("/traffic", response_model=TrafficDataResponse)
async def get_traffic(
    request: Request,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=1000, description="Items per page"),
    asin: Optional[str] = Query(None, description="Filter by ASIN"),
    start_after: Optional[datetime] = Query(None, description="start_time at or after"),
    end_before: Optional[datetime] = Query(None, description="end_time at or before"),
    db: AsyncSession = Depends(get_db)
):
    """Paginated, filtered rows from the traffic report table."""
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")

    filters = []
    if asin:
        filters.append(RealTimeTrafficReport.asin == asin)
    if start_after:
        filters.append(RealTimeTrafficReport.start_time >= start_after)
    if end_before:
        filters.append(RealTimeTrafficReport.end_time <= end_before)

    query = select(RealTimeTrafficReport)
    count_query = select(func.count()).select_from(RealTimeTrafficReport)
    if filters:
        query = query.where(and_(*filters))
        count_query = count_query.where(and_(*filters))

    count_result = await db.execute(count_query)
    total_items = count_result.scalar() or 0

    total_pages = math.ceil(total_items / page_size) if total_items > 0 else 0
    offset = (page - 1) * page_size

    query = query.order_by(RealTimeTrafficReport.start_time.desc(), RealTimeTrafficReport.id)
    result = await db.execute(query.offset(offset).limit(page_size))
    rows = result.scalars().all()

    logger.info(f"[{request_id}] GET /reports/traffic returned {len(rows)} rows")

    return TrafficDataResponse(
        items=[TrafficRecordResponse.from_orm(row) for row in rows],
        pagination=PaginationMetadata(
            current_page=page,
            page_size=page_size,
            total_items=total_items,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1
        ),
        filters_applied={k: v for k, v in {
            "asin": asin,
            "start_after": start_after,
            "end_before": end_before
        }.items() if v is not None}
    )
