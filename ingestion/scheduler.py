import asyncio
import logging
from datetime import date
from typing import Optional

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import settings
from core.database import async_session_maker
from core.exceptions import RunInProgressError
from ingestion.auth import TokenProvider
from ingestion.catalog import ReportCatalogPaginator
from ingestion.documents import DocumentResolver
from ingestion.fetcher import BackoffFetcher
from ingestion.loaders.postgres_loader import TrafficReportLoader
from ingestion.runner import IngestionResult, ReportIngestionRunner
from ingestion.transformers.traffic_mapper import RecordMapper

logger = logging.getLogger(__name__)


class ReportScheduler:
    """
    Owns the process-lifetime ingestion collaborators and the interval job.

    The HTTP client and TokenProvider are shared by every run so the access
    token is cached across runs. Only one run executes at a time; an
    overlapping trigger is rejected with RunInProgressError.
    """

    def __init__(
        self,
        session_maker: Optional[async_sessionmaker] = None,
        client: Optional[httpx.AsyncClient] = None,
        report_type: Optional[str] = None,
        reference_date: Optional[date] = None,
        interval_minutes: Optional[int] = None
    ):
        self.scheduler = AsyncIOScheduler()
        self.SessionLocal = session_maker or async_session_maker
        self.report_type = report_type or settings.REPORT_TYPE
        self.reference_date = reference_date or settings.REPORT_START_DATE
        self.interval_minutes = interval_minutes or settings.SCHEDULE_INTERVAL_MINUTES

        self.client = client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
        self.token_provider = TokenProvider(self.client)
        self.fetcher = BackoffFetcher(self.client)
        self.paginator = ReportCatalogPaginator(self.fetcher, self.token_provider)
        self.resolver = DocumentResolver(self.fetcher, self.token_provider)
        self.mapper = RecordMapper()

        self.last_result: Optional[IngestionResult] = None
        self._run_lock = asyncio.Lock()
        self._background_run: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def build_runner(self, session: AsyncSession) -> ReportIngestionRunner:
        return ReportIngestionRunner(
            token_provider=self.token_provider,
            paginator=self.paginator,
            resolver=self.resolver,
            mapper=self.mapper,
            sink=TrafficReportLoader(session),
            reference_date=self.reference_date,
        )

    async def run_ingestion(self, report_type: Optional[str] = None) -> IngestionResult:
        """
        Run one ingestion for ``report_type`` (defaults to the configured type).

        Raises:
            RunInProgressError: Another run is in progress
            AuthError: Token acquisition failed
        """
        report_type = report_type or self.report_type
        if self._run_lock.locked():
            raise RunInProgressError(
                "An ingestion run is already in progress",
                context={"report_type": report_type}
            )

        async with self._run_lock:
            logger.info(f"Starting ingestion run for {report_type}")
            async with self.SessionLocal() as session:
                runner = self.build_runner(session)
                result = await runner.run(report_type)
            self.last_result = result
            return result

    async def run_job(self):
        """Job to run the ingestion pipeline"""
        logger.info("Scheduler: Starting report ingestion job")
        try:
            result = await self.run_ingestion()
            logger.info(f"Scheduler: Report ingestion job finished ({result.status.value})")
        except Exception as e:
            logger.error(f"Scheduler: Report ingestion job failed - {e}")

    def start_background_run(self) -> asyncio.Task:
        """Run the job once, now, without waiting for it. Cancelled by stop()."""
        self._background_run = asyncio.create_task(self.run_job())
        return self._background_run

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_job,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id="report_ingestion_job",
            replace_existing=True
        )
        self.scheduler.start()
        logger.info(f"Report scheduler started (every {self.interval_minutes} minutes)")

    async def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()

        # An in-flight run must not outlive the HTTP client it uses
        task = self._background_run
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.info("Cancelled in-progress startup ingestion run")
        self._background_run = None

        await self.client.aclose()
        logger.info("Report scheduler stopped")
