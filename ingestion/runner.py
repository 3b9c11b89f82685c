# ============================================================================
# File: ingestion/runner.py
# Description: Report ingestion orchestrator with per-report failure isolation
# ============================================================================
"""
Report Ingestion Runner - drives one ingestion run for a report type.

This module provides:
- Fail-fast token acquisition (AuthError is fatal to the run)
- Catalog discovery with an explicit completeness flag
- Strictly sequential per-report processing: resolve, download, map, persist
- Per-report failure containment with a structured outcome per report
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Protocol
import logging

from core.config import settings
from core.exceptions import IngestionException
from ingestion.auth import TokenProvider
from ingestion.catalog import DateWindow, ReportCatalogPaginator, ReportRef
from ingestion.documents import DocumentResolver
from ingestion.transformers.traffic_mapper import RecordMapper
from models.base import OutcomeStatus, RunStatus
from schemas.traffic import TrafficRecordCreate

logger = logging.getLogger(__name__)


class RecordSink(Protocol):
    async def load(self, items: List[TrafficRecordCreate]) -> int:
        ...


@dataclass
class ReportOutcome:
    """Result of processing one catalog entry."""

    report_id: str
    document_id: Optional[str]
    status: OutcomeStatus
    records_loaded: int = 0
    error_type: Optional[str] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "document_id": self.document_id,
            "status": self.status.value,
            "records_loaded": self.records_loaded,
            "error_type": self.error_type,
            "error_message": self.error_message,
        }


@dataclass
class IngestionResult:
    """Summary of a whole run, including partial failures."""

    report_type: str
    window: DateWindow
    started_at: datetime
    completed_at: Optional[datetime] = None
    pages_fetched: int = 0
    catalog_truncated_reason: Optional[str] = None
    outcomes: List[ReportOutcome] = field(default_factory=list)

    @property
    def reports_listed(self) -> int:
        return len(self.outcomes)

    @property
    def reports_failed(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OutcomeStatus.FAILED)

    @property
    def reports_succeeded(self) -> int:
        return self.reports_listed - self.reports_failed

    @property
    def records_loaded(self) -> int:
        return sum(o.records_loaded for o in self.outcomes)

    @property
    def status(self) -> RunStatus:
        if self.reports_failed or self.catalog_truncated_reason:
            return RunStatus.PARTIAL
        return RunStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "report_type": self.report_type,
            "window_start": self.window.start.isoformat(),
            "window_end": self.window.end.isoformat(),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "pages_fetched": self.pages_fetched,
            "catalog_complete": self.catalog_truncated_reason is None,
            "catalog_truncated_reason": self.catalog_truncated_reason,
            "reports_listed": self.reports_listed,
            "reports_succeeded": self.reports_succeeded,
            "reports_failed": self.reports_failed,
            "records_loaded": self.records_loaded,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


class ReportIngestionRunner:
    """
    Report ingestion orchestrator

    Responsibilities:
    - Ensure a valid access token before touching the catalog
    - List every completed report in the configured week
    - Process each report in turn, never letting one bad report abort the run
    - Return a per-report outcome collection
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        paginator: ReportCatalogPaginator,
        resolver: DocumentResolver,
        mapper: RecordMapper,
        sink: RecordSink,
        reference_date: Optional[date] = None
    ):
        self.token_provider = token_provider
        self.paginator = paginator
        self.resolver = resolver
        self.mapper = mapper
        self.sink = sink
        self.reference_date = reference_date or settings.REPORT_START_DATE

    async def run(self, report_type: str) -> IngestionResult:
        """
        Run the full ingestion flow for ``report_type``.

        Raises:
            AuthError: Token acquisition failed
        """
        started_at = datetime.utcnow()

        # --------------------------------------------------
        # PHASE 1: AUTHENTICATION (fatal on failure)
        # --------------------------------------------------
        await self.token_provider.ensure_token()

        # --------------------------------------------------
        # PHASE 2: CATALOG DISCOVERY
        # --------------------------------------------------
        listing = await self.paginator.list_reports(report_type, self.reference_date)

        result = IngestionResult(
            report_type=report_type,
            window=listing.window,
            started_at=started_at,
            pages_fetched=listing.pages_fetched,
            catalog_truncated_reason=listing.truncated_reason,
        )

        if not listing.is_complete:
            logger.warning(
                f"Catalog for {report_type} is incomplete: {listing.truncated_reason}"
            )

        # --------------------------------------------------
        # PHASE 3: PER-REPORT PROCESSING
        # --------------------------------------------------
        for report in listing:
            result.outcomes.append(await self._process_report(report_type, report))

        result.completed_at = datetime.utcnow()

        logger.info(
            f"Ingestion run completed: {result.status.value} - "
            f"Reports: {result.reports_listed}, Failed: {result.reports_failed}, "
            f"Records loaded: {result.records_loaded}"
        )
        return result

    async def _process_report(self, report_type: str, report: ReportRef) -> ReportOutcome:
        try:
            location = await self.resolver.resolve(report)
            logger.info(
                f"Fetching document for report {report.report_id} "
                f"(document {report.document_id})"
            )

            raw_records = await self.resolver.fetch_payload(location)
            mapped = self.mapper.map(raw_records)
            logger.debug(f"Mapped {len(mapped)} {report_type} records")

            if not mapped:
                logger.info(f"No valid data found to insert for report {report.report_id}.")
                return ReportOutcome(
                    report_id=report.report_id,
                    document_id=report.document_id,
                    status=OutcomeStatus.EMPTY
                )

            loaded = await self.sink.load(mapped)
            return ReportOutcome(
                report_id=report.report_id,
                document_id=report.document_id,
                status=OutcomeStatus.LOADED,
                records_loaded=loaded
            )

        except Exception as e:
            error_context = (
                e.to_dict() if isinstance(e, IngestionException)
                else {"error_type": type(e).__name__, "message": str(e)}
            )
            logger.error(
                f"Failed to process report {report.report_id} "
                f"(document {report.document_id}): {str(e)}",
                extra={"error_context": error_context}
            )
            return ReportOutcome(
                report_id=report.report_id,
                document_id=report.document_id,
                status=OutcomeStatus.FAILED,
                error_type=type(e).__name__,
                error_message=str(e)
            )
