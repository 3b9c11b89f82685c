"""
Report catalog discovery: week windows and cursor pagination.

The catalog is walked page by page until the API stops returning a
``nextPageToken``. A page that fails ends the walk early; whatever was
collected so far is returned together with the reason, so callers can tell
a complete listing from a truncated one.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, AsyncIterator, Dict, List, Optional

from core.config import settings
from core.exceptions import CatalogError
from ingestion.auth import TokenProvider
from ingestion.fetcher import BackoffFetcher

logger = logging.getLogger(__name__)

DONE_STATUS = "DONE"


@dataclass(frozen=True)
class DateWindow:
    start: date
    end: date

    def as_params(self) -> Dict[str, str]:
        return {"startDate": self.start.isoformat(), "endDate": self.end.isoformat()}

    def __str__(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


def week_window(reference: date) -> DateWindow:
    """Sunday-to-Saturday week containing ``reference``."""
    # date.weekday() is Monday=0; shift so Sunday=0
    days_since_sunday = (reference.weekday() + 1) % 7
    start = reference - timedelta(days=days_since_sunday)
    return DateWindow(start=start, end=start + timedelta(days=6))


@dataclass(frozen=True)
class ReportRef:
    """One completed report instance listed by the catalog."""

    report_id: str
    document_id: Optional[str]

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "ReportRef":
        return cls(
            report_id=str(item.get("reportId", "")),
            document_id=item.get("reportDocumentId") or None
        )


@dataclass
class ReportListing:
    """A single catalog page."""

    items: List[ReportRef]
    cursor: Optional[str] = None


@dataclass
class CatalogListing:
    """
    Accumulated catalog result for one window.

    ``truncated_reason`` is set when a page failed and the walk stopped early;
    ``items`` then holds only the pages fetched before the failure.
    """

    window: DateWindow
    items: List[ReportRef] = field(default_factory=list)
    pages_fetched: int = 0
    truncated_reason: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.truncated_reason is None

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


class ReportCatalogPaginator:
    """
    List completed reports of a type within a week window.

    Attributes:
        page_size: Catalog page size (default: 50)
        marketplace_id: Marketplace filter
    """

    def __init__(
        self,
        fetcher: BackoffFetcher,
        token_provider: TokenProvider,
        base_url: Optional[str] = None,
        api_version: Optional[str] = None,
        marketplace_id: Optional[str] = None,
        page_size: Optional[int] = None
    ):
        self.fetcher = fetcher
        self.token_provider = token_provider
        self.base_url = (base_url or settings.SP_API_BASE_URL).rstrip("/")
        self.api_version = api_version or settings.REPORTS_API_VERSION
        self.marketplace_id = marketplace_id or settings.MARKETPLACE_ID
        self.page_size = page_size or settings.REPORT_PAGE_SIZE

    @property
    def reports_url(self) -> str:
        return f"{self.base_url}/reports/{self.api_version}/reports"

    async def _auth_headers(self) -> Dict[str, str]:
        credential = await self.token_provider.ensure_token()
        return {
            "Authorization": f"Bearer {credential.token_value}",
            "x-amz-access-token": credential.token_value,
            "Content-Type": "application/json",
        }

    def _page_params(
        self, report_type: str, window: DateWindow, cursor: Optional[str]
    ) -> Dict[str, Any]:
        params = {
            "reportTypes": report_type,
            "processingStatuses": DONE_STATUS,
            "marketplaceIds": self.marketplace_id,
            "pageSize": self.page_size,
            **window.as_params(),
        }
        if cursor:
            params["nextPageToken"] = cursor
        return params

    async def fetch_page(
        self, report_type: str, window: DateWindow, cursor: Optional[str] = None
    ) -> ReportListing:
        """Fetch and parse one catalog page."""
        headers = await self._auth_headers()
        data = await self.fetcher.fetch_json(
            self.reports_url,
            headers=headers,
            params=self._page_params(report_type, window, cursor)
        )

        if not isinstance(data, dict):
            raise CatalogError(
                "Unexpected catalog response shape",
                context={"report_type": report_type, "cursor": cursor}
            )

        raw_items = data.get("reports") or []
        if not isinstance(raw_items, list):
            raise CatalogError(
                "Catalog response 'reports' is not a list",
                context={"report_type": report_type, "cursor": cursor}
            )

        items = [ReportRef.from_api(item) for item in raw_items if isinstance(item, dict)]
        return ReportListing(items=items, cursor=data.get("nextPageToken") or None)

    async def iter_pages(
        self, report_type: str, window: DateWindow
    ) -> AsyncIterator[ReportListing]:
        """Yield catalog pages until no cursor is returned. Page errors propagate."""
        cursor: Optional[str] = None
        while True:
            page = await self.fetch_page(report_type, window, cursor)
            yield page
            if not page.cursor:
                return
            cursor = page.cursor

    async def list_reports(self, report_type: str, reference_date: date) -> CatalogListing:
        """
        Collect every report of ``report_type`` in the week containing ``reference_date``.

        A failing page stops the walk without raising; the failure is logged and
        recorded as ``truncated_reason`` on the returned listing.
        """
        window = week_window(reference_date)
        listing = CatalogListing(window=window)

        logger.info(f"Fetching {report_type} reports for the week: {window}")

        try:
            async for page in self.iter_pages(report_type, window):
                listing.items.extend(page.items)
                listing.pages_fetched += 1
                logger.debug(
                    f"Catalog page {listing.pages_fetched}: {len(page.items)} reports"
                )
        except Exception as e:
            listing.truncated_reason = f"{type(e).__name__}: {e}"
            logger.error(
                f"Error fetching reports page {listing.pages_fetched + 1}, "
                f"catalog listing truncated: {e}"
            )

        logger.info(
            f"Total reports fetched for the week {window}: {len(listing.items)}"
            + ("" if listing.is_complete else " (incomplete)")
        )
        return listing
