"""
Report acquisition pipeline for Selling Partner traffic reports.

Modules:
    auth: TokenProvider, caches the Login With Amazon access token
    fetcher: BackoffFetcher, the single GET-with-429-backoff primitive
    catalog: Week windows and cursor-paginated report listing
    documents: Document URL resolution, download and gzip/JSON decoding
    runner: ReportIngestionRunner, orchestrates one run with per-report isolation
    scheduler: APScheduler integration and the run-in-progress guard

Subpackages:
    transformers: RecordMapper (raw reportData entries -> row schema)
    loaders: TrafficReportLoader (append-only bulk insert, connectivity probe)

Architecture:
    Runner -> TokenProvider (ensure token)
           -> ReportCatalogPaginator (until no nextPageToken)
           -> for each report: DocumentResolver -> RecordMapper -> loader

    Everything runs sequentially. A failing catalog page truncates the
    listing (recorded on the result); a failing report is recorded as a
    failed outcome and the run continues. Only token acquisition failures
    abort a run.

Example:
    scheduler = ReportScheduler()
    result = await scheduler.run_ingestion("GET_VENDOR_REAL_TIME_TRAFFIC_REPORT")

    print(f"Loaded {result.records_loaded} records, {result.reports_failed} reports failed")
"""

__all__ = [
    "TokenProvider",
    "Credential",
    "BackoffFetcher",
    "ReportCatalogPaginator",
    "DocumentResolver",
    "RecordMapper",
    "TrafficReportLoader",
    "ReportIngestionRunner",
    "ReportScheduler",
]
