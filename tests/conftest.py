"""
Pytest configuration and fixtures
"""

import gzip
import json
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio

from ingestion.auth import TokenProvider
from ingestion.catalog import ReportCatalogPaginator
from ingestion.documents import DocumentResolver
from ingestion.fetcher import BackoffFetcher
from ingestion.transformers.traffic_mapper import RecordMapper

BASE_URL = "https://sellingpartnerapi-na.amazon.com"
TOKEN_URL = "https://api.amazon.com/auth/o2/token"
DOWNLOAD_HOST = "https://tortuga-prod-na.s3.amazonaws.com"


class FakeClock:
    """Controllable time.time() replacement"""

    def __init__(self, now: float = 1_730_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class SleepRecorder:
    """asyncio.sleep replacement that records requested delays (seconds)"""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


class RecordingSink:
    """In-memory persistence sink"""

    def __init__(self, fail_on_call: Optional[int] = None):
        self.batches: List[list] = []
        self.fail_on_call = fail_on_call
        self.calls = 0

    async def load(self, items) -> int:
        self.calls += 1
        if self.fail_on_call == self.calls:
            raise RuntimeError("Simulated DB failure during insert")
        self.batches.append(list(items))
        return len(items)

    @property
    def rows(self) -> list:
        return [row for batch in self.batches for row in batch]


def gzip_json(document: Any) -> bytes:
    return gzip.compress(json.dumps(document).encode("utf-8"))


class FakeSellingPartnerAPI:
    """
    httpx.MockTransport handler emulating the token endpoint, the reports
    catalog, document metadata and pre-signed document downloads.
    """

    def __init__(self):
        self.token_responses: List[httpx.Response] = []
        # cursor (None for first page) -> (report items, next cursor)
        self.pages: Dict[Optional[str], Tuple[List[Dict[str, Any]], Optional[str]]] = {}
        self.failing_cursors: Dict[Optional[str], int] = {}
        # Number of catalog requests to answer with 429 before serving pages
        self.catalog_throttles = 0
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.downloads: Dict[str, bytes] = {}
        self.requests: List[httpx.Request] = []
        self.token_requests = 0

    # -------------------------------------------------- setup helpers

    def add_page(self, cursor: Optional[str], report_ids: List[str], next_cursor: Optional[str] = None):
        items = [
            {
                "reportId": rid,
                "reportDocumentId": f"doc-{rid}",
                "reportType": "GET_VENDOR_REAL_TIME_TRAFFIC_REPORT",
                "processingStatus": "DONE",
            }
            for rid in report_ids
        ]
        self.pages[cursor] = (items, next_cursor)

    def add_document(self, report_id: str, body: bytes, compression: Optional[str] = "GZIP"):
        url = f"{DOWNLOAD_HOST}/{report_id}.json.gz?X-Amz-Signature=abc"
        metadata = {"reportDocumentId": f"doc-{report_id}", "url": url}
        if compression is not None:
            metadata["compressionAlgorithm"] = compression
        self.documents[f"doc-{report_id}"] = metadata
        self.downloads[url.split("?")[0]] = body

    # -------------------------------------------------- transport

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        path = request.url.path

        if url.startswith(TOKEN_URL):
            self.token_requests += 1
            if self.token_responses:
                return self.token_responses.pop(0)
            return httpx.Response(200, json={"access_token": f"Atza|token-{self.token_requests}", "expires_in": 3600})

        if url.startswith(DOWNLOAD_HOST):
            body = self.downloads.get(f"{DOWNLOAD_HOST}{path}")
            if body is None:
                return httpx.Response(404)
            return httpx.Response(200, content=body)

        if path == "/reports/2021-06-30/reports":
            if self.catalog_throttles:
                self.catalog_throttles -= 1
                return httpx.Response(429)
            cursor = request.url.params.get("nextPageToken")
            if cursor in self.failing_cursors:
                return httpx.Response(self.failing_cursors[cursor], json={"errors": []})
            items, next_cursor = self.pages.get(cursor, ([], None))
            payload: Dict[str, Any] = {"reports": items}
            if next_cursor:
                payload["nextPageToken"] = next_cursor
            return httpx.Response(200, json=payload)

        if path.startswith("/reports/2021-06-30/documents/"):
            document_id = path.rsplit("/", 1)[-1]
            if document_id not in self.documents:
                return httpx.Response(404, json={"errors": [{"code": "NotFound"}]})
            return httpx.Response(200, json=self.documents[document_id])

        return httpx.Response(404)

    def catalog_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/reports/2021-06-30/reports"]


def form_body(request: httpx.Request) -> Dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def fake_api():
    return FakeSellingPartnerAPI()


@pytest_asyncio.fixture
async def http_client(fake_api):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_api.handler)) as client:
        yield client


@pytest.fixture
def token_provider(http_client, clock):
    return TokenProvider(
        http_client,
        client_id="amzn1.application-oa2-client.test",
        client_secret="test-secret",
        refresh_token="Atzr|test-refresh",
        token_url=TOKEN_URL,
        clock=clock
    )


@pytest.fixture
def fetcher(http_client, sleeper, clock):
    return BackoffFetcher(http_client, max_retries=5, initial_delay_ms=1000, sleep=sleeper, clock=clock)


@pytest.fixture
def paginator(fetcher, token_provider):
    return ReportCatalogPaginator(fetcher, token_provider, base_url=BASE_URL, api_version="2021-06-30")


@pytest.fixture
def resolver(fetcher, token_provider):
    return DocumentResolver(fetcher, token_provider, base_url=BASE_URL, api_version="2021-06-30")


@pytest.fixture
def mapper():
    return RecordMapper()


@pytest.fixture
def traffic_row():
    return {
        "asin": "B001",
        "glanceViews": 5,
        "startTime": "2024-11-03T00:00:00Z",
        "endTime": "2024-11-03T23:59:59Z",
    }
