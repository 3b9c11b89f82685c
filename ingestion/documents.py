"""
Report document resolution, download and decoding.
"""

import gzip
import json
import logging
import zlib
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from core.config import settings
from core.exceptions import (
    EmptyDocumentError,
    MalformedDocumentError,
    MissingDocumentUrlError,
    UnsupportedCompressionError
)
from ingestion.auth import TokenProvider
from ingestion.catalog import ReportRef
from ingestion.fetcher import BackoffFetcher

logger = logging.getLogger(__name__)

GZIP = "GZIP"

RawRecord = Dict[str, Any]


@dataclass(frozen=True)
class DocumentLocation:
    """Short-lived pre-signed download URL and the payload's compression."""

    download_url: str
    compression_algorithm: str = GZIP


class DocumentResolver:
    """Resolve a report's document and turn its payload into raw records."""

    def __init__(
        self,
        fetcher: BackoffFetcher,
        token_provider: TokenProvider,
        base_url: Optional[str] = None,
        api_version: Optional[str] = None
    ):
        self.fetcher = fetcher
        self.token_provider = token_provider
        self.base_url = (base_url or settings.SP_API_BASE_URL).rstrip("/")
        self.api_version = api_version or settings.REPORTS_API_VERSION

    def document_url(self, document_id: str) -> str:
        return f"{self.base_url}/reports/{self.api_version}/documents/{document_id}"

    async def resolve(self, report: ReportRef) -> DocumentLocation:
        """
        Look up the download location of a report document.

        Raises:
            MissingDocumentUrlError: The report has no document id or the
                metadata response has no ``url``
            FetchError: The metadata request failed
        """
        if not report.document_id:
            raise MissingDocumentUrlError(
                f"Report {report.report_id} has no document id",
                context={"report_id": report.report_id}
            )

        credential = await self.token_provider.ensure_token()
        metadata = await self.fetcher.fetch_json(
            self.document_url(report.document_id),
            headers={
                "Authorization": f"Bearer {credential.token_value}",
                "x-amz-access-token": credential.token_value,
                "Content-Type": "application/json",
            }
        )

        url = metadata.get("url") if isinstance(metadata, dict) else None
        if not url:
            raise MissingDocumentUrlError(
                f"URL for report document {report.document_id} is missing.",
                context={"report_id": report.report_id, "document_id": report.document_id}
            )

        return DocumentLocation(
            download_url=url,
            compression_algorithm=metadata.get("compressionAlgorithm") or GZIP
        )

    async def fetch_payload(self, location: DocumentLocation) -> List[RawRecord]:
        """
        Download, decompress and parse a report document.

        Returns the ``reportData`` array, or an empty list when the document
        has no usable ``reportData``.

        Raises:
            EmptyDocumentError: Zero-length body
            UnsupportedCompressionError: Compression other than GZIP
            MalformedDocumentError: Corrupt gzip stream, invalid UTF-8 or JSON
        """
        # Pre-signed URL, authorization headers would invalidate the signature
        body = await self.fetcher.fetch(location.download_url)

        if not body:
            raise EmptyDocumentError(
                "Fetched report document is empty.",
                context={"download_url": location.download_url}
            )

        text = self._decode(body, location)
        logger.debug(f"Decompressed report document: {len(text)} characters")

        try:
            document = json.loads(text)
        except ValueError as e:
            raise MalformedDocumentError(
                "Report document is not valid JSON",
                context={"download_url": location.download_url},
                original_exception=e
            )

        report_data = document.get("reportData") if isinstance(document, dict) else None
        if not isinstance(report_data, list):
            logger.warning(
                'Parsed data is empty or missing the "reportData" field.'
            )
            return []

        return report_data

    def _decode(self, body: bytes, location: DocumentLocation) -> str:
        algorithm = (location.compression_algorithm or GZIP).upper()
        if algorithm != GZIP:
            raise UnsupportedCompressionError(
                f"Unsupported compression algorithm: {location.compression_algorithm}",
                context={"compression_algorithm": location.compression_algorithm}
            )

        try:
            return gzip.decompress(body).decode("utf-8")
        except (OSError, EOFError, zlib.error, UnicodeDecodeError) as e:
            raise MalformedDocumentError(
                "Error decompressing report document",
                context={
                    "download_url": location.download_url,
                    "compression_algorithm": algorithm
                },
                original_exception=e
            )
