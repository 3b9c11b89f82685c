"""
Map raw traffic report records onto the persisted row shape
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from schemas.traffic import TrafficRecordCreate
import logging

logger = logging.getLogger(__name__)

UNKNOWN_ASIN = "UNKNOWN"


class RecordMapper:
    """
    Convert ``reportData`` entries into TrafficRecordCreate rows.

    Handles:
    - Missing or null fields (defaults, never raises)
    - ISO-8601 timestamps with a trailing ``Z``
    - Non-mapping entries (skipped)

    Missing timestamps default to the time of mapping, not to the report window.
    """

    def __init__(self, clock=None):
        self._clock = clock or datetime.utcnow

    def map(self, raw_records: Any) -> List[TrafficRecordCreate]:
        if not isinstance(raw_records, list):
            return []

        logger.debug(f"Mapping {len(raw_records)} raw records")

        mapped = []
        for index, record in enumerate(raw_records):
            if not isinstance(record, dict):
                logger.warning(f"Skipping non-object record at index {index}")
                continue
            mapped.append(self._map_record(record))
        return mapped

    def _map_record(self, record: Dict[str, Any]) -> TrafficRecordCreate:
        now = self._clock()
        asin = record.get("asin")
        return TrafficRecordCreate(
            start_time=self._parse_datetime(record.get("startTime")) or now,
            end_time=self._parse_datetime(record.get("endTime")) or now,
            asin=str(asin) if asin else UNKNOWN_ASIN,
            glance_views=self._parse_int(record.get("glanceViews")),
        )

    @staticmethod
    def _parse_int(value: Any) -> int:
        """Safely parse int value, 0 when missing"""
        if value is None or value == "" or isinstance(value, bool):
            return 0
        try:
            return int(value)  # Exact for ints and integer strings
        except (ValueError, TypeError, OverflowError):
            pass
        try:
            return int(float(value))  # Handle "10.0" strings
        except (ValueError, TypeError, OverflowError):
            return 0

    @staticmethod
    def _parse_datetime(value: Any) -> Optional[datetime]:
        """Safely parse an ISO-8601 value into a naive UTC datetime"""
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            parsed = value
        else:
            try:
                parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
            except ValueError:
                return None
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed
