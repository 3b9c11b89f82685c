"""
Pydantic schemas for data validation and serialization.

Schemas:
    traffic: Mapped traffic report rows (mapper output, loader input, API output)
    api: API endpoint response schemas

Usage:
    from schemas.traffic import TrafficRecordCreate
    from schemas.api import HealthCheckResponse, TrafficDataResponse

Example:
    row = TrafficRecordCreate(
        start_time="2024-11-03T00:00:00Z",
        end_time="2024-11-03T23:59:59Z",
        asin="B001",
        glance_views=5
    )
    assert row.start_time.tzinfo is None
"""

__all__ = [
    "TrafficRecordCreate",
    "TrafficRecordResponse",
    "HealthCheckResponse",
    "LastRunInfo",
    "IngestionTriggerResponse",
    "PaginationMetadata",
    "TrafficDataResponse",
    "ErrorResponse",
]
