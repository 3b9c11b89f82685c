"""
Pydantic schemas for mapped traffic report rows
"""

from pydantic import BaseModel, Field, validator
from datetime import datetime, timezone


class TrafficRecordCreate(BaseModel):
    """
    Row shape produced by the record mapper and written by the loader.

    Timestamps are naive UTC to match the `timestamp` columns.
    """

    start_time: datetime
    end_time: datetime
    asin: str = Field("UNKNOWN", min_length=1)
    glance_views: int = 0

    @validator("start_time", "end_time")
    def strip_timezone(cls, v):
        """Store aware timestamps as naive UTC"""
        if v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class TrafficRecordResponse(TrafficRecordCreate):
    """Schema for API responses"""
    id: int

    class Config:
        from_attributes = True
