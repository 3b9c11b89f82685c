from sqlalchemy import Column, Integer, String, DateTime, Index
from models.base import Base


class RealTimeTrafficReport(Base):
    """
    One row of a vendor real-time traffic report.

    Design:
    - Append-only: rows are inserted per ingested report, never updated or deleted
    - No natural key; re-ingesting the same report window inserts duplicates
    - start_time/end_time are naive UTC timestamps
    """
    __tablename__ = "amazon_real_time_traffic_report"

    id = Column(Integer, primary_key=True, autoincrement=True)

    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    asin = Column(String, nullable=False)
    glance_views = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_traffic_asin_start", "asin", "start_time"),
    )
