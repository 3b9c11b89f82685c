"""
SQLAlchemy ORM models for database tables.

Models:
    base: Base declarative class and shared enums (RunStatus, OutcomeStatus)
    traffic_report: Rows of the vendor real-time traffic report

Usage:
    from models.traffic_report import RealTimeTrafficReport
    from models.base import Base

Example:
    row = RealTimeTrafficReport(
        start_time=datetime(2024, 11, 3),
        end_time=datetime(2024, 11, 3, 23, 59, 59),
        asin="B001",
        glance_views=5
    )
    session.add(row)
    await session.commit()
"""

__all__ = [
    "Base",
    "RunStatus",
    "OutcomeStatus",
    "RealTimeTrafficReport",
]
