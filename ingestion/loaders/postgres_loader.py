"""
Append-only bulk insert of traffic report rows into PostgreSQL
"""

from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import insert, text
from models.traffic_report import RealTimeTrafficReport
from schemas.traffic import TrafficRecordCreate
from core.exceptions import PersistenceError
import logging

logger = logging.getLogger(__name__)


class TrafficReportLoader:
    """
    Persistence sink for mapped traffic rows.

    Rows are only ever inserted. There is no upsert or dedup path, so loading
    the same report twice stores it twice.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def load(self, items: List[TrafficRecordCreate]) -> int:
        """
        Insert all items in a single statement and commit.

        Returns:
            Number of rows inserted

        Raises:
            PersistenceError: The insert or commit failed (transaction rolled back)
        """
        if not items:
            return 0

        rows = [item.dict() for item in items]

        try:
            await self.db.execute(insert(RealTimeTrafficReport), rows)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            raise PersistenceError(
                "Failed to insert traffic report rows",
                context={
                    "operation": "INSERT",
                    "table_name": RealTimeTrafficReport.__tablename__,
                    "row_count": len(rows)
                },
                original_exception=e
            )

        logger.info(f"Successfully inserted {len(rows)} records.")
        return len(rows)

    async def ping(self) -> bool:
        """Connectivity probe (SELECT 1). Never raises."""
        try:
            result = await self.db.execute(text("SELECT 1"))
            return result.scalar() == 1
        except Exception as e:
            logger.error(f"Database connection failed: {str(e)}")
            return False
