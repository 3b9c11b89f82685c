"""
FastAPI dependencies
"""

from typing import AsyncGenerator
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from core.database import async_session_maker
from ingestion.scheduler import ReportScheduler


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for the request"""
    async with async_session_maker() as session:
        yield session


def get_scheduler(request: Request) -> ReportScheduler:
    """The application's ReportScheduler (owner of the shared token cache)"""
    return request.app.state.scheduler
