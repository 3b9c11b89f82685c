"""
Database session management with SQLAlchemy async
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)

# Create async engine
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.ENVIRONMENT == "development",
    poolclass=NullPool,
    future=True
)

# Create session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False
)


async def get_session() -> AsyncSession:
    """Get database session"""
    async with async_session_maker() as session:
        yield session


async def check_database_connection(session_maker=async_session_maker) -> bool:
    """Run a connectivity probe and log the outcome. Never raises."""
    try:
        async with session_maker() as session:
            result = await session.execute(text("SELECT 1"))
            if result.scalar() == 1:
                logger.info("Database connection verified successfully.")
                return True
            logger.warning("Database connection test returned no result.")
            return False
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")
        return False
