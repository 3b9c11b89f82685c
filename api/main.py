"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, reports
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.database import check_database_connection
from core.logging import setup_logging
from ingestion.scheduler import ReportScheduler
import logging

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Vendor Traffic Report Ingestion API",
    description="Scheduled and on-demand ingestion of Selling Partner traffic reports",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

# Owns the HTTP client and token cache for the lifetime of the process
app.state.scheduler = ReportScheduler()


# Include routers
app.include_router(health.router)
app.include_router(reports.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Vendor Traffic Report Ingestion API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    await check_database_connection()

    scheduler: ReportScheduler = app.state.scheduler
    scheduler.start()

    if settings.RUN_ON_STARTUP:
        logger.info("Starting report fetch process...")
        scheduler.start_background_run()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Vendor Traffic Report Ingestion API")
    await app.state.scheduler.stop()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Vendor Traffic Report Ingestion API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "fetch": "/reports/fetch",
            "latest_run": "/reports/runs/latest",
            "traffic": "/reports/traffic"
        }
    }
