"""
Script to run one report ingestion outside the API process
"""

import argparse
import asyncio
import json
import sys
import os
import logging
from datetime import date

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import engine
from core.exceptions import IngestionException
from core.logging import setup_logging
from ingestion.scheduler import ReportScheduler
from models.base import RunStatus

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Ingest Selling Partner traffic reports")
    parser.add_argument("--report-type", default=settings.REPORT_TYPE)
    parser.add_argument(
        "--reference-date",
        type=date.fromisoformat,
        default=settings.REPORT_START_DATE,
        help="Any date inside the week to ingest (YYYY-MM-DD)"
    )
    return parser.parse_args(argv)


async def run_ingestion(report_type: str, reference_date: date) -> int:
    """Run one ingestion and return the process exit code"""
    scheduler = ReportScheduler(report_type=report_type, reference_date=reference_date)

    try:
        result = await scheduler.run_ingestion()
        print(json.dumps(result.to_dict(), indent=2))
        # Failed reports and a truncated catalog both count as partial
        return 0 if result.status == RunStatus.SUCCESS else 2
    except IngestionException as e:
        logger.error(f"Ingestion failed: {e}", extra={"error_context": e.to_dict()})
        return 1
    finally:
        await scheduler.stop()
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    args = parse_args()
    sys.exit(asyncio.run(run_ingestion(args.report_type, args.reference_date)))
