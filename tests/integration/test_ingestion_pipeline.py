"""
End-to-end ingestion against a mocked Selling Partner API
"""

import pytest
from datetime import date, datetime
from unittest.mock import AsyncMock
from ingestion.loaders.postgres_loader import TrafficReportLoader
from ingestion.runner import ReportIngestionRunner
from models.base import OutcomeStatus, RunStatus
from conftest import RecordingSink, gzip_json

REPORT_TYPE = "GET_VENDOR_REAL_TIME_TRAFFIC_REPORT"


def build_runner(token_provider, paginator, resolver, mapper, sink):
    return ReportIngestionRunner(
        token_provider=token_provider,
        paginator=paginator,
        resolver=resolver,
        mapper=mapper,
        sink=sink,
        reference_date=date(2024, 11, 6)
    )


@pytest.mark.asyncio
async def test_single_report_persists_one_row(token_provider, paginator, resolver, mapper, fake_api, traffic_row):
    fake_api.add_page(None, ["r1"])
    fake_api.add_document("r1", gzip_json({"reportData": [traffic_row]}))
    db_session = AsyncMock()
    runner = build_runner(token_provider, paginator, resolver, mapper, TrafficReportLoader(db_session))

    result = await runner.run(REPORT_TYPE)

    assert result.status == RunStatus.SUCCESS
    assert result.reports_listed == 1
    assert result.records_loaded == 1
    assert str(result.window) == "2024-11-03 to 2024-11-09"

    _, rows = db_session.execute.call_args.args
    assert rows == [{
        "start_time": datetime(2024, 11, 3, 0, 0, 0),
        "end_time": datetime(2024, 11, 3, 23, 59, 59),
        "asin": "B001",
        "glance_views": 5,
    }]
    db_session.commit.assert_called_once()
    # One token exchange serves the whole run
    assert fake_api.token_requests == 1


@pytest.mark.asyncio
async def test_multi_page_catalog_loads_every_report(token_provider, paginator, resolver, mapper, fake_api):
    fake_api.add_page(None, ["r1", "r2"], next_cursor="c1")
    fake_api.add_page("c1", ["r3"])
    for i, rid in enumerate(["r1", "r2", "r3"], start=1):
        fake_api.add_document(rid, gzip_json({"reportData": [{"asin": f"B00{i}", "glanceViews": i}]}))
    sink = RecordingSink()
    runner = build_runner(token_provider, paginator, resolver, mapper, sink)

    result = await runner.run(REPORT_TYPE)

    assert result.status == RunStatus.SUCCESS
    assert result.pages_fetched == 2
    assert [o.report_id for o in result.outcomes] == ["r1", "r2", "r3"]
    assert [(r.asin, r.glance_views) for r in sink.rows] == [("B001", 1), ("B002", 2), ("B003", 3)]
    # One insert per report
    assert len(sink.batches) == 3


@pytest.mark.asyncio
async def test_empty_report_data_is_not_a_failure(token_provider, paginator, resolver, mapper, fake_api):
    fake_api.add_page(None, ["r1"])
    fake_api.add_document("r1", gzip_json({"reportSpecification": {}}))
    sink = RecordingSink()
    runner = build_runner(token_provider, paginator, resolver, mapper, sink)

    result = await runner.run(REPORT_TYPE)

    assert result.status == RunStatus.SUCCESS
    assert result.outcomes[0].status == OutcomeStatus.EMPTY
    assert sink.calls == 0


@pytest.mark.asyncio
async def test_empty_catalog(token_provider, paginator, resolver, mapper, fake_api):
    sink = RecordingSink()
    runner = build_runner(token_provider, paginator, resolver, mapper, sink)

    result = await runner.run(REPORT_TYPE)

    assert result.status == RunStatus.SUCCESS
    assert result.reports_listed == 0
    assert result.records_loaded == 0


@pytest.mark.asyncio
async def test_rerun_inserts_duplicates(token_provider, paginator, resolver, mapper, fake_api, traffic_row):
    fake_api.add_page(None, ["r1"])
    fake_api.add_document("r1", gzip_json({"reportData": [traffic_row]}))
    sink = RecordingSink()
    runner = build_runner(token_provider, paginator, resolver, mapper, sink)

    await runner.run(REPORT_TYPE)
    await runner.run(REPORT_TYPE)

    assert len(sink.rows) == 2
    assert sink.rows[0] == sink.rows[1]
    assert fake_api.token_requests == 1


@pytest.mark.asyncio
async def test_rate_limited_catalog_recovers(token_provider, paginator, resolver, mapper, fake_api, sleeper, traffic_row):
    fake_api.add_page(None, ["r1"])
    fake_api.add_document("r1", gzip_json({"reportData": [traffic_row]}))
    fake_api.catalog_throttles = 2
    sink = RecordingSink()
    runner = build_runner(token_provider, paginator, resolver, mapper, sink)

    result = await runner.run(REPORT_TYPE)

    assert result.status == RunStatus.SUCCESS
    assert sleeper.calls == [1.0, 2.0]
    assert len(sink.rows) == 1
