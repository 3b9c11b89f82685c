"""
Unit tests for the traffic record mapper
"""

from datetime import datetime
import pytest
from ingestion.transformers.traffic_mapper import RecordMapper, UNKNOWN_ASIN

MAPPING_TIME = datetime(2026, 1, 15, 12, 0, 0)


@pytest.fixture
def fixed_mapper():
    return RecordMapper(clock=lambda: MAPPING_TIME)


class TestRecordMapper:
    """Test defaulting and conversion"""

    def test_maps_complete_record(self, mapper, traffic_row):
        [row] = mapper.map([traffic_row])

        assert row.asin == "B001"
        assert row.glance_views == 5
        assert row.start_time == datetime(2024, 11, 3, 0, 0, 0)
        assert row.end_time == datetime(2024, 11, 3, 23, 59, 59)
        assert row.start_time.tzinfo is None

    def test_missing_fields_use_defaults(self, fixed_mapper):
        [row] = fixed_mapper.map([{}])

        assert row.asin == UNKNOWN_ASIN == "UNKNOWN"
        assert row.glance_views == 0
        assert row.start_time == MAPPING_TIME
        assert row.end_time == MAPPING_TIME

    def test_null_fields_use_defaults(self, fixed_mapper):
        [row] = fixed_mapper.map([
            {"asin": None, "glanceViews": None, "startTime": None, "endTime": None}
        ])

        assert row.asin == "UNKNOWN"
        assert row.glance_views == 0
        assert row.start_time == MAPPING_TIME

    def test_empty_asin_is_unknown(self, mapper):
        [row] = mapper.map([{"asin": ""}])

        assert row.asin == "UNKNOWN"

    def test_zero_glance_views_preserved(self, mapper):
        [row] = mapper.map([{"asin": "B002", "glanceViews": 0}])

        assert row.glance_views == 0

    def test_numeric_strings_coerced(self, mapper):
        [row] = mapper.map([{"glanceViews": "12"}])

        assert row.glance_views == 12

    def test_float_strings_truncated(self, mapper):
        [row] = mapper.map([{"glanceViews": "10.0"}])

        assert row.glance_views == 10

    @pytest.mark.parametrize("value", [9007199254740993, "9007199254740993"])
    def test_large_counts_keep_precision(self, mapper, value):
        [row] = mapper.map([{"glanceViews": value}])

        assert row.glance_views == 9007199254740993

    def test_garbage_values_default(self, fixed_mapper):
        [row] = fixed_mapper.map([{"glanceViews": "many", "startTime": "yesterday"}])

        assert row.glance_views == 0
        assert row.start_time == MAPPING_TIME

    def test_offset_timestamps_normalised_to_utc(self, mapper):
        [row] = mapper.map([{"startTime": "2024-11-03T02:00:00+02:00"}])

        assert row.start_time == datetime(2024, 11, 3, 0, 0, 0)

    def test_missing_timestamps_are_not_inferred_from_window(self, fixed_mapper):
        [row] = fixed_mapper.map([{"asin": "B001", "glanceViews": 1}])

        assert row.start_time == MAPPING_TIME

    @pytest.mark.parametrize("raw", [None, {}, "reportData", 42])
    def test_non_list_input_returns_empty(self, mapper, raw):
        assert mapper.map(raw) == []

    def test_non_object_entries_skipped(self, mapper, traffic_row):
        rows = mapper.map([traffic_row, "junk", None, 7])

        assert len(rows) == 1
        assert rows[0].asin == "B001"

    def test_preserves_order(self, mapper):
        rows = mapper.map([{"asin": f"B00{i}"} for i in range(5)])

        assert [r.asin for r in rows] == ["B000", "B001", "B002", "B003", "B004"]
