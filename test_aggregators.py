"""
Tests for record aggregation.
"""
from datetime import date

import pytest

from conftest import make_record
from enrolment_pulse.exceptions import InvalidArgumentError
from enrolment_pulse.models.records import DailyTrendPoint, RecordFilter
from enrolment_pulse.utils.aggregators import (
    aggregate,
    available_dates,
    chunk_records,
    distinct_districts,
    distinct_states,
    fill_missing_days,
    filter_records,
    flatten_chunks,
    group_by_day,
    group_by_region,
    last_n_days,
    percentage,
    region_totals,
    split_region_key,
    state_summary,
    top_districts,
    top_states,
)


class TestFilterAndAggregate:

    def test_no_filter_keeps_everything(self, sample_records):
        assert len(filter_records(sample_records)) == len(sample_records)

    def test_date_bounds_are_inclusive(self, sample_records):
        filters = RecordFilter(start_date=date(2025, 3, 2), end_date=date(2025, 3, 3))
        subset = filter_records(sample_records, filters)
        assert {r.date for r in subset} == {date(2025, 3, 2), date(2025, 3, 3)}

    def test_aggregate_totals(self):
        records = [
            make_record("2025-03-01", age_0_5=1, age_5_17=2, age_18_greater=3),
            make_record("2025-03-02", state="Kerala", district="Kochi", age_0_5=4),
        ]
        metrics = aggregate(records)
        assert metrics.total_enrolments == 10
        assert metrics.by_age_group.to_dict() == {"age_0_5": 5, "age_5_17": 2, "age_18_greater": 3}
        assert metrics.by_state == {"Bihar": 6, "Kerala": 4}
        assert metrics.by_district == {"Bihar|Patna": 6, "Kerala|Kochi": 4}
        assert metrics.by_date == {"2025-03-01": 6, "2025-03-02": 4}
        assert metrics.record_count == 2

    def test_empty_slice(self, sample_records):
        metrics = aggregate(sample_records, RecordFilter(state="Goa"))
        assert metrics.total_enrolments == 0
        assert metrics.by_state == {}
        assert metrics.scope.state == "Goa"

    def test_sum_decomposes_over_states(self, sample_records):
        whole = aggregate(sample_records).total_enrolments
        parts = sum(
            aggregate(sample_records, RecordFilter(state=s)).total_enrolments
            for s in distinct_states(sample_records)
        )
        assert parts == whole

    def test_every_record_lands_in_one_state_group(self, sample_records):
        metrics = aggregate(sample_records)
        assert sum(metrics.by_state.values()) == metrics.total_enrolments
        assert sum(metrics.by_date.values()) == metrics.total_enrolments


class TestDailySeries:

    def test_group_by_day_is_sorted_and_sparse(self):
        records = [
            make_record("2025-03-05", age_0_5=5),
            make_record("2025-03-01", age_0_5=1),
            make_record("2025-03-01", district="Gaya", age_0_5=2),
        ]
        points = group_by_day(records)
        assert points == [
            DailyTrendPoint(date="2025-03-01", count=3),
            DailyTrendPoint(date="2025-03-05", count=5),
        ]

    def test_group_by_day_empty(self):
        assert group_by_day([]) == []

    def test_fill_missing_days(self):
        points = [DailyTrendPoint("2025-03-01", 3), DailyTrendPoint("2025-03-04", 5)]
        dense = fill_missing_days(points)
        assert [p.date for p in dense] == ["2025-03-01", "2025-03-02", "2025-03-03", "2025-03-04"]
        assert [p.count for p in dense] == [3, 0, 0, 5]

    def test_last_n_days(self):
        points = [DailyTrendPoint(f"2025-03-0{i}", i) for i in range(1, 6)]
        assert [p.count for p in last_n_days(points, 2)] == [4, 5]
        with pytest.raises(InvalidArgumentError):
            last_n_days(points, 0)

    def test_group_by_region(self):
        records = [
            make_record("2025-03-02", age_0_5=2),
            make_record("2025-03-01", age_0_5=1),
            make_record("2025-03-01", state="Kerala", district="Kochi", age_0_5=7),
        ]
        series = group_by_region(records)
        assert series == {
            "Bihar|Patna": {"2025-03-01": 1, "2025-03-02": 2},
            "Kerala|Kochi": {"2025-03-01": 7},
        }
        assert list(series["Bihar|Patna"]) == ["2025-03-01", "2025-03-02"]
        assert region_totals(series) == {"Bihar|Patna": 3, "Kerala|Kochi": 7}
        assert split_region_key("Kerala|Kochi") == ("Kerala", "Kochi")

    def test_available_dates(self, sample_records):
        dates = available_dates(sample_records)
        assert dates[0] == "2025-03-01"
        assert dates[-1] == "2025-03-21"
        assert len(dates) == 21


class TestRankings:

    def test_state_summary_order(self, sample_records):
        summaries = state_summary(sample_records)
        assert [s.state for s in summaries] == ["Uttar Pradesh", "Bihar", "Kerala"]
        up = summaries[0]
        assert up.total_enrolments == 21 * 180
        assert up.districts == 2

    def test_top_states_ties_break_by_name(self):
        records = [
            make_record("2025-03-01", state="Kerala", age_0_5=10),
            make_record("2025-03-01", state="Assam", age_0_5=10),
            make_record("2025-03-01", state="Goa", age_0_5=20),
        ]
        assert [s.state for s in top_states(records, 3)] == ["Goa", "Assam", "Kerala"]

    @pytest.mark.parametrize("n", [0, 1, 2, 3, 10])
    def test_top_states_length(self, sample_records, n):
        result = top_states(sample_records, n)
        assert len(result) == min(n, 3)
        totals = [s.total_enrolments for s in result]
        assert totals == sorted(totals, reverse=True)

    def test_top_states_rejects_negative(self, sample_records):
        with pytest.raises(InvalidArgumentError):
            top_states(sample_records, -1)

    def test_top_districts(self, sample_records):
        districts = top_districts(sample_records, 2)
        assert [(d.state, d.district) for d in districts] == [
            ("Uttar Pradesh", "Lucknow"),
            ("Bihar", "Patna"),
        ]

    def test_distinct_values_keep_first_seen_order(self):
        records = [
            make_record("2025-03-01", state="Kerala", district="Kochi"),
            make_record("2025-03-01", state="Bihar", district="Patna"),
            make_record("2025-03-02", state="Kerala", district="Alappuzha"),
            make_record("2025-03-02", state="Kerala", district="Kochi"),
        ]
        assert distinct_states(records) == ["Kerala", "Bihar"]
        assert distinct_districts(records, "Kerala") == ["Kochi", "Alappuzha"]
        assert distinct_districts(records, "Goa") == []


class TestChunking:

    @pytest.mark.parametrize("size", [1, 2, 3, 7, 100])
    def test_round_trip(self, size):
        items = list(range(10))
        assert flatten_chunks(chunk_records(items, size)) == items

    def test_chunk_sizes(self):
        assert [len(c) for c in chunk_records(list(range(5)), 2)] == [2, 2, 1]

    def test_rejects_bad_size(self):
        with pytest.raises(InvalidArgumentError):
            chunk_records([1, 2], 0)


class TestRecordHelpers:

    def test_normalization_is_idempotent(self):
        record = make_record("2025-03-01", state="  Uttar Pradesh ", district="LUCKNOW ")
        once = record.normalized()
        assert once.state == "uttar pradesh"
        assert once.district == "lucknow"
        assert once.normalized() == once

    def test_percentage(self):
        assert percentage(1, 3) == 33.33
        assert percentage(5, 0) == 0.0
