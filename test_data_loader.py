"""
Tests for row parsing, row sources, the dataset cache and database round trips.
"""
import threading
import time
from datetime import date, datetime

import pytest
from sqlalchemy.orm import sessionmaker

from enrolment_pulse.database import create_db_engine, init_db
from enrolment_pulse.exceptions import InvalidArgumentError, ParseError, ValidationError
from enrolment_pulse.models.enrollment import Enrollment
from enrolment_pulse.services.data_loader import (
    CSVRowSource,
    DatabaseRowSource,
    EnrolmentDataStore,
    clean_count,
    load_records,
    parse_record,
    save_records,
)

CSV_HEADER = "date,state,district,pincode,age_0_5,age_5_17,age_18_greater\n"


def row(**overrides):
    data = {
        "date": "01-03-2025",
        "state": "Bihar",
        "district": "Patna",
        "pincode": "800001",
        "age_0_5": "1",
        "age_5_17": "2",
        "age_18_greater": "3",
    }
    data.update(overrides)
    return data


class ListSource:
    """In-memory row source that counts how often it is read."""

    def __init__(self, rows):
        self._rows = rows
        self.reads = 0

    def rows(self):
        self.reads += 1
        return iter(list(self._rows))


class SlowSource(ListSource):

    def rows(self):
        time.sleep(0.05)
        return super().rows()


class GatedSource(ListSource):
    """Blocks inside rows() until released, so a reload can be held mid-flight."""

    def __init__(self, rows):
        super().__init__(rows)
        self.entered = threading.Event()
        self.release = threading.Event()
        self.release.set()

    def rows(self):
        self.entered.set()
        self.release.wait(timeout=5)
        return super().rows()


class TestParseRecord:

    @pytest.mark.parametrize("raw", ["01-03-2025", "2025-03-01", "01/03/2025", "2025/03/01"])
    def test_date_formats(self, raw):
        assert parse_record(row(date=raw), 0).date == date(2025, 3, 1)

    def test_date_objects_pass_through(self):
        assert parse_record(row(date=date(2025, 3, 1)), 0).date == date(2025, 3, 1)
        assert parse_record(row(date=datetime(2025, 3, 1, 9, 30)), 0).date == date(2025, 3, 1)

    def test_text_fields_are_trimmed(self):
        record = parse_record(row(state="  Bihar ", district=" Patna", pincode=" 800001 "), 0)
        assert (record.state, record.district, record.pincode) == ("Bihar", "Patna", "800001")

    @pytest.mark.parametrize("raw", ["31-02-2025", "yesterday", "", None])
    def test_bad_date_raises_parse_error(self, raw):
        with pytest.raises(ParseError) as exc_info:
            parse_record(row(date=raw), 7)
        assert exc_info.value.row == 7
        assert exc_info.value.field == "date"

    def test_missing_date_raises_parse_error(self):
        data = row()
        del data["date"]
        with pytest.raises(ParseError):
            parse_record(data, 0)

    @pytest.mark.parametrize("raw,expected", [("", 0), (None, 0), ("abc", 0), ("4.0", 4), (9, 9)])
    def test_count_defaults(self, raw, expected):
        assert clean_count(raw, 0, "age_0_5") == expected

    def test_missing_count_column_is_zero(self):
        data = row()
        del data["age_5_17"]
        assert parse_record(data, 0).age_5_17 == 0

    def test_negative_count_raises_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_record(row(age_18_greater="-3"), 4)
        assert exc_info.value.row == 4
        assert exc_info.value.field == "age_18_greater"


class TestLoadRecords:

    def test_raise_policy_stops_on_first_bad_row(self):
        rows = [row(), row(date="bad"), row()]
        with pytest.raises(ParseError):
            load_records(rows, on_error="raise")

    def test_skip_policy_collects_errors(self):
        rows = [row(), row(date="bad"), row(age_0_5="-1"), row(date="2025-03-02")]
        result = load_records(rows, on_error="skip")
        assert len(result.records) == 2
        assert result.error_count == 2
        assert isinstance(result.errors[0], ParseError)
        assert isinstance(result.errors[1], ValidationError)
        assert result.to_dict()["errors"][0]["detail"]["row"] == 1

    def test_records_are_immutable_tuple(self):
        result = load_records([row()])
        assert isinstance(result.records, tuple)

    def test_unknown_policy(self):
        with pytest.raises(InvalidArgumentError):
            load_records([row()], on_error="ignore")


class TestCSVRowSource:

    def test_reads_every_file_in_name_order(self, tmp_path):
        (tmp_path / "b.csv").write_text(CSV_HEADER + "02-03-2025,Kerala,Kochi,682001,1,1,1\n")
        (tmp_path / "a.csv").write_text(CSV_HEADER + "01-03-2025,Bihar,Patna,800001,4,,6\n")
        (tmp_path / "notes.txt").write_text("ignored")

        source = CSVRowSource(tmp_path)
        assert [f.name for f in source.csv_files()] == ["a.csv", "b.csv"]

        result = load_records(source.rows())
        assert [r.state for r in result.records] == ["Bihar", "Kerala"]
        assert result.records[0].age_5_17 == 0
        assert result.records[0].pincode == "800001"

    def test_missing_directory_yields_nothing(self, tmp_path):
        source = CSVRowSource(tmp_path / "absent")
        assert list(source.rows()) == []

    def test_line_with_extra_field_is_a_row_error(self, tmp_path):
        (tmp_path / "a.csv").write_text(
            CSV_HEADER
            + "01-03-2025,Bihar,Patna,800001,1,2,3\n"
            + "02-03-2025,Bihar,Patna,800001,1,2,3,99\n"
            + "03-03-2025,Bihar,Patna,800001,1,2,3\n"
        )
        store = EnrolmentDataStore(CSVRowSource(tmp_path), on_error="skip")

        records = store.records()
        assert [r.date for r in records] == [date(2025, 3, 1), date(2025, 3, 3)]
        assert len(store.load_errors) == 1
        error = store.load_errors[0]
        assert isinstance(error, ParseError)
        assert error.row == 2
        assert error.field == "line"
        assert error.value.endswith(",99")
        assert "a.csv" in error.message
        assert store.status()["error_count"] == 1

    def test_line_with_extra_field_fails_under_raise_policy(self, tmp_path):
        (tmp_path / "a.csv").write_text(
            CSV_HEADER
            + "01-03-2025,Bihar,Patna,800001,1,2,3\n"
            + "02-03-2025,Bihar,Patna,800001,1,2,3,99\n"
        )
        with pytest.raises(ParseError):
            load_records(CSVRowSource(tmp_path).rows(), on_error="raise")

    def test_empty_file_is_skipped(self, tmp_path):
        (tmp_path / "a.csv").write_text(CSV_HEADER + "01-03-2025,Bihar,Patna,800001,1,2,3\n")
        (tmp_path / "b.csv").write_text("")
        store = EnrolmentDataStore(CSVRowSource(tmp_path), on_error="skip")

        assert len(store.records()) == 1
        assert store.load_errors == []


class TestEnrolmentDataStore:

    def test_loads_once(self):
        source = ListSource([row(), row(date="2025-03-02")])
        store = EnrolmentDataStore(source)
        first = store.records()
        second = store.records()
        assert first is second
        assert source.reads == 1
        assert store.is_loaded

    def test_invalidate_reloads_on_next_read(self):
        source = ListSource([row()])
        store = EnrolmentDataStore(source)
        store.records()
        store.invalidate()
        assert not store.is_loaded
        store.records()
        assert source.reads == 2

    def test_refresh_picks_up_new_rows(self):
        source = ListSource([row()])
        store = EnrolmentDataStore(source)
        assert len(store.records()) == 1
        source._rows.append(row(date="2025-03-02"))
        assert len(store.refresh()) == 2
        assert len(store.records()) == 2

    def test_status_and_load_errors(self):
        store = EnrolmentDataStore(ListSource([row(), row(date="nope")]), on_error="skip")
        assert store.status()["loaded"] is False
        store.records()
        status = store.status()
        assert status["loaded"] is True
        assert status["record_count"] == 1
        assert status["error_count"] == 1
        assert len(store.load_errors) == 1
        assert store.loaded_at is not None

    def test_concurrent_first_reads_load_once(self):
        source = SlowSource([row(), row(date="2025-03-02")])
        store = EnrolmentDataStore(source)
        barrier = threading.Barrier(8)
        results = []

        def read():
            barrier.wait()
            results.append(store.records())

        threads = [threading.Thread(target=read) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert source.reads == 1
        assert len(results) == 8
        assert all(r is results[0] for r in results)
        assert len(results[0]) == 2

    def test_reads_during_refresh_see_old_then_new(self):
        source = GatedSource([row(), row(date="nope")])
        store = EnrolmentDataStore(source, on_error="skip")
        old = store.records()

        source.entered.clear()
        source.release.clear()
        source._rows = [row(), row(date="2025-03-02"), row(date="2025-03-03")]
        refresher = threading.Thread(target=store.refresh)
        refresher.start()
        assert source.entered.wait(timeout=5)

        assert store.records() is old
        status = store.status()
        assert (status["record_count"], status["error_count"]) == (1, 1)

        source.release.set()
        refresher.join(timeout=5)

        new = store.records()
        assert new is not old
        assert len(new) == 3
        status = store.status()
        assert (status["record_count"], status["error_count"]) == (3, 0)

    def test_failed_load_keeps_previous_dataset(self):
        source = ListSource([row()])
        store = EnrolmentDataStore(source, on_error="raise")
        before = store.records()
        source._rows.append(row(date="bad"))
        with pytest.raises(ParseError):
            store.refresh()
        assert store.records() is before


class TestDatabaseRoundTrip:

    @pytest.fixture
    def session_factory(self, tmp_path):
        engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}")
        init_db(bind=engine)
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
        engine.dispose()

    def test_save_then_load(self, session_factory):
        records = load_records([
            row(),
            row(date="2025-03-02", state="Kerala", district="Kochi", age_0_5="10"),
            row(date="2025-03-03"),
        ]).records

        db = session_factory()
        try:
            assert save_records(db, records, chunk_size=2) == 3
            assert db.query(Enrollment).count() == 3
        finally:
            db.close()

        loaded = load_records(DatabaseRowSource(session_factory).rows()).records
        assert loaded == records

    def test_store_over_database(self, session_factory):
        db = session_factory()
        try:
            save_records(db, load_records([row()]).records)
        finally:
            db.close()

        store = EnrolmentDataStore(DatabaseRowSource(session_factory))
        records = store.records()
        assert len(records) == 1
        assert records[0].total == 6
