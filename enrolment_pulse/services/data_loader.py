"""
Data loader - turns raw CSV or database rows into validated EnrolmentRecords.

Rows are plain mappings keyed by the CSV column names (date, state,
district, pincode, age_0_5, age_5_17, age_18_greater). Row sources only
produce mappings; all validation happens in parse_record so both sources
share the same rules. A source that cannot split a line yields a ParseError
in that row's place, and load_records applies the error policy to it like
any other bad row.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Literal, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd
from pandas.errors import EmptyDataError
from sqlalchemy.orm import Session
from tqdm import tqdm

from enrolment_pulse.config import settings
from enrolment_pulse.exceptions import (
    EnrolmentPulseError,
    InvalidArgumentError,
    ParseError,
    ValidationError,
)
from enrolment_pulse.models.records import EnrolmentRecord
from enrolment_pulse.utils.aggregators import chunk_records
from enrolment_pulse.utils.constants import AGE_COLUMNS
from enrolment_pulse.utils.date_utils import parse_date_string

logger = logging.getLogger(__name__)

ErrorPolicy = Literal["raise", "skip"]


def clean_string(value: Any) -> str:
    """Trimmed text; missing values become an empty string."""
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value).strip()


def clean_count(value: Any, row_index: int, field_name: str) -> int:
    """
    Parse an age-band count.

    Absent, blank or unparsable values count as 0. Negative values are
    rejected.

    Raises:
        ValidationError: negative count
    """
    if value is None:
        return 0
    if isinstance(value, float) and pd.isna(value):
        return 0

    if isinstance(value, int):
        count = value
    else:
        text = str(value).strip()
        if not text:
            return 0
        try:
            count = int(float(text))
        except (ValueError, OverflowError):
            return 0

    if count < 0:
        raise ValidationError(
            f"Negative count in row {row_index}",
            row=row_index,
            field=field_name,
            value=value,
        )
    return count


def parse_record(row: Mapping[str, Any], row_index: int) -> EnrolmentRecord:
    """
    Build an EnrolmentRecord from one raw row.

    Args:
        row: Mapping with the CSV column names
        row_index: Position of the row in its source, used in error context

    Returns:
        Parsed record with trimmed text fields

    Raises:
        ParseError: missing or malformed date
        ValidationError: negative count
    """
    raw_date = row.get("date")
    if isinstance(raw_date, datetime):
        parsed_date: Optional[date] = raw_date.date()
    elif isinstance(raw_date, date):
        parsed_date = raw_date
    else:
        parsed_date = parse_date_string(raw_date) if raw_date is not None else None

    if parsed_date is None:
        raise ParseError(
            f"Could not parse date in row {row_index}",
            row=row_index,
            field="date",
            value=raw_date,
        )

    counts = {col: clean_count(row.get(col), row_index, col) for col in AGE_COLUMNS}

    return EnrolmentRecord(
        date=parsed_date,
        state=clean_string(row.get("state")),
        district=clean_string(row.get("district")),
        pincode=clean_string(row.get("pincode")),
        **counts,
    )


@dataclass
class LoadResult:
    """Records that parsed plus the errors of rows that did not."""
    records: Tuple[EnrolmentRecord, ...]
    errors: List[EnrolmentPulseError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_count": len(self.records),
            "error_count": self.error_count,
            "errors": [e.to_dict() for e in self.errors],
        }


def load_records(
    rows: Iterable[Union[Mapping[str, Any], ParseError]],
    on_error: ErrorPolicy = "raise"
) -> LoadResult:
    """
    Parse every row.

    With on_error="raise" the first bad row aborts the load. With "skip"
    bad rows are logged and collected in LoadResult.errors.
    """
    if on_error not in ("raise", "skip"):
        raise InvalidArgumentError(
            "Error policy must be 'raise' or 'skip'", argument="on_error", value=on_error
        )

    records: List[EnrolmentRecord] = []
    errors: List[EnrolmentPulseError] = []

    for index, row in enumerate(rows):
        try:
            if isinstance(row, ParseError):
                row.row = index
                row.context["row"] = index
                raise row
            records.append(parse_record(row, index))
        except (ParseError, ValidationError) as e:
            if on_error == "raise":
                raise
            logger.warning(f"Skipping row {index}: {e.message} ({e.context})")
            errors.append(e)

    if errors:
        logger.warning(f"Loaded {len(records):,} records, skipped {len(errors):,} bad rows")
    else:
        logger.info(f"Loaded {len(records):,} records")

    return LoadResult(records=tuple(records), errors=errors)


class CSVRowSource:
    """Every *.csv file of a directory, in file name order, read as text."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def csv_files(self) -> List[Path]:
        if not self.directory.is_dir():
            return []
        return sorted(self.directory.glob("*.csv"))

    def rows(self) -> Iterator[Union[Dict[str, Any], ParseError]]:
        files = self.csv_files()
        if not files:
            logger.warning(f"No CSV files found in {self.directory}")
            return

        for csv_file in files:
            logger.info(f"Reading {csv_file.name}")
            bad_lines: List[ParseError] = []

            def reject(fields: List[str]) -> None:
                bad_lines.append(ParseError(
                    f"Malformed line in {csv_file.name}: {len(fields)} fields",
                    field="line",
                    value=",".join(fields),
                ))

            try:
                df = pd.read_csv(
                    csv_file,
                    dtype=str,
                    keep_default_na=False,
                    engine="python",
                    on_bad_lines=reject,
                )
            except EmptyDataError:
                logger.warning(f"Skipping empty file {csv_file.name}")
                continue

            df.columns = [str(c).strip() for c in df.columns]
            yield from df.to_dict("records")
            yield from bad_lines

    def __repr__(self):
        return f"<CSVRowSource(directory={self.directory})>"


class DatabaseRowSource:
    """Rows of the enrolments table ordered by id."""

    def __init__(self, session_factory: Callable[[], Session], batch_size: int = 5000):
        self.session_factory = session_factory
        self.batch_size = batch_size

    def rows(self) -> Iterator[Dict[str, Any]]:
        from enrolment_pulse.models.enrollment import Enrollment

        db = self.session_factory()
        try:
            query = db.query(Enrollment).order_by(Enrollment.id).yield_per(self.batch_size)
            for row in query:
                yield row.to_row()
        finally:
            db.close()

    def __repr__(self):
        return f"<DatabaseRowSource(session_factory={self.session_factory!r})>"


def save_records(
    db: Session,
    records: Sequence[EnrolmentRecord],
    chunk_size: int = 5000,
    show_progress: bool = False
) -> int:
    """
    Bulk insert records into the enrolments table, one commit per chunk.

    Returns:
        Number of rows written
    """
    from enrolment_pulse.models.enrollment import Enrollment

    chunks = chunk_records(records, chunk_size)
    written = 0
    for chunk in tqdm(chunks, desc="Chunks", disable=not show_progress):
        db.bulk_save_objects([Enrollment.from_record(r) for r in chunk])
        db.commit()
        written += len(chunk)

    logger.info(f"Saved {written:,} enrolment records")
    return written


class EnrolmentDataStore:
    """
    Process-wide cache of the loaded dataset.

    The first call to records() loads from the row source; later calls
    return the same immutable tuple until invalidate() or refresh(). A load
    is published as one snapshot of records, errors and load time once it
    has completed, so readers see either the old dataset or the new one and
    never a mix of the two.
    """

    def __init__(self, source, on_error: ErrorPolicy = "skip"):
        self.source = source
        self.on_error = on_error
        self._snapshot: Optional[Tuple[LoadResult, datetime]] = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    @property
    def load_errors(self) -> List[EnrolmentPulseError]:
        snapshot = self._snapshot
        return list(snapshot[0].errors) if snapshot is not None else []

    @property
    def loaded_at(self) -> Optional[datetime]:
        snapshot = self._snapshot
        return snapshot[1] if snapshot is not None else None

    def records(self) -> Tuple[EnrolmentRecord, ...]:
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot[0].records

        with self._lock:
            if self._snapshot is None:
                self._load()
            return self._snapshot[0].records

    def invalidate(self) -> None:
        """Drop the cached dataset; the next records() call reloads."""
        with self._lock:
            self._snapshot = None
        logger.info("Enrolment data cache invalidated")

    def refresh(self) -> Tuple[EnrolmentRecord, ...]:
        """Reload from the source now and return the new dataset."""
        with self._lock:
            self._load()
            return self._snapshot[0].records

    def _load(self) -> None:
        logger.info(f"Loading enrolment data from {self.source!r}")
        result = load_records(self.source.rows(), on_error=self.on_error)
        self._snapshot = (result, datetime.now())

    def status(self) -> Dict[str, Any]:
        snapshot = self._snapshot
        if snapshot is None:
            return {
                "loaded": False,
                "record_count": 0,
                "error_count": 0,
                "loaded_at": None,
                "source": repr(self.source),
            }
        result, loaded_at = snapshot
        return {
            "loaded": True,
            "record_count": len(result.records),
            "error_count": result.error_count,
            "loaded_at": loaded_at.isoformat(),
            "source": repr(self.source),
        }


_store: Optional[EnrolmentDataStore] = None
_store_lock = threading.Lock()


def build_row_source():
    """Row source selected by DATA_SOURCE."""
    if settings.DATA_SOURCE == "database":
        from enrolment_pulse.database import SessionLocal
        return DatabaseRowSource(SessionLocal)

    csv_dir = Path(settings.ENROLMENT_CSV_DIR)
    if not csv_dir.is_absolute():
        csv_dir = settings.base_dir / csv_dir
    return CSVRowSource(csv_dir)


def get_data_store() -> EnrolmentDataStore:
    """
    Process-wide data store configured from settings.
    Use with FastAPI's Depends().
    """
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = EnrolmentDataStore(
                    build_row_source(), on_error=settings.LOADER_ERROR_POLICY
                )
    return _store
