"""
Data aggregation utility functions.

All groupings work on a DataFrame built from EnrolmentRecord objects; the
records themselves are never modified.
"""
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar

import pandas as pd

from enrolment_pulse.exceptions import InvalidArgumentError
from enrolment_pulse.models.records import (
    AgeGroupTotals,
    AggregatedMetrics,
    DailyTrendPoint,
    DistrictTotal,
    EnrolmentRecord,
    RecordFilter,
    StateSummary,
)
from enrolment_pulse.utils.constants import AGE_COLUMNS, RECORD_COLUMNS, REGION_SEPARATOR

T = TypeVar("T")


def records_to_frame(records: Iterable[EnrolmentRecord]) -> pd.DataFrame:
    """
    Build a DataFrame with one row per record plus total and region columns.

    Dates stay as datetime.date objects so group keys sort chronologically.
    """
    rows = [
        (r.date, r.state, r.district, r.pincode, r.age_0_5, r.age_5_17, r.age_18_greater)
        for r in records
    ]
    df = pd.DataFrame(rows, columns=RECORD_COLUMNS)
    for col in AGE_COLUMNS:
        df[col] = df[col].astype("int64")
    df["total"] = df[AGE_COLUMNS].sum(axis=1).astype("int64")
    df["region"] = df["state"] + REGION_SEPARATOR + df["district"]
    return df


def filter_records(
    records: Sequence[EnrolmentRecord],
    filters: Optional[RecordFilter] = None
) -> List[EnrolmentRecord]:
    """
    Subset of records matching every set field of filters.

    Date bounds are inclusive. Missing fields mean "no constraint".
    """
    if filters is None:
        return list(records)

    def matches(r: EnrolmentRecord) -> bool:
        if filters.state is not None and r.state != filters.state:
            return False
        if filters.district is not None and r.district != filters.district:
            return False
        if filters.start_date is not None and r.date < filters.start_date:
            return False
        if filters.end_date is not None and r.date > filters.end_date:
            return False
        return True

    return [r for r in records if matches(r)]


def aggregate(
    records: Sequence[EnrolmentRecord],
    filters: Optional[RecordFilter] = None
) -> AggregatedMetrics:
    """
    Sum enrolments by age band, state, region and date.

    Args:
        records: Loaded enrolment records
        filters: Optional state/district/date-range scope

    Returns:
        AggregatedMetrics for the filtered slice
    """
    subset = filter_records(records, filters)
    scope = filters or RecordFilter()
    df = records_to_frame(subset)

    if df.empty:
        return AggregatedMetrics(
            total_enrolments=0,
            by_age_group=AgeGroupTotals(),
            scope=scope,
        )

    age_sums = df[AGE_COLUMNS].sum()
    by_age_group = AgeGroupTotals(
        age_0_5=int(age_sums["age_0_5"]),
        age_5_17=int(age_sums["age_5_17"]),
        age_18_greater=int(age_sums["age_18_greater"]),
    )

    by_state = df.groupby("state")["total"].sum()
    by_district = df.groupby("region")["total"].sum()
    by_date = df.groupby("date")["total"].sum()

    return AggregatedMetrics(
        total_enrolments=by_age_group.total,
        by_age_group=by_age_group,
        by_state={k: int(v) for k, v in by_state.items()},
        by_district={k: int(v) for k, v in by_district.items()},
        by_date={k.isoformat(): int(v) for k, v in by_date.items()},
        record_count=len(df),
        scope=scope,
    )


def group_by_day(records: Sequence[EnrolmentRecord]) -> List[DailyTrendPoint]:
    """
    Daily totals in ascending date order.

    Only dates present in the input appear; missing days are not zero-filled
    (see fill_missing_days).
    """
    df = records_to_frame(records)
    if df.empty:
        return []

    daily = df.groupby("date", sort=True)["total"].sum()
    return [DailyTrendPoint(date=d.isoformat(), count=int(c)) for d, c in daily.items()]


def fill_missing_days(points: Sequence[DailyTrendPoint]) -> List[DailyTrendPoint]:
    """Dense copy of a daily series with 0 for every absent date."""
    if not points:
        return []

    index = pd.to_datetime([p.date for p in points])
    series = pd.Series([p.count for p in points], index=index)
    full_range = pd.date_range(index.min(), index.max(), freq="D")
    dense = series.reindex(full_range, fill_value=0)
    return [
        DailyTrendPoint(date=ts.date().isoformat(), count=int(c))
        for ts, c in dense.items()
    ]


def last_n_days(points: Sequence[DailyTrendPoint], days: int) -> List[DailyTrendPoint]:
    """Trailing slice of a daily series by point count."""
    if days < 1:
        raise InvalidArgumentError("Days must be at least 1", argument="days", value=days)
    return list(points[-days:])


def group_by_region(records: Sequence[EnrolmentRecord]) -> Dict[str, Dict[str, int]]:
    """
    Per-region daily series: "state|district" -> ISO date -> count.

    Regions and dates are in ascending order.
    """
    df = records_to_frame(records)
    if df.empty:
        return {}

    grouped = df.groupby(["region", "date"], sort=True)["total"].sum()
    result: Dict[str, Dict[str, int]] = {}
    for (region, day), count in grouped.items():
        result.setdefault(region, {})[day.isoformat()] = int(count)
    return result


def region_totals(series: Dict[str, Dict[str, int]]) -> Dict[str, int]:
    """Total volume per region of a group_by_region result."""
    return {region: sum(days.values()) for region, days in series.items()}


def split_region_key(region: str) -> tuple:
    state, _, district = region.partition(REGION_SEPARATOR)
    return state, district


def state_summary(records: Sequence[EnrolmentRecord]) -> List[StateSummary]:
    """
    Per-state totals sorted by total descending, ties by state name.
    """
    df = records_to_frame(records)
    if df.empty:
        return []

    grouped = df.groupby("state").agg(
        age_0_5=("age_0_5", "sum"),
        age_5_17=("age_5_17", "sum"),
        age_18_greater=("age_18_greater", "sum"),
        total_enrolments=("total", "sum"),
        districts=("district", "nunique"),
    ).reset_index()
    grouped = grouped.sort_values(
        ["total_enrolments", "state"], ascending=[False, True], kind="mergesort"
    )

    return [
        StateSummary(
            state=row.state,
            total_enrolments=int(row.total_enrolments),
            age_0_5=int(row.age_0_5),
            age_5_17=int(row.age_5_17),
            age_18_greater=int(row.age_18_greater),
            districts=int(row.districts),
        )
        for row in grouped.itertuples(index=False)
    ]


def top_states(records: Sequence[EnrolmentRecord], n: int) -> List[StateSummary]:
    """At most n states ranked by total descending, ties by name ascending."""
    if n < 0:
        raise InvalidArgumentError("n cannot be negative", argument="n", value=n)
    return state_summary(records)[:n]


def top_districts(records: Sequence[EnrolmentRecord], n: int) -> List[DistrictTotal]:
    """At most n districts by total, ties by state then district name."""
    if n < 0:
        raise InvalidArgumentError("n cannot be negative", argument="n", value=n)

    df = records_to_frame(records)
    if df.empty or n == 0:
        return []

    grouped = df.groupby(["state", "district"])["total"].sum().reset_index()
    grouped = grouped.sort_values(
        ["total", "state", "district"], ascending=[False, True, True], kind="mergesort"
    ).head(n)

    return [
        DistrictTotal(state=row.state, district=row.district, count=int(row.total))
        for row in grouped.itertuples(index=False)
    ]


def distinct_states(records: Sequence[EnrolmentRecord]) -> List[str]:
    """States in first-seen order, case preserved."""
    return list(dict.fromkeys(r.state for r in records))


def distinct_districts(records: Sequence[EnrolmentRecord], state: str) -> List[str]:
    """Districts of one state in first-seen order, case preserved."""
    return list(dict.fromkeys(r.district for r in records if r.state == state))


def available_dates(records: Sequence[EnrolmentRecord]) -> List[str]:
    return sorted({r.date.isoformat() for r in records})


def chunk_records(items: Sequence[T], chunk_size: int) -> List[List[T]]:
    """
    Split items into consecutive chunks of chunk_size (last one may be short).

    Raises:
        InvalidArgumentError: chunk_size < 1
    """
    if chunk_size < 1:
        raise InvalidArgumentError(
            "Chunk size must be at least 1", argument="chunk_size", value=chunk_size
        )
    return [list(items[i:i + chunk_size]) for i in range(0, len(items), chunk_size)]


def flatten_chunks(chunks: Iterable[Sequence[T]]) -> List[T]:
    """Concatenate chunks back into one list."""
    return [item for chunk in chunks for item in chunk]


def percentage(part: int, whole: int) -> float:
    """Share of whole in percent, rounded to two decimals; 0 for empty whole."""
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)
