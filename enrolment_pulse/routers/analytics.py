"""
Analytics API endpoints: metrics, daily trends, trend analysis, rankings,
statistical anomalies and the forecast.
"""
from fastapi import APIRouter, Depends, Query
from datetime import date
from typing import Literal, Optional, Sequence

from enrolment_pulse.models.records import EnrolmentRecord, RecordFilter
from enrolment_pulse.schemas.analytics import (
    DailyTrendsResponse,
    DistrictsResponse,
    MetricsResponse,
    StatesResponse,
    TrendBatchRequest,
)
from enrolment_pulse.schemas.anomaly import AnomalyDetectionResponse
from enrolment_pulse.schemas.common import RecordFilterParams
from enrolment_pulse.schemas.forecast import ForecastResponse
from enrolment_pulse.services.data_loader import EnrolmentDataStore, get_data_store
from enrolment_pulse.services.insights_engine import InsightsEngine
from enrolment_pulse.utils.aggregators import (
    aggregate,
    available_dates,
    distinct_districts,
    fill_missing_days,
    filter_records,
    group_by_day,
    last_n_days,
    state_summary,
    top_districts,
    top_states,
)
from enrolment_pulse.utils.constants import DEFAULT_ANOMALY_THRESHOLD
from enrolment_pulse.utils.date_utils import get_date_range, parse_time_period

router = APIRouter()


def record_filter_params(
    state: Optional[str] = Query(None, description="Filter by state"),
    district: Optional[str] = Query(None, description="Filter by district"),
    start_date: Optional[date] = Query(None, description="First day included (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="Last day included (YYYY-MM-DD)")
) -> RecordFilterParams:
    return RecordFilterParams(
        state=state, district=district, start_date=start_date, end_date=end_date
    )


def period_filter(
    records: Sequence[EnrolmentRecord],
    state: Optional[str],
    district: Optional[str],
    time_period: Optional[str]
) -> RecordFilter:
    """Geography filter plus a trailing window ending at the latest date in the data."""
    if not time_period:
        return RecordFilter(state=state, district=district)

    days = parse_time_period(time_period)
    dates = available_dates(records)
    if not dates:
        return RecordFilter(state=state, district=district)

    start, end = get_date_range(days, date.fromisoformat(dates[-1]))
    return RecordFilter(state=state, district=district, start_date=start, end_date=end)


@router.get("/metrics", response_model=MetricsResponse)
def get_metrics(
    filters: RecordFilterParams = Depends(record_filter_params),
    store: EnrolmentDataStore = Depends(get_data_store)
):
    """
    Total enrolments by age group, state, district and date.

    All filters are optional; date bounds are inclusive.
    """
    return aggregate(store.records(), filters.to_filter()).to_dict()


@router.get("/daily-trends", response_model=DailyTrendsResponse)
def get_daily_trends(
    filters: RecordFilterParams = Depends(record_filter_params),
    days: Optional[int] = Query(None, ge=1, le=365, description="Keep only the last N days of data"),
    fill_missing: bool = Query(False, description="Insert zero counts for absent dates"),
    store: EnrolmentDataStore = Depends(get_data_store)
):
    """
    Daily enrolment totals in ascending date order.

    Dates without records are omitted unless fill_missing is set.
    """
    points = group_by_day(filter_records(store.records(), filters.to_filter()))
    if fill_missing:
        points = fill_missing_days(points)
    if days is not None:
        points = last_n_days(points, days)

    return {
        "trends": [p.to_dict() for p in points],
        "count": len(points),
        "zero_filled": fill_missing,
    }


@router.get("/trends")
def get_trend_analysis(
    state: Optional[str] = Query(None),
    district: Optional[str] = Query(None),
    time_period: str = Query("30d", description="7d, 30d, 90d, 180d or 365d"),
    store: EnrolmentDataStore = Depends(get_data_store)
):
    """
    Trend direction, confidence, weekly seasonality and geographic breakdown.
    """
    records = store.records()
    filters = period_filter(records, state, district, time_period)
    result = InsightsEngine(records).trend(filters).to_dict()
    result["time_period"] = time_period
    return result


@router.post("/trends")
def post_trend_batch(
    request: TrendBatchRequest,
    store: EnrolmentDataStore = Depends(get_data_store)
):
    """
    Trend analysis for several configurations at once.

    Each configuration is evaluated independently; one that fails reports
    its error in place.
    """
    records = store.records()
    filter_list = [
        period_filter(records, c.state, c.district, c.time_period)
        for c in request.configurations
    ]
    results = InsightsEngine(records).trends_batch(filter_list)
    return {"results": results, "count": len(results)}


@router.get("/states", response_model=StatesResponse)
def get_states(
    limit: Optional[int] = Query(None, ge=0, le=100, description="Top N states only"),
    store: EnrolmentDataStore = Depends(get_data_store)
):
    """Per-state totals ranked by enrolments, ties by state name."""
    records = store.records()
    summaries = top_states(records, limit) if limit is not None else state_summary(records)
    return {"states": [s.to_dict() for s in summaries], "count": len(summaries)}


@router.get("/districts", response_model=DistrictsResponse)
def get_districts(
    state: Optional[str] = Query(None, description="Restrict to one state"),
    limit: int = Query(10, ge=0, le=500),
    store: EnrolmentDataStore = Depends(get_data_store)
):
    """Districts of a state in first-seen order plus the top districts by volume."""
    records = store.records()
    if state:
        scoped = filter_records(records, RecordFilter(state=state))
        names = distinct_districts(records, state)
    else:
        scoped = records
        names = list(dict.fromkeys(r.district for r in records))

    return {
        "state": state,
        "districts": names,
        "top": [d.to_dict() for d in top_districts(scoped, limit)],
        "count": len(names),
    }


@router.get("/anomalies", response_model=AnomalyDetectionResponse)
def get_anomalies(
    threshold: float = Query(DEFAULT_ANOMALY_THRESHOLD, gt=0, description="Z-score threshold"),
    state: Optional[str] = Query(None),
    severity: Optional[Literal["critical", "high", "medium", "low"]] = Query(None),
    store: EnrolmentDataStore = Depends(get_data_store)
):
    """
    Z-score anomalies in the national daily series and in the busiest
    state|district series.
    """
    records = store.records()
    if state:
        records = filter_records(records, RecordFilter(state=state))
    return InsightsEngine(records).statistical_anomalies(threshold=threshold, severity=severity)


@router.get("/forecast", response_model=ForecastResponse)
def get_forecast(
    horizon: int = Query(30, description="Days ahead to predict (capped at 90)"),
    state: Optional[str] = Query(None),
    store: EnrolmentDataStore = Depends(get_data_store)
):
    """
    Exponential smoothing forecast over the last 90 days of data.

    Needs at least 7 days of history.
    """
    records = store.records()
    if state:
        records = filter_records(records, RecordFilter(state=state))
    return InsightsEngine(records).forecast(horizon=horizon).to_dict()
