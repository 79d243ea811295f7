"""
Insight Engine.

Turns aggregator and statistics output into structured findings:
- Daily and regional z-score anomaly scans
- Coverage gaps and unusual age distributions per state
- Exponential smoothing forecast with a linear growth projection
- Trend analysis per filter configuration
- Rule-based suggestions, crisis-zone risk scores and alert rules
- Weekly report

Every rule threshold is a named constant in utils/constants.py. Functions
take plain sequences and return dataclasses with to_dict(); nothing here
keeps state between calls.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from enrolment_pulse.exceptions import (
    EnrolmentPulseError,
    InsufficientDataError,
    InvalidArgumentError,
)
from enrolment_pulse.models.records import (
    DailyTrendPoint,
    EnrolmentRecord,
    RecordFilter,
    StateSummary,
)
from enrolment_pulse.utils import constants as C
from enrolment_pulse.utils.aggregators import (
    aggregate,
    filter_records,
    group_by_day,
    group_by_region,
    last_n_days,
    percentage,
    region_totals,
    split_region_key,
    state_summary,
    top_states,
)
from enrolment_pulse.utils.statistics import (
    SeasonalPattern,
    TrendDirection,
    calculate_confidence_score,
    coefficient_of_variation,
    detect_anomalies_zscore,
    detect_seasonal_pattern,
    detect_trend_direction,
    exponential_smoothing,
    growth_rate,
    mean,
    standard_deviation,
    z_score,
)

logger = logging.getLogger(__name__)

NoiseSource = Callable[[], float]


class AnomalyType(str, Enum):
    SPIKE = "spike"
    DROP = "drop"
    COVERAGE_GAP = "coverage_gap"
    UNUSUAL_PATTERN = "unusual_pattern"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """0 for the most severe level."""
        return C.SEVERITY_ORDER[self.value]


@dataclass
class AnomalyFinding:
    """One anomaly, shaped for the alert feed."""
    id: str
    timestamp: date
    type: AnomalyType
    severity: Severity
    affected_regions: Tuple[str, ...]
    confidence_score: float
    suggested_actions: List[str]
    description: str = ""
    value: float = 0.0
    threshold: float = 0.0
    z_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "type": self.type.value,
            "severity": self.severity.value,
            "affected_regions": list(self.affected_regions),
            "confidence_score": round(self.confidence_score, 4),
            "suggested_actions": list(self.suggested_actions),
            "description": self.description,
            "value": self.value,
            "threshold": round(self.threshold, 2),
            "z_score": round(self.z_score, 4) if self.z_score is not None else None,
        }


@dataclass
class ForecastPoint:
    date: str
    predicted: float
    lower: float
    upper: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "predicted": round(self.predicted, 2),
            "lower": round(self.lower, 2),
            "upper": round(self.upper, 2),
        }


@dataclass
class ForecastResult:
    """Projection plus the statistics it was derived from."""
    horizon_days: int
    points: List[ForecastPoint]
    growth_rate: float
    trend_direction: TrendDirection
    seasonal: SeasonalPattern
    confidence_score: float
    history_mean: float
    history_std: float
    history_min: int
    history_max: int
    data_points: int

    @property
    def next_week_total(self) -> float:
        return sum(p.predicted for p in self.points[:7])

    @property
    def next_month_total(self) -> float:
        return sum(p.predicted for p in self.points[:C.DAYS_PER_MONTH])

    @property
    def trend_strength(self) -> str:
        magnitude = abs(self.growth_rate)
        if magnitude > C.STRONG_GROWTH:
            return "strong"
        if magnitude > C.MODERATE_GROWTH:
            return "moderate"
        return "weak"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "forecast": {
                "horizon_days": self.horizon_days,
                "predictions": [p.to_dict() for p in self.points],
                "summary": {
                    "next_week_total": round(self.next_week_total),
                    "next_month_total": round(self.next_month_total),
                    "daily_average_predicted": round(self.history_mean * (1 + self.growth_rate)),
                    "growth_rate_percent": round(self.growth_rate * 100, 2),
                },
            },
            "trend": {
                "direction": self.trend_direction.value,
                "strength": self.trend_strength,
            },
            "seasonal": self.seasonal.to_dict(),
            "confidence": {
                "score": round(self.confidence_score, 2),
                "data_points": self.data_points,
                "model": "exponential_smoothing",
            },
            "historical": {
                "mean": round(self.history_mean, 2),
                "std_dev": round(self.history_std, 2),
                "min": self.history_min,
                "max": self.history_max,
            },
        }


@dataclass
class TrendAnalysis:
    filters: RecordFilter
    direction: TrendDirection
    confidence_score: float
    record_count: int
    total: int
    daily_mean: float
    coefficient_of_variation: float
    seasonal: SeasonalPattern
    series: List[DailyTrendPoint]
    geographic_breakdown: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filters": self.filters.to_dict(),
            "trend_direction": self.direction.value,
            "confidence_score": round(self.confidence_score, 4),
            "record_count": self.record_count,
            "total_enrolments": self.total,
            "daily_mean": round(self.daily_mean, 2),
            "coefficient_of_variation": round(self.coefficient_of_variation, 4),
            "seasonal_component": self.seasonal.to_dict(),
            "series": [p.to_dict() for p in self.series],
            "geographic_breakdown": self.geographic_breakdown,
        }


@dataclass
class Suggestion:
    id: str
    type: str
    state: str
    priority: str
    description: str
    enrolment_boost: int
    coverage_increase: int
    implementation_time: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "state": self.state,
            "priority": self.priority,
            "description": self.description,
            "impact": {
                "enrolment_boost": self.enrolment_boost,
                "coverage_increase": self.coverage_increase,
            },
            "implementation_time": self.implementation_time,
        }


@dataclass
class CrisisZone:
    id: str
    state: str
    risk_score: float
    predicted_issue: str
    timeframe: str
    current_daily_enrolments: int
    expected_daily_demand: int
    daily_gap: int
    risk_factors: List[str] = field(default_factory=list)

    @property
    def risk_level(self) -> str:
        if self.risk_score > C.CRISIS_CRITICAL_RISK:
            return "critical"
        if self.risk_score > C.CRISIS_HIGH_RISK:
            return "high"
        return "moderate"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "state": self.state,
            "risk_score": round(self.risk_score, 1),
            "risk_level": self.risk_level,
            "predicted_issue": self.predicted_issue,
            "timeframe": self.timeframe,
            "current_daily_enrolments": self.current_daily_enrolments,
            "expected_daily_demand": self.expected_daily_demand,
            "daily_gap": self.daily_gap,
            "risk_factors": list(self.risk_factors),
        }


@dataclass
class AlertRule:
    id: str
    name: str
    metric: str
    condition: str  # greater_than, less_than
    severity: Severity
    recommendations: List[str]

    def is_triggered(self, value: float, threshold: float) -> bool:
        if self.condition == "greater_than":
            return value > threshold
        # A non-positive floor cannot be crossed by a count
        return value < threshold and threshold > 0


@dataclass
class TriggeredAlert:
    id: str
    rule_id: str
    name: str
    metric: str
    condition: str
    severity: Severity
    value: float
    threshold: float
    message: str
    recommendations: List[str]
    triggered_at: datetime
    state: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "rule_id": self.rule_id,
            "name": self.name,
            "metric": self.metric,
            "condition": self.condition,
            "severity": self.severity.value,
            "value": round(self.value, 2),
            "threshold": round(self.threshold, 2),
            "message": self.message,
            "recommendations": list(self.recommendations),
            "triggered_at": self.triggered_at.isoformat(),
            "state": self.state,
        }


ALERT_RULES = [
    AlertRule(
        id="rule-1",
        name="High Enrolment Spike",
        metric="daily_enrolments",
        condition="greater_than",
        severity=Severity.HIGH,
        recommendations=[
            "Verify data quality for recent uploads",
            "Check for any special enrolment drives",
            "Review regional distribution of spike",
        ],
    ),
    AlertRule(
        id="rule-2",
        name="Low Enrolment Warning",
        metric="daily_enrolments",
        condition="less_than",
        severity=Severity.MEDIUM,
        recommendations=[
            "Check for system outages or data delays",
            "Review regional enrolment center status",
            "Verify data pipeline connectivity",
        ],
    ),
    AlertRule(
        id="rule-3",
        name="Anomaly Detection Alert",
        metric="anomaly_score",
        condition="greater_than",
        severity=Severity.HIGH,
        recommendations=[
            "Investigate unusual patterns in recent data",
            "Check for data quality issues",
            "Review affected regions for operational issues",
        ],
    ),
    AlertRule(
        id="rule-4",
        name="Rapid Growth Alert",
        metric="growth_rate",
        condition="greater_than",
        severity=Severity.MEDIUM,
        recommendations=[
            "Monitor trend over next few days",
            "Identify contributing regions",
            "Prepare capacity adjustments if needed",
        ],
    ),
]

DAILY_ACTIONS = ["Investigate data patterns", "Review regional breakdown"]
REGIONAL_ACTIONS = ["Investigate regional issues", "Check local infrastructure"]
COVERAGE_ACTIONS = ["Deploy mobile camps", "Increase awareness campaigns", "Partner with local bodies"]
AGE_PATTERN_ACTIONS = [
    "Audit age verification process",
    "Review operator training",
    "Check for targeted campaigns",
]


def classify_severity(z: float, threshold: float) -> Severity:
    magnitude = abs(z)
    if magnitude > C.HIGH_SEVERITY_Z:
        return Severity.HIGH
    if magnitude > threshold:
        return Severity.MEDIUM
    return Severity.LOW


def sort_findings(findings: List[AnomalyFinding]) -> List[AnomalyFinding]:
    """Most severe first, then most confident, then by id."""
    return sorted(
        findings,
        key=lambda f: (f.severity.rank, -f.confidence_score, f.id),
    )


def severity_breakdown(findings: Sequence[AnomalyFinding]) -> Dict[str, int]:
    breakdown = {level: 0 for level in C.SEVERITY_LEVELS}
    for finding in findings:
        breakdown[finding.severity.value] += 1
    return breakdown


def _series_findings(
    points: Sequence[DailyTrendPoint],
    threshold: float,
    region: str,
    id_prefix: str,
    actions: List[str],
) -> List[AnomalyFinding]:
    counts = [p.count for p in points]
    indices = detect_anomalies_zscore(counts, threshold)
    if not indices:
        return []

    mean_value = mean(counts)
    std_dev = standard_deviation(counts)
    findings = []
    for i in indices:
        point = points[i]
        z = z_score(point.count, mean_value, std_dev)
        is_spike = point.count > mean_value
        kind = AnomalyType.SPIKE if is_spike else AnomalyType.DROP
        bound = mean_value + threshold * std_dev if is_spike else mean_value - threshold * std_dev
        label = "spike" if is_spike else "drop"
        where = "daily enrolments" if region == C.NATIONAL_REGION else region

        findings.append(AnomalyFinding(
            id=f"{id_prefix}-{point.date}",
            timestamp=date.fromisoformat(point.date),
            type=kind,
            severity=classify_severity(z, threshold),
            affected_regions=(region,),
            confidence_score=min(abs(z) / C.HIGH_SEVERITY_Z, 1.0),
            suggested_actions=list(actions),
            description=f"Unusual {label} in {where}: {point.count:,} enrolments",
            value=point.count,
            threshold=bound,
            z_score=z,
        ))
    return findings


def scan_daily_anomalies(
    series: Sequence[DailyTrendPoint],
    threshold: float = C.DEFAULT_ANOMALY_THRESHOLD
) -> List[AnomalyFinding]:
    """
    Z-score scan over one aggregated daily series.

    Each flagged day becomes a spike or drop finding for the national region.
    """
    return _series_findings(series, threshold, C.NATIONAL_REGION, "daily", DAILY_ACTIONS)


def scan_regional_anomalies(
    records: Sequence[EnrolmentRecord],
    threshold: float = C.DEFAULT_ANOMALY_THRESHOLD,
    top_k: int = C.REGIONAL_TOP_K,
    min_points: int = C.REGIONAL_MIN_POINTS
) -> List[AnomalyFinding]:
    """
    Z-score scan per state|district series.

    Only the top_k regions by total volume are scanned (ties by region key);
    regions with fewer than min_points days are skipped.
    """
    if top_k < 0:
        raise InvalidArgumentError("top_k cannot be negative", argument="top_k", value=top_k)

    series = group_by_region(records)
    totals = region_totals(series)
    ranked = sorted(totals, key=lambda region: (-totals[region], region))[:top_k]

    findings: List[AnomalyFinding] = []
    for region in ranked:
        days = series[region]
        if len(days) < min_points:
            continue
        points = [DailyTrendPoint(date=d, count=c) for d, c in days.items()]
        findings.extend(_series_findings(
            points, threshold, region, f"regional-{region}", REGIONAL_ACTIONS
        ))
    return findings


def _average_per_state(summaries: Sequence[StateSummary]) -> float:
    if not summaries:
        return 0.0
    return sum(s.total_enrolments for s in summaries) / len(summaries)


def detect_coverage_gaps(
    summaries: Sequence[StateSummary],
    tiers: Sequence[Tuple[float, str]] = C.COVERAGE_GAP_TIERS,
    as_of: Optional[date] = None
) -> List[AnomalyFinding]:
    """
    Flag states whose total is below a share of the average per state.

    Args:
        summaries: Per-state totals
        tiers: (ratio, severity) pairs; the lowest ratio a state falls under
            decides its severity
        as_of: Timestamp for the findings (defaults to today)
    """
    if not tiers:
        raise InvalidArgumentError("At least one coverage tier is required", argument="tiers", value=[])

    parsed_tiers = []
    for ratio, severity in sorted(tiers, key=lambda t: t[0]):
        if ratio <= 0:
            raise InvalidArgumentError("Tier ratio must be positive", argument="tiers", value=ratio)
        try:
            parsed_tiers.append((ratio, Severity(severity)))
        except ValueError:
            raise InvalidArgumentError(
                f"Unknown severity '{severity}'", argument="tiers", value=severity
            )

    avg_per_state = _average_per_state(summaries)
    timestamp = as_of or date.today()
    findings = []

    for summary in summaries:
        for ratio, severity in parsed_tiers:
            limit = avg_per_state * ratio
            if summary.total_enrolments < limit:
                findings.append(AnomalyFinding(
                    id=f"coverage-{summary.state}",
                    timestamp=timestamp,
                    type=AnomalyType.COVERAGE_GAP,
                    severity=severity,
                    affected_regions=(summary.state,),
                    confidence_score=C.COVERAGE_GAP_CONFIDENCE,
                    suggested_actions=list(COVERAGE_ACTIONS),
                    description=(
                        f"{summary.state} has significantly lower enrolments "
                        f"({summary.total_enrolments:,}) compared to the average per state "
                        f"({round(avg_per_state):,})"
                    ),
                    value=summary.total_enrolments,
                    threshold=limit,
                ))
                break
    return findings


def detect_age_distribution_anomalies(
    summaries: Sequence[StateSummary],
    as_of: Optional[date] = None
) -> List[AnomalyFinding]:
    """States whose adult share of enrolments is unusually high or low."""
    timestamp = as_of or date.today()
    findings = []

    for summary in summaries:
        share = summary.adult_share
        if share > C.ADULT_SHARE_HIGH:
            bound, wording = C.ADULT_SHARE_HIGH, "unusually high"
        elif share < C.ADULT_SHARE_LOW:
            bound, wording = C.ADULT_SHARE_LOW, "unusually low"
        else:
            continue

        findings.append(AnomalyFinding(
            id=f"age-{summary.state}",
            timestamp=timestamp,
            type=AnomalyType.UNUSUAL_PATTERN,
            severity=Severity.MEDIUM,
            affected_regions=(summary.state,),
            confidence_score=C.AGE_PATTERN_CONFIDENCE,
            suggested_actions=list(AGE_PATTERN_ACTIONS),
            description=f"Adult enrolment ratio ({share * 100:.1f}%) is {wording} in {summary.state}",
            value=round(share, 4),
            threshold=bound,
        ))
    return findings


def recent_growth(counts: Sequence[float], window: int = C.FORECAST_WINDOW) -> float:
    """Relative change of the last window mean over the window before it."""
    if len(counts) < window * 2:
        return 0.0
    return growth_rate(mean(counts[-window:]), mean(counts[-2 * window:-window]))


def forecast_series(
    series: Sequence[DailyTrendPoint],
    horizon: int = 30,
    alpha: float = C.FORECAST_ALPHA
) -> ForecastResult:
    """
    Project a daily series forward.

    The last exponentially smoothed value is extended linearly by the recent
    growth rate spread over a 30 day period: step i predicts
    last * (1 + growth / 30 * i). Steps add a fixed increment and do not
    compound, so long horizons stay below a compounded projection of the
    same rate. The band is symmetric,
    +/- 1.96 * 0.5 * std_dev, and illustrative rather than calibrated.

    Raises:
        InsufficientDataError: fewer than 7 points
        InvalidArgumentError: horizon < 1 or alpha outside (0, 1]
    """
    if horizon < 1:
        raise InvalidArgumentError("Horizon must be at least 1 day", argument="horizon", value=horizon)

    counts = [p.count for p in series]
    if len(counts) < C.FORECAST_MIN_POINTS:
        raise InsufficientDataError(
            "Insufficient data for forecasting",
            required=C.FORECAST_MIN_POINTS,
            available=len(counts),
        )

    steps = min(horizon, C.FORECAST_MAX_HORIZON)
    smoothed = exponential_smoothing(counts, alpha)
    last_smoothed = smoothed[-1]
    growth = recent_growth(counts)

    mean_value = mean(counts)
    std_dev = standard_deviation(counts)
    band = C.FORECAST_BAND_Z * C.FORECAST_BAND_STD_FRACTION * std_dev
    last_date = date.fromisoformat(series[-1].date)

    points = []
    for i in range(1, steps + 1):
        predicted = max(0.0, last_smoothed * (1 + growth / C.FORECAST_GROWTH_PERIOD_DAYS * i))
        points.append(ForecastPoint(
            date=(last_date + timedelta(days=i)).isoformat(),
            predicted=predicted,
            lower=max(0.0, predicted - band),
            upper=predicted + band,
        ))

    return ForecastResult(
        horizon_days=steps,
        points=points,
        growth_rate=growth,
        trend_direction=detect_trend_direction(counts),
        seasonal=detect_seasonal_pattern(counts, C.WEEKLY_PERIOD),
        confidence_score=calculate_confidence_score(
            len(counts), coefficient_of_variation(counts), C.DEFAULT_MODEL_ACCURACY
        ),
        history_mean=mean_value,
        history_std=std_dev,
        history_min=min(counts),
        history_max=max(counts),
        data_points=len(counts),
    )


def analyze_trend(
    records: Sequence[EnrolmentRecord],
    filters: Optional[RecordFilter] = None
) -> TrendAnalysis:
    """
    Direction, confidence and weekly seasonality of one filtered slice.

    Raises:
        InsufficientDataError: fewer than two distinct days in the slice
    """
    scope = filters or RecordFilter()
    subset = filter_records(records, scope)
    series = group_by_day(subset)
    counts = [p.count for p in series]

    if len(counts) < C.TREND_MIN_POINTS:
        raise InsufficientDataError(
            "Not enough daily data points for trend analysis",
            required=C.TREND_MIN_POINTS,
            available=len(counts),
        )

    cv = coefficient_of_variation(counts)
    totals = region_totals(group_by_region(subset))
    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    breakdown = []
    for region, count in ranked[:C.GEOGRAPHIC_BREAKDOWN_LIMIT]:
        state, district = split_region_key(region)
        breakdown.append({"region": region, "state": state, "district": district, "count": count})

    return TrendAnalysis(
        filters=scope,
        direction=detect_trend_direction(counts),
        confidence_score=calculate_confidence_score(len(subset), cv, C.DEFAULT_MODEL_ACCURACY),
        record_count=len(subset),
        total=sum(counts),
        daily_mean=mean(counts),
        coefficient_of_variation=cv,
        seasonal=detect_seasonal_pattern(counts, C.WEEKLY_PERIOD),
        series=series,
        geographic_breakdown=breakdown,
    )


def analyze_trends_batch(
    records: Sequence[EnrolmentRecord],
    filter_list: Sequence[RecordFilter]
) -> List[Dict[str, Any]]:
    """
    analyze_trend per configuration. A failing configuration reports its
    error in place and does not affect the others.
    """
    results = []
    for filters in filter_list:
        try:
            results.append(analyze_trend(records, filters).to_dict())
        except EnrolmentPulseError as e:
            logger.info(f"Trend analysis skipped for {filters}: {e.message}")
            results.append({"filters": filters.to_dict(), "error": e.to_dict()})
    return results


PRIORITY_ORDER = {"urgent": 0, "high": 1, "medium": 2}


def generate_suggestions(summaries: Sequence[StateSummary]) -> List[Suggestion]:
    """
    Operational suggestions per state: mobile camps for low coverage, extra
    staff for high volume and evening hours where adults dominate.
    Sorted urgent, high, medium; input order within a priority.
    """
    avg_per_state = _average_per_state(summaries)
    suggestions = []

    for index, s in enumerate(summaries):
        if s.total_enrolments < avg_per_state * C.LOW_COVERAGE_RATIO:
            boost = round((avg_per_state - s.total_enrolments) * C.CAMP_CONVERSION_RATE)
            urgent = s.total_enrolments < avg_per_state * C.URGENT_COVERAGE_RATIO
            suggestions.append(Suggestion(
                id=f"sug-camp-{index}",
                type="mobile_camp",
                state=s.state,
                priority="urgent" if urgent else "high",
                description=(
                    f"Deploy mobile camps across {s.state} to reach underserved populations. "
                    f"An estimated {boost:,} new enrolments are possible."
                ),
                enrolment_boost=boost,
                coverage_increase=round(boost / max(1, s.total_enrolments) * 100),
                implementation_time="1-2 weeks",
            ))

        if s.total_enrolments > avg_per_state * C.HIGH_VOLUME_RATIO:
            suggestions.append(Suggestion(
                id=f"sug-staff-{index}",
                type="staff_allocation",
                state=s.state,
                priority="high",
                description=f"Add temporary staff to handle high demand in {s.state}.",
                enrolment_boost=round(s.total_enrolments * C.STAFF_BOOST_RATE),
                coverage_increase=20,
                implementation_time="3-5 days",
            ))

        if (s.adult_share > C.TIMING_ADULT_SHARE
                and s.total_enrolments > avg_per_state * C.TIMING_MIN_VOLUME_RATIO):
            suggestions.append(Suggestion(
                id=f"sug-timing-{index}",
                type="timing_change",
                state=s.state,
                priority="medium",
                description=(
                    f"Extend evening hours (6-9 PM) in {s.state} for working adults. "
                    f"{s.adult_share * 100:.0f}% of enrolments are in the 18+ age group."
                ),
                enrolment_boost=round(s.total_enrolments * C.TIMING_BOOST_RATE),
                coverage_increase=25,
                implementation_time="Immediate",
            ))

    return sorted(suggestions, key=lambda sug: PRIORITY_ORDER[sug.priority])


def predict_crisis_zones(
    summaries: Sequence[StateSummary],
    series: Sequence[DailyTrendPoint],
    today: date,
    noise: Optional[NoiseSource] = None
) -> List[CrisisZone]:
    """
    Score each state for upcoming capacity or coverage trouble.

    Args:
        summaries: Per-state totals
        series: Recent national daily series, used for the growth rate
        today: Reference date for the seasonal surge rule
        noise: Optional callable whose value is added to each raw score

    Returns:
        States scoring above CRISIS_REPORT_THRESHOLD, highest risk first
    """
    weights = C.CRISIS_RISK_WEIGHTS
    avg_per_state = _average_per_state(summaries)
    counts = [p.count for p in series]
    growth = recent_growth(counts)
    surge_season = today.month in C.CRISIS_SURGE_MONTHS

    zones = []
    for index, s in enumerate(summaries):
        risk = 0.0
        factors: List[str] = []
        issue = ""
        timeframe = ""

        coverage_ratio = s.total_enrolments / avg_per_state if avg_per_state > 0 else 0.0
        if coverage_ratio < C.CRISIS_COVERAGE_SEVERE:
            risk += weights["coverage_severe"]
            factors.append("severe_coverage_gap")
            issue, timeframe = "Coverage Gap", "Ongoing"
        elif coverage_ratio < C.CRISIS_COVERAGE_LOW:
            risk += weights["coverage_low"]
            factors.append("low_coverage")

        if coverage_ratio > C.HIGH_VOLUME_RATIO and growth > C.CRISIS_GROWTH_THRESHOLD:
            risk += weights["capacity"]
            factors.append("capacity_pressure")
            issue = issue or "Capacity Overflow"
            timeframe = timeframe or "Next 7 days"

        if s.child_share < C.CRISIS_CHILD_SHARE_MIN:
            risk += weights["demographic"]
            factors.append("demographic_imbalance")
            issue = issue or "Demographic Imbalance"
            timeframe = timeframe or "Next 30 days"

        if surge_season:
            risk += weights["seasonal"]
            factors.append("seasonal_surge")
            if not issue:
                issue, timeframe = "Seasonal Surge", "Next 14-21 days"

        if noise is not None:
            risk += noise()
        risk = min(C.CRISIS_RISK_CAP, max(0.0, risk))

        if risk > C.CRISIS_REPORT_THRESHOLD:
            expected = s.total_enrolments * (1 + growth + C.CRISIS_DEMAND_BUFFER)
            zones.append(CrisisZone(
                id=f"cz-{index}",
                state=s.state,
                risk_score=risk,
                predicted_issue=issue or "General Risk",
                timeframe=timeframe or "Next 30 days",
                current_daily_enrolments=round(s.total_enrolments / C.DAYS_PER_MONTH),
                expected_daily_demand=round(expected / C.DAYS_PER_MONTH),
                daily_gap=round((expected - s.total_enrolments) / C.DAYS_PER_MONTH),
                risk_factors=factors,
            ))

    return sorted(zones, key=lambda z: (-z.risk_score, z.state))


def check_alert_rules(
    series: Sequence[DailyTrendPoint],
    state: Optional[str] = None,
    now: Optional[datetime] = None
) -> List[TriggeredAlert]:
    """
    Evaluate ALERT_RULES against the latest day of a daily series.

    Rules: spike above mean + 2 sigma, drop below mean - 2 sigma, latest
    z-score above 2.5 and day-over-day change above 50%.
    """
    counts = [p.count for p in series]
    if not counts:
        return []

    latest = counts[-1]
    mean_value = mean(counts)
    std_dev = standard_deviation(counts)
    anomaly_score = abs(z_score(latest, mean_value, std_dev))

    day_change = 0.0
    if len(counts) >= 2:
        day_change = growth_rate(counts[-1], counts[-2]) * 100

    readings = {
        "rule-1": (latest, mean_value + C.ALERT_SIGMA * std_dev),
        "rule-2": (latest, mean_value - C.ALERT_SIGMA * std_dev),
        "rule-3": (anomaly_score, C.ALERT_ANOMALY_SCORE),
        "rule-4": (abs(day_change), C.ALERT_GROWTH_PERCENT),
    }
    messages = {
        "rule-1": lambda v, t: f"Daily enrolments ({v:,.0f}) exceeded normal range (>{t:,.0f})",
        "rule-2": lambda v, t: f"Daily enrolments ({v:,.0f}) dropped below normal range (<{t:,.0f})",
        "rule-3": lambda v, t: f"Statistical anomaly detected (z-score: {v:.2f} > {t})",
        "rule-4": lambda v, t: (
            f"Rapid {'increase' if day_change > 0 else 'decrease'} in enrolments ({v:.1f}% change)"
        ),
    }

    triggered_at = now or datetime.now()
    alerts = []
    for rule in ALERT_RULES:
        value, threshold = readings[rule.id]
        if not rule.is_triggered(value, threshold):
            continue
        alerts.append(TriggeredAlert(
            id=f"triggered-{rule.id}-{series[-1].date}",
            rule_id=rule.id,
            name=rule.name,
            metric=rule.metric,
            condition=rule.condition,
            severity=rule.severity,
            value=value,
            threshold=threshold,
            message=messages[rule.id](value, threshold),
            recommendations=list(rule.recommendations),
            triggered_at=triggered_at,
            state=state,
        ))

    return sorted(alerts, key=lambda a: a.severity.rank)


def generate_weekly_report(records: Sequence[EnrolmentRecord]) -> Dict[str, Any]:
    """Totals, age mix, last week's trend, anomaly count and recommendations."""
    metrics = aggregate(records)
    daily = group_by_day(records)
    week = daily[-C.REPORT_WINDOW_DAYS:]
    counts = [p.count for p in week]

    direction = detect_trend_direction(counts)
    anomaly_indices = detect_anomalies_zscore(counts, C.INSIGHT_ANOMALY_THRESHOLD)
    ages = metrics.by_age_group

    recommendations = []
    if direction == TrendDirection.DECREASING:
        recommendations.append(
            "Enrolment trend is declining. Consider reviewing operational capacity "
            "in low-performing regions."
        )
    if anomaly_indices:
        recommendations.append(
            f"{len(anomaly_indices)} anomalies detected. Investigate data quality and regional issues."
        )
    if ages.age_0_5 < ages.age_18_greater * C.LOW_INFANT_SHARE_OF_ADULTS:
        recommendations.append(
            "0-5 age group enrolments are relatively low. Consider targeted awareness campaigns."
        )

    anomaly_count = len(anomaly_indices)
    if anomaly_count > C.REPORT_MANY_ANOMALIES:
        anomaly_severity = "high"
    elif anomaly_count > 0:
        anomaly_severity = "medium"
    else:
        anomaly_severity = "low"

    top = top_states(records, C.REPORT_TOP_STATES)
    return {
        "summary": {
            "total_enrolments": metrics.total_enrolments,
            "unique_dates": len(daily),
            "top_state": top[0].state if top else None,
        },
        "age_distribution": {
            col: {
                "count": getattr(ages, col),
                "percentage": percentage(getattr(ages, col), metrics.total_enrolments),
            }
            for col in C.AGE_COLUMNS
        },
        "trends": {
            "direction": direction.value,
            "daily_average": round(mean(counts)),
            "data": [p.to_dict() for p in week],
        },
        "anomalies": {
            "count": anomaly_count,
            "indices": anomaly_indices,
            "status": "attention_required" if anomaly_count else "normal",
            "severity": anomaly_severity,
        },
        "top_states": [s.to_dict() for s in top],
        "recommendations": recommendations,
    }


class InsightsEngine:
    """
    Request-scoped facade over one published dataset.

    Windows such as "last 30 days" are counted back from the latest date in
    the data, so results do not depend on the wall clock.
    """

    def __init__(self, records: Sequence[EnrolmentRecord]):
        self.records = records
        self._daily: Optional[List[DailyTrendPoint]] = None
        self._summaries: Optional[List[StateSummary]] = None

    @property
    def daily(self) -> List[DailyTrendPoint]:
        if self._daily is None:
            self._daily = group_by_day(self.records)
        return self._daily

    @property
    def summaries(self) -> List[StateSummary]:
        if self._summaries is None:
            self._summaries = state_summary(self.records)
        return self._summaries

    @property
    def latest_date(self) -> Optional[date]:
        return date.fromisoformat(self.daily[-1].date) if self.daily else None

    def recent_daily(self, days: int) -> List[DailyTrendPoint]:
        return last_n_days(self.daily, days)

    def scoped(self, filters: RecordFilter) -> "InsightsEngine":
        return InsightsEngine(filter_records(self.records, filters))

    def statistical_anomalies(
        self,
        threshold: float = C.DEFAULT_ANOMALY_THRESHOLD,
        severity: Optional[str] = None,
        limit: int = C.MAX_FINDINGS_RETURNED
    ) -> Dict[str, Any]:
        """Daily plus regional z-score scan over the whole dataset."""
        if len(self.records) < C.MIN_RECORDS_FOR_SCAN:
            raise InsufficientDataError(
                "Insufficient data for anomaly detection",
                required=C.MIN_RECORDS_FOR_SCAN,
                available=len(self.records),
            )

        findings = scan_daily_anomalies(self.daily, threshold)
        findings += scan_regional_anomalies(self.records, threshold)
        if severity:
            findings = [f for f in findings if f.severity.value == severity]
        findings = sort_findings(findings)

        return {
            "anomalies": [f.to_dict() for f in findings[:limit]],
            "total_anomalies": len(findings),
            "severity_breakdown": severity_breakdown(findings),
            "threshold": threshold,
        }

    def dashboard_anomalies(
        self,
        severity: Optional[str] = None,
        anomaly_type: Optional[str] = None,
        limit: int = C.MAX_FINDINGS_RETURNED
    ) -> Dict[str, Any]:
        """Recent daily deviations plus per-state coverage and age findings."""
        as_of = self.latest_date
        findings = scan_daily_anomalies(
            self.recent_daily(C.INSIGHT_WINDOW_DAYS), C.INSIGHT_ANOMALY_THRESHOLD
        )
        findings += detect_coverage_gaps(self.summaries, C.COVERAGE_GAP_TIERS, as_of)
        findings += detect_age_distribution_anomalies(self.summaries, as_of)

        if severity:
            findings = [f for f in findings if f.severity.value == severity]
        if anomaly_type:
            findings = [f for f in findings if f.type.value == anomaly_type]
        findings = sort_findings(findings)

        return {
            "anomalies": [f.to_dict() for f in findings[:limit]],
            "summary": {"total": len(findings), **severity_breakdown(findings)},
        }

    def forecast(self, horizon: int = 30, alpha: float = C.FORECAST_ALPHA) -> ForecastResult:
        history = self.daily[-C.FORECAST_HISTORY_DAYS:]
        return forecast_series(history, horizon, alpha)

    def trend(self, filters: Optional[RecordFilter] = None) -> TrendAnalysis:
        return analyze_trend(self.records, filters)

    def trends_batch(self, filter_list: Sequence[RecordFilter]) -> List[Dict[str, Any]]:
        return analyze_trends_batch(self.records, filter_list)

    def suggestions(self, limit: int = C.MAX_SUGGESTIONS_RETURNED) -> Dict[str, Any]:
        suggestions = generate_suggestions(self.summaries)
        return {
            "suggestions": [s.to_dict() for s in suggestions[:limit]],
            "summary": {
                "total": len(suggestions),
                "urgent": sum(1 for s in suggestions if s.priority == "urgent"),
                "high": sum(1 for s in suggestions if s.priority == "high"),
                "medium": sum(1 for s in suggestions if s.priority == "medium"),
                "total_potential_enrolments": sum(s.enrolment_boost for s in suggestions),
            },
        }

    def crisis_zones(
        self,
        today: Optional[date] = None,
        noise: Optional[NoiseSource] = None,
        limit: int = C.MAX_ZONES_RETURNED
    ) -> Dict[str, Any]:
        reference = today or self.latest_date or date.today()
        zones = predict_crisis_zones(
            self.summaries, self.recent_daily(C.INSIGHT_WINDOW_DAYS), reference, noise
        )
        return {
            "zones": [z.to_dict() for z in zones[:limit]],
            "summary": {
                "total_zones": len(zones),
                "critical_zones": sum(1 for z in zones if z.risk_level == "critical"),
                "high_risk_zones": sum(1 for z in zones if z.risk_level == "high"),
                "moderate_zones": sum(1 for z in zones if z.risk_level == "moderate"),
            },
            "reference_date": reference.isoformat(),
        }

    def alerts(self, state: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        engine = self.scoped(RecordFilter(state=state)) if state else self
        alerts = check_alert_rules(engine.recent_daily(C.ALERT_WINDOW_DAYS), state, now)
        return {
            "alerts": [a.to_dict() for a in alerts],
            "count": len(alerts),
            "state": state,
        }

    def weekly_report(self, state: Optional[str] = None) -> Dict[str, Any]:
        report = generate_weekly_report(self.records)
        if state:
            state_metrics = aggregate(self.records, RecordFilter(state=state))
            report["state_specific"] = {
                "state": state,
                "metrics": state_metrics.to_dict(),
            }
        report["generated_from"] = {
            "record_count": len(self.records),
            "latest_date": self.latest_date.isoformat() if self.latest_date else None,
        }
        return report
