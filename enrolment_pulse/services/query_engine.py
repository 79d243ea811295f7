"""
Keyword-based query routing for the chat assistant.

A deliberately simple dispatcher: intents are picked by keyword, entities by
phrase matching. Anything unmatched gets the default summary.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from enrolment_pulse.models.records import AggregatedMetrics, EnrolmentRecord, RecordFilter
from enrolment_pulse.utils.aggregators import (
    aggregate,
    distinct_states,
    filter_records,
    group_by_day,
    last_n_days,
    percentage,
    top_districts,
    top_states,
)
from enrolment_pulse.utils.constants import (
    AGE_GROUP_LABELS,
    INDIAN_STATES,
    INSIGHT_ANOMALY_THRESHOLD,
    INSIGHT_WINDOW_DAYS,
    STATE_ALIASES,
)
from enrolment_pulse.utils.statistics import (
    detect_anomalies_zscore,
    detect_trend_direction,
    mean,
)


class QueryIntent(str, Enum):
    TREND = "trend"
    ANOMALY = "anomaly"
    COMPARISON = "comparison"
    TOP = "top"
    SUMMARY = "summary"
    AGE_BREAKDOWN = "age_breakdown"
    GENERAL = "general"


# Checked in order; the first intent with a matching keyword wins
INTENT_KEYWORDS = [
    (QueryIntent.TREND, ["trend", "pattern"]),
    (QueryIntent.ANOMALY, ["spike", "anomal", "unusual"]),
    (QueryIntent.COMPARISON, ["compare", "vs", "versus"]),
    (QueryIntent.TOP, ["top", "best", "highest"]),
    (QueryIntent.SUMMARY, ["total", "kitne", "how many"]),
    (QueryIntent.AGE_BREAKDOWN, ["age group", "age-wise", "age wise", "breakdown"]),
]

AGE_KEYWORDS = [
    ("age_0_5", ["0-5", "0 to 5", "infant", "baby"]),
    ("age_5_17", ["5-17", "5 to 17", "child", "school"]),
    ("age_18_greater", ["18+", "adult", "18 above", "greater"]),
]

PERIOD_KEYWORDS = [
    (1, ["today"]),
    (2, ["yesterday"]),
    (7, ["week", "7 day"]),
    (30, ["month", "30 day"]),
    (90, ["quarter", "90 day"]),
    (365, ["year", "365"]),
]

EXAMPLE_QUERIES = [
    "What's the enrolment trend in Uttar Pradesh?",
    "Show me days with sudden spikes this month",
    "Total enrolments in Bihar",
    "Compare top 5 states",
    "0-5 age group trend in Karnataka",
    "Any anomalies in Maharashtra?",
    "Top performing districts",
    "Age group breakdown for Kerala",
]


def _contains_phrase(text: str, phrase: str) -> bool:
    """Whole-word match so that "up" does not fire inside "update"."""
    return re.search(rf"(?<![a-z0-9]){re.escape(phrase)}(?![a-z0-9])", text) is not None


def _contains_keyword(text: str, keyword: str) -> bool:
    # Stems such as "anomal" match as prefixes; symbols make their own boundary
    return re.search(rf"(?<![a-z0-9]){re.escape(keyword)}", text) is not None


@dataclass
class ParsedQuery:
    text: str
    intent: QueryIntent
    state: Optional[str] = None
    district: Optional[str] = None
    age_group: Optional[str] = None
    period_days: int = INSIGHT_WINDOW_DAYS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent": self.intent.value,
            "state": self.state,
            "district": self.district,
            "age_group": self.age_group,
            "period_days": self.period_days,
        }


@dataclass
class InsightResponse:
    answer: str
    intent: QueryIntent
    data: Dict[str, Any] = field(default_factory=dict)
    chart_type: str = "none"
    chart_data: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer": self.answer,
            "intent": self.intent.value,
            "data": self.data,
            "chart_type": self.chart_type,
            "chart_data": self.chart_data,
        }


def _age_chart(metrics: AggregatedMetrics) -> List[Dict[str, Any]]:
    ages = metrics.by_age_group.to_dict()
    return [{"name": AGE_GROUP_LABELS[col], "value": ages[col]} for col in AGE_GROUP_LABELS]


class QueryEngine:
    """Answers free-text questions from one published dataset."""

    def __init__(self, records: Sequence[EnrolmentRecord]):
        self.records = records
        self._state_names = self._build_state_lookup()
        self._district_names = self._build_district_lookup()

    def _build_state_lookup(self) -> Dict[str, str]:
        """Lower-case phrase -> state name as it appears in the data."""
        in_data = {s.lower(): s for s in distinct_states(self.records)}
        lookup = {}
        for name in list(INDIAN_STATES) + list(in_data.values()):
            lookup[name.lower()] = in_data.get(name.lower(), name)
        for alias, name in STATE_ALIASES.items():
            lookup[alias] = in_data.get(name.lower(), name)
        return lookup

    def _build_district_lookup(self) -> Dict[str, tuple]:
        """Lower-case district -> (state, district) for the first state it appears in."""
        lookup: Dict[str, tuple] = {}
        for record in self.records:
            key = record.district.lower()
            if key and key not in lookup:
                lookup[key] = (record.state, record.district)
        return lookup

    @staticmethod
    def _longest_match(text: str, phrases: Sequence[str]) -> Optional[str]:
        for phrase in sorted(phrases, key=len, reverse=True):
            if _contains_phrase(text, phrase):
                return phrase
        return None

    def extract_state(self, text: str) -> Optional[str]:
        phrase = self._longest_match(text, list(self._state_names))
        return self._state_names[phrase] if phrase else None

    def extract_district(self, text: str, state: Optional[str] = None) -> Optional[tuple]:
        """(state, district) of the longest district name in text."""
        candidates = [
            key for key, (district_state, _) in self._district_names.items()
            if state is None or district_state == state
        ]
        # A district named like its state is the state, not the district
        candidates = [key for key in candidates if key not in self._state_names]
        phrase = self._longest_match(text, candidates)
        return self._district_names[phrase] if phrase else None

    @staticmethod
    def extract_age_group(text: str) -> Optional[str]:
        for column, keywords in AGE_KEYWORDS:
            if any(_contains_keyword(text, k) for k in keywords):
                return column
        return None

    @staticmethod
    def extract_period_days(text: str) -> int:
        for days, keywords in PERIOD_KEYWORDS:
            if any(_contains_keyword(text, k) for k in keywords):
                return days
        return INSIGHT_WINDOW_DAYS

    @staticmethod
    def detect_intent(text: str) -> QueryIntent:
        for intent, keywords in INTENT_KEYWORDS:
            if any(_contains_keyword(text, k) for k in keywords):
                return intent
        return QueryIntent.GENERAL

    def parse(self, text: str) -> ParsedQuery:
        lowered = (text or "").lower().strip()
        state = self.extract_state(lowered)
        district = None
        match = self.extract_district(lowered, state)
        if match:
            state, district = state or match[0], match[1]
        return ParsedQuery(
            text=text,
            intent=self.detect_intent(lowered),
            state=state,
            district=district,
            age_group=self.extract_age_group(lowered),
            period_days=self.extract_period_days(lowered),
        )

    def process(self, text: str) -> InsightResponse:
        """Route a question to its intent handler."""
        query = self.parse(text)
        handlers = {
            QueryIntent.TREND: self._trend,
            QueryIntent.ANOMALY: self._anomaly,
            QueryIntent.COMPARISON: self._comparison,
            QueryIntent.TOP: self._top_performers,
            QueryIntent.SUMMARY: self._summary,
            QueryIntent.AGE_BREAKDOWN: self._age_breakdown,
        }
        response = handlers.get(query.intent, self._summary)(query)
        response.data.setdefault("query", query.to_dict())
        if query.intent == QueryIntent.GENERAL:
            response.intent = QueryIntent.GENERAL
        return response

    @staticmethod
    def _location(query: ParsedQuery) -> str:
        if query.state and query.district:
            return f"{query.district}, {query.state}"
        return query.state or query.district or "All India"

    def _scope(self, query: ParsedQuery) -> RecordFilter:
        return RecordFilter(state=query.state, district=query.district)

    def _windowed_series(self, query: ParsedQuery):
        daily = group_by_day(filter_records(self.records, self._scope(query)))
        if not daily:
            return daily
        return last_n_days(daily, max(query.period_days, 2))

    def _trend(self, query: ParsedQuery) -> InsightResponse:
        metrics = aggregate(self.records, self._scope(query))
        series = self._windowed_series(query)
        counts = [p.count for p in series]
        direction = detect_trend_direction(counts)
        daily_mean = mean(counts)

        age_info = ""
        if query.age_group and metrics.total_enrolments > 0:
            count = getattr(metrics.by_age_group, query.age_group)
            share = percentage(count, metrics.total_enrolments)
            age_info = (
                f" The {AGE_GROUP_LABELS[query.age_group]} group accounts for "
                f"{share}% ({count:,}) of total enrolments."
            )

        answer = (
            f"Trend analysis for {self._location(query)}:\n\n"
            f"The enrolment trend is {direction.value} over the last {len(series)} days of data. "
            f"Average daily enrolments: {round(daily_mean):,}.{age_info}\n\n"
            f"Total enrolments: {metrics.total_enrolments:,}"
        )
        return InsightResponse(
            answer=answer,
            intent=QueryIntent.TREND,
            data={
                "trend_direction": direction.value,
                "mean": round(daily_mean, 2),
                "total": metrics.total_enrolments,
            },
            chart_type="line",
            chart_data=[p.to_dict() for p in series],
        )

    def _anomaly(self, query: ParsedQuery) -> InsightResponse:
        series = group_by_day(filter_records(self.records, RecordFilter(state=query.state)))
        counts = [p.count for p in series]
        indices = detect_anomalies_zscore(counts, INSIGHT_ANOMALY_THRESHOLD)
        where = f"in {query.state}" if query.state else "across India"

        if not indices:
            return InsightResponse(
                answer=(
                    f"No significant anomalies detected {where} in the recent data. "
                    "Enrolment patterns are within normal range."
                ),
                intent=QueryIntent.ANOMALY,
                data={"anomalies": [], "total_anomalies": 0},
            )

        daily_mean = mean(counts)
        anomalies = [
            {
                "date": series[i].date,
                "count": counts[i],
                "type": "spike" if counts[i] > daily_mean else "drop",
            }
            for i in indices
        ]
        spikes = [a for a in anomalies if a["type"] == "spike"]
        drops = [a for a in anomalies if a["type"] == "drop"]

        lines = [f"Anomaly report {where}:", ""]
        if spikes:
            lines.append(f"{len(spikes)} unusual spike(s) detected:")
            lines += [f"  - {a['date']}: {a['count']:,} enrolments" for a in spikes[:3]]
        if drops:
            lines.append(f"{len(drops)} unusual drop(s) detected:")
            lines += [f"  - {a['date']}: {a['count']:,} enrolments" for a in drops[:3]]

        flagged = set(indices)
        return InsightResponse(
            answer="\n".join(lines),
            intent=QueryIntent.ANOMALY,
            data={"anomalies": anomalies, "total_anomalies": len(anomalies)},
            chart_type="line",
            chart_data=[
                {"date": p.date, "count": p.count, "is_anomaly": i in flagged}
                for i, p in enumerate(series)
            ],
        )

    def _comparison(self, query: ParsedQuery) -> InsightResponse:
        if query.state:
            metrics = aggregate(self.records, RecordFilter(state=query.state))
            national = aggregate(self.records)
            share = percentage(metrics.total_enrolments, national.total_enrolments)
            ages = metrics.by_age_group
            answer = (
                f"{query.state} comparison:\n\n"
                f"Total enrolments: {metrics.total_enrolments:,}\n"
                f"Share of national total: {share}%\n\n"
                f"Age breakdown:\n"
                f"- 0-5 years: {ages.age_0_5:,}\n"
                f"- 5-17 years: {ages.age_5_17:,}\n"
                f"- 18+ years: {ages.age_18_greater:,}"
            )
            return InsightResponse(
                answer=answer,
                intent=QueryIntent.COMPARISON,
                data={"metrics": metrics.to_dict(), "share_percent": share},
                chart_type="pie",
                chart_data=_age_chart(metrics),
            )

        leaders = top_states(self.records, 5)
        lines = ["State-wise comparison (top 5):", ""]
        lines += [f"{i}. {s.state}: {s.total_enrolments:,} enrolments" for i, s in enumerate(leaders, 1)]
        return InsightResponse(
            answer="\n".join(lines),
            intent=QueryIntent.COMPARISON,
            data={"states": [s.to_dict() for s in leaders]},
            chart_type="bar",
            chart_data=[{"state": s.state, "count": s.total_enrolments} for s in leaders],
        )

    def _top_performers(self, query: ParsedQuery) -> InsightResponse:
        states = top_states(self.records, 10)
        districts = top_districts(self.records, 10)

        lines = ["Top performers:", "", "Top 5 states:"]
        lines += [f"  {i}. {s.state}: {s.total_enrolments:,}" for i, s in enumerate(states[:5], 1)]
        lines += ["", "Top 5 districts:"]
        lines += [
            f"  {i}. {d.district}, {d.state}: {d.count:,}" for i, d in enumerate(districts[:5], 1)
        ]
        return InsightResponse(
            answer="\n".join(lines),
            intent=QueryIntent.TOP,
            data={
                "states": [s.to_dict() for s in states],
                "districts": [d.to_dict() for d in districts],
            },
            chart_type="bar",
            chart_data=[{"state": s.state, "count": s.total_enrolments} for s in states],
        )

    def _summary(self, query: ParsedQuery) -> InsightResponse:
        metrics = aggregate(self.records, self._scope(query))
        ages = metrics.by_age_group
        answer = (
            f"Summary for {self._location(query)}:\n\n"
            f"Total enrolments: {metrics.total_enrolments:,}\n\n"
            f"Age group breakdown:\n"
            f"- 0-5 years: {ages.age_0_5:,}\n"
            f"- 5-17 years: {ages.age_5_17:,}\n"
            f"- 18+ years: {ages.age_18_greater:,}"
        )
        return InsightResponse(
            answer=answer,
            intent=QueryIntent.SUMMARY,
            data={"metrics": metrics.to_dict()},
            chart_type="pie",
            chart_data=_age_chart(metrics),
        )

    def _age_breakdown(self, query: ParsedQuery) -> InsightResponse:
        metrics = aggregate(self.records, self._scope(query))
        ages = metrics.by_age_group.to_dict()
        total = metrics.total_enrolments
        lines = [f"Age group breakdown for {self._location(query)}:", ""]
        lines += [
            f"- {AGE_GROUP_LABELS[col]}: {ages[col]:,} ({percentage(ages[col], total)}%)"
            for col in AGE_GROUP_LABELS
        ]
        return InsightResponse(
            answer="\n".join(lines),
            intent=QueryIntent.AGE_BREAKDOWN,
            data={
                "by_age_group": ages,
                "percentages": {col: percentage(ages[col], total) for col in AGE_GROUP_LABELS},
                "total": total,
            },
            chart_type="pie",
            chart_data=_age_chart(metrics),
        )

    def example_queries(self) -> List[str]:
        return list(EXAMPLE_QUERIES)
