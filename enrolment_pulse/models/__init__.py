"""
Models package initialization.
"""
from enrolment_pulse.models.records import (
    AggregatedMetrics,
    AgeGroupTotals,
    DailyTrendPoint,
    DistrictTotal,
    EnrolmentRecord,
    RecordFilter,
    StateSummary,
)

__all__ = [
    "AggregatedMetrics",
    "AgeGroupTotals",
    "DailyTrendPoint",
    "DistrictTotal",
    "EnrolmentRecord",
    "RecordFilter",
    "StateSummary",
]
