"""
Analytics Pydantic schemas.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional

from enrolment_pulse.schemas.common import GeographyFilter

# Same values as constants.VALID_TIME_PERIODS
TimePeriod = Literal["7d", "30d", "90d", "180d", "365d"]


class AgeGroupBreakdown(BaseModel):
    age_0_5: int
    age_5_17: int
    age_18_greater: int


class ScopeInfo(BaseModel):
    state: Optional[str] = None
    district: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class MetricsResponse(BaseModel):
    """Aggregated totals for one filtered slice."""
    total_enrolments: int
    by_age_group: AgeGroupBreakdown
    by_state: Dict[str, int]
    by_district: Dict[str, int] = Field(..., description='Keyed by "state|district"')
    by_date: Dict[str, int]
    record_count: int
    scope: ScopeInfo


class DailyTrendPointSchema(BaseModel):
    date: str
    count: int


class DailyTrendsResponse(BaseModel):
    trends: List[DailyTrendPointSchema]
    count: int
    zero_filled: bool


class StateSummarySchema(BaseModel):
    state: str
    total_enrolments: int
    age_0_5: int
    age_5_17: int
    age_18_greater: int
    districts: int


class StatesResponse(BaseModel):
    states: List[StateSummarySchema]
    count: int


class DistrictTotalSchema(BaseModel):
    state: str
    district: str
    count: int


class DistrictsResponse(BaseModel):
    state: Optional[str] = None
    districts: List[str]
    top: List[DistrictTotalSchema]
    count: int


class TrendConfiguration(GeographyFilter):
    """One entry of a batch trend request."""
    time_period: Optional[TimePeriod] = Field(
        None, description="Window counted back from the latest date in the data"
    )


class TrendBatchRequest(BaseModel):
    configurations: List[TrendConfiguration] = Field(..., min_length=1, max_length=20)
