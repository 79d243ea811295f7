"""
Forecast Pydantic schemas.
"""
from pydantic import BaseModel
from typing import List


class ForecastDataPoint(BaseModel):
    """Single forecast data point."""
    date: str
    predicted: float
    lower: float
    upper: float


class ForecastSummary(BaseModel):
    next_week_total: int
    next_month_total: int
    daily_average_predicted: int
    growth_rate_percent: float


class ForecastBody(BaseModel):
    horizon_days: int
    predictions: List[ForecastDataPoint]
    summary: ForecastSummary


class TrendInfo(BaseModel):
    direction: str
    strength: str


class SeasonalComponent(BaseModel):
    """Weekly seasonality of the history."""
    has_pattern: bool
    amplitude: float
    peak_indices: List[int]
    period_length: int


class ConfidenceInfo(BaseModel):
    score: float
    data_points: int
    model: str


class HistoricalStats(BaseModel):
    mean: float
    std_dev: float
    min: int
    max: int


class ForecastResponse(BaseModel):
    """Response for the enrolment forecast endpoint."""
    forecast: ForecastBody
    trend: TrendInfo
    seasonal: SeasonalComponent
    confidence: ConfidenceInfo
    historical: HistoricalStats
