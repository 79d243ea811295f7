"""
Schemas package initialization.
"""
from enrolment_pulse.schemas.common import (
    ErrorResponse,
    GeographyFilter,
    HealthResponse,
    RecordFilterParams,
    RefreshResponse,
)
from enrolment_pulse.schemas.analytics import (
    DailyTrendsResponse,
    DistrictsResponse,
    MetricsResponse,
    StatesResponse,
    TrendBatchRequest,
)
from enrolment_pulse.schemas.anomaly import (
    AnomalyDetectionResponse,
    DashboardAnomaliesResponse,
)
from enrolment_pulse.schemas.forecast import ForecastResponse
from enrolment_pulse.schemas.chat import (
    AssistantResponse,
    ChatRequest,
    ExampleQueriesResponse,
    QueryChatResponse,
)

__all__ = [
    # Common
    "ErrorResponse",
    "GeographyFilter",
    "HealthResponse",
    "RecordFilterParams",
    "RefreshResponse",
    # Analytics
    "DailyTrendsResponse",
    "DistrictsResponse",
    "MetricsResponse",
    "StatesResponse",
    "TrendBatchRequest",
    # Anomaly
    "AnomalyDetectionResponse",
    "DashboardAnomaliesResponse",
    # Forecast
    "ForecastResponse",
    # Chat
    "AssistantResponse",
    "ChatRequest",
    "ExampleQueriesResponse",
    "QueryChatResponse",
]
