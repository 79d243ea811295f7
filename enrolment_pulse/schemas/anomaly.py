"""
Anomaly Detection Pydantic schemas.
"""
from pydantic import BaseModel
from typing import Dict, List, Literal, Optional

SeverityLevel = Literal["critical", "high", "medium", "low"]
AnomalyKind = Literal["spike", "drop", "coverage_gap", "unusual_pattern"]


class AnomalyFindingSchema(BaseModel):
    """Single anomaly finding."""
    id: str
    timestamp: str
    type: AnomalyKind
    severity: SeverityLevel
    affected_regions: List[str]
    confidence_score: float
    suggested_actions: List[str]
    description: str
    value: float
    threshold: float
    z_score: Optional[float] = None


class AnomalyDetectionResponse(BaseModel):
    """Daily and regional z-score scan."""
    anomalies: List[AnomalyFindingSchema]
    total_anomalies: int
    severity_breakdown: Dict[str, int]
    threshold: float


class AnomalySummary(BaseModel):
    total: int
    critical: int
    high: int
    medium: int
    low: int


class DashboardAnomaliesResponse(BaseModel):
    """Recent deviations plus coverage and age distribution findings."""
    anomalies: List[AnomalyFindingSchema]
    summary: AnomalySummary
