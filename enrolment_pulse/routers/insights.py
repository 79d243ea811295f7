"""
Insight endpoints: dashboard anomalies, crisis zones, suggestions, alert
checks and the weekly report.
"""
from fastapi import APIRouter, Depends, Query
from datetime import date
from typing import Literal, Optional

from enrolment_pulse.schemas.anomaly import DashboardAnomaliesResponse
from enrolment_pulse.services.data_loader import EnrolmentDataStore, get_data_store
from enrolment_pulse.services.insights_engine import InsightsEngine

router = APIRouter()


@router.get("/anomalies", response_model=DashboardAnomaliesResponse)
def get_dashboard_anomalies(
    severity: Optional[Literal["critical", "high", "medium", "low"]] = Query(None),
    anomaly_type: Optional[Literal["spike", "drop", "coverage_gap", "unusual_pattern"]] = Query(
        None, alias="type"
    ),
    store: EnrolmentDataStore = Depends(get_data_store)
):
    """
    Findings for the alert feed.

    Combines deviations in the last 30 days of data with per-state coverage
    gaps and unusual age distributions, most severe first.
    """
    return InsightsEngine(store.records()).dashboard_anomalies(severity=severity, anomaly_type=anomaly_type)


@router.get("/crisis-zones")
def get_crisis_zones(
    reference_date: Optional[date] = Query(
        None, description="Date used for the seasonal surge rule (defaults to the latest data date)"
    ),
    store: EnrolmentDataStore = Depends(get_data_store)
):
    """States at risk of coverage or capacity trouble, highest risk first."""
    return InsightsEngine(store.records()).crisis_zones(today=reference_date)


@router.get("/suggestions")
def get_suggestions(store: EnrolmentDataStore = Depends(get_data_store)):
    """Mobile camp, staffing and timing suggestions, urgent first."""
    return InsightsEngine(store.records()).suggestions()


@router.get("/alerts/check")
def check_alerts(
    state: Optional[str] = Query(None),
    store: EnrolmentDataStore = Depends(get_data_store)
):
    """Evaluate the alert rules against the latest day of data."""
    return InsightsEngine(store.records()).alerts(state=state)


@router.get("/report")
def get_weekly_report(
    state: Optional[str] = Query(None, description="Add a state-specific section"),
    store: EnrolmentDataStore = Depends(get_data_store)
):
    """Weekly summary report as JSON."""
    return InsightsEngine(store.records()).weekly_report(state=state)
