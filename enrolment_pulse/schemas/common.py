"""
Common Pydantic schemas shared across endpoints.
"""
from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import date

from enrolment_pulse.exceptions import InvalidArgumentError
from enrolment_pulse.models.records import RecordFilter


class GeographyFilter(BaseModel):
    """Geography-based filters."""
    state: Optional[str] = Field(None, description="Filter by state name")
    district: Optional[str] = Field(None, description="Filter by district name")


class RecordFilterParams(GeographyFilter):
    """Geography plus an inclusive date range."""
    start_date: Optional[date] = Field(None, description="First day included")
    end_date: Optional[date] = Field(None, description="Last day included")

    def to_filter(self) -> RecordFilter:
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise InvalidArgumentError(
                "end_date must not be before start_date",
                argument="end_date",
                value=self.end_date.isoformat(),
            )
        return RecordFilter(
            state=self.state,
            district=self.district,
            start_date=self.start_date,
            end_date=self.end_date,
        )


class ErrorResponse(BaseModel):
    """Structured error payload returned by the exception handlers."""
    error: str
    detail: Any = None
    cause: Optional[str] = None
    status_code: int


class DatasetStatus(BaseModel):
    loaded: bool
    record_count: int
    error_count: int
    loaded_at: Optional[str] = None
    source: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    data_source: str
    dataset: DatasetStatus
    database: Optional[str] = None
    llm_enabled: bool


class RefreshResponse(BaseModel):
    """Result of an explicit dataset reload."""
    record_count: int
    error_count: int
    errors: list = Field(default_factory=list, description="First row errors of the load")
    dataset: DatasetStatus
