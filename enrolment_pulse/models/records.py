"""
In-memory record types produced by the data loader and aggregator.
"""
from dataclasses import asdict, dataclass, field, replace
from datetime import date
from typing import Any, Dict, Optional

from enrolment_pulse.utils.constants import REGION_SEPARATOR


@dataclass(frozen=True)
class EnrolmentRecord:
    """One row of daily enrolment counts for a pincode."""
    date: date
    state: str
    district: str
    pincode: str
    age_0_5: int = 0
    age_5_17: int = 0
    age_18_greater: int = 0

    @property
    def total(self) -> int:
        return self.age_0_5 + self.age_5_17 + self.age_18_greater

    @property
    def region_key(self) -> str:
        return f"{self.state}{REGION_SEPARATOR}{self.district}"

    def normalized(self) -> "EnrolmentRecord":
        """Copy with trimmed, lower-cased text fields for matching."""
        return replace(
            self,
            state=self.state.strip().lower(),
            district=self.district.strip().lower(),
            pincode=self.pincode.strip().lower(),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        data["total"] = self.total
        return data


@dataclass(frozen=True)
class RecordFilter:
    """Optional constraints; a None field does not restrict anything."""
    state: Optional[str] = None
    district: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "district": self.district,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }


@dataclass
class AgeGroupTotals:
    age_0_5: int = 0
    age_5_17: int = 0
    age_18_greater: int = 0

    @property
    def total(self) -> int:
        return self.age_0_5 + self.age_5_17 + self.age_18_greater

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class AggregatedMetrics:
    """Totals for one filtered slice of the dataset."""
    total_enrolments: int
    by_age_group: AgeGroupTotals
    by_state: Dict[str, int] = field(default_factory=dict)
    by_district: Dict[str, int] = field(default_factory=dict)
    by_date: Dict[str, int] = field(default_factory=dict)
    record_count: int = 0
    scope: RecordFilter = field(default_factory=RecordFilter)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_enrolments": self.total_enrolments,
            "by_age_group": self.by_age_group.to_dict(),
            "by_state": dict(self.by_state),
            "by_district": dict(self.by_district),
            "by_date": dict(self.by_date),
            "record_count": self.record_count,
            "scope": self.scope.to_dict(),
        }


@dataclass(frozen=True)
class DailyTrendPoint:
    date: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "count": self.count}


@dataclass
class StateSummary:
    state: str
    total_enrolments: int
    age_0_5: int
    age_5_17: int
    age_18_greater: int
    districts: int

    @property
    def adult_share(self) -> float:
        return self.age_18_greater / self.total_enrolments if self.total_enrolments > 0 else 0.0

    @property
    def child_share(self) -> float:
        if self.total_enrolments <= 0:
            return 0.0
        return (self.age_0_5 + self.age_5_17) / self.total_enrolments

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DistrictTotal:
    state: str
    district: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
