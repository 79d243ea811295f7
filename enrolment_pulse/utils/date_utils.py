"""
Date utility functions for record parsing and query windows.
"""
from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from enrolment_pulse.exceptions import InvalidArgumentError
from enrolment_pulse.utils.constants import VALID_TIME_PERIODS

# Try multiple formats, CSV exports use DD-MM-YYYY
DATE_FORMATS = [
    "%d-%m-%Y",  # DD-MM-YYYY (CSV format)
    "%Y-%m-%d",  # YYYY-MM-DD (ISO format)
    "%d/%m/%Y",  # DD/MM/YYYY
    "%Y/%m/%d",  # YYYY/MM/DD
]


def parse_date_string(date_str: str) -> Optional[date]:
    """
    Parse date string to date object.
    Handles multiple formats.

    Args:
        date_str: Date string to parse

    Returns:
        Parsed date or None if invalid
    """
    if not isinstance(date_str, str):
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(date_str.strip(), fmt).date()
        except ValueError:
            continue

    return None


def parse_time_period(time_period: str) -> int:
    """
    Convert a "30d" style period into a number of days.

    Raises:
        InvalidArgumentError: period not in VALID_TIME_PERIODS
    """
    if time_period not in VALID_TIME_PERIODS:
        raise InvalidArgumentError(
            f"Invalid time period. Must be one of: {', '.join(VALID_TIME_PERIODS)}",
            argument="time_period",
            value=time_period,
        )
    return int(time_period[:-1])


def get_date_range(days: int, end_date: date) -> Tuple[date, date]:
    """Inclusive window of `days` days ending at end_date."""
    return end_date - timedelta(days=days - 1), end_date

