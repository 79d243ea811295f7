"""
Utils package initialization.

aggregators is imported from its module directly; it depends on
enrolment_pulse.models, which itself imports the constants below.
"""
from enrolment_pulse.utils.date_utils import (
    parse_date_string,
    parse_time_period,
    get_date_range,
)
from enrolment_pulse.utils.constants import (
    INDIAN_STATES,
    STATE_ALIASES,
)

__all__ = [
    "parse_date_string",
    "parse_time_period",
    "get_date_range",
    "INDIAN_STATES",
    "STATE_ALIASES",
]
