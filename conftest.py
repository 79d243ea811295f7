"""
Shared pytest fixtures.
"""
from datetime import date, timedelta

import pytest

from enrolment_pulse.models.records import EnrolmentRecord


def make_record(day, state="Bihar", district="Patna", pincode="800001",
                age_0_5=0, age_5_17=0, age_18_greater=0):
    if isinstance(day, str):
        day = date.fromisoformat(day)
    return EnrolmentRecord(
        date=day,
        state=state,
        district=district,
        pincode=pincode,
        age_0_5=age_0_5,
        age_5_17=age_5_17,
        age_18_greater=age_18_greater,
    )


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def sample_records():
    """Three states over 21 consecutive days, Uttar Pradesh largest."""
    start = date(2025, 3, 1)
    layout = [
        ("Uttar Pradesh", "Lucknow", "226001", (30, 40, 50)),
        ("Uttar Pradesh", "Agra", "282001", (10, 20, 30)),
        ("Bihar", "Patna", "800001", (20, 20, 20)),
        ("Kerala", "Ernakulam", "682001", (5, 5, 5)),
    ]
    records = []
    for offset in range(21):
        day = start + timedelta(days=offset)
        for state, district, pincode, (a, b, c) in layout:
            records.append(EnrolmentRecord(
                date=day,
                state=state,
                district=district,
                pincode=pincode,
                age_0_5=a,
                age_5_17=b,
                age_18_greater=c,
            ))
    return records
