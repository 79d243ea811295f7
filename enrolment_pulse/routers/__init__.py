"""
Routers package initialization.
"""
from enrolment_pulse.routers import analytics
from enrolment_pulse.routers import insights
from enrolment_pulse.routers import chat

__all__ = [
    "analytics",
    "insights",
    "chat",
]
