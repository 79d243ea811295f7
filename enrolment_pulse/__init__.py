"""
Enrolment Pulse - Aadhaar enrolment analytics API.
"""
__version__ = "1.0.0"
