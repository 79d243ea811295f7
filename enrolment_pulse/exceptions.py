"""
Error taxonomy shared by the loader, statistics and insight layers.

API handlers in main.py translate these into structured JSON payloads.
"""
from typing import Any, Dict, Optional


class EnrolmentPulseError(Exception):
    """Base class for all domain errors."""

    status_code = 400

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "cause": type(self).__name__,
            "detail": self.context,
        }


class ParseError(EnrolmentPulseError):
    """Malformed date or number in a source row."""

    def __init__(self, message: str, row: Optional[int] = None,
                 field: Optional[str] = None, value: Any = None):
        super().__init__(message, row=row, field=field, value=value)
        self.row = row
        self.field = field
        self.value = value


class ValidationError(EnrolmentPulseError):
    """Semantically invalid value, e.g. a negative count."""

    def __init__(self, message: str, row: Optional[int] = None,
                 field: Optional[str] = None, value: Any = None):
        super().__init__(message, row=row, field=field, value=value)
        self.row = row
        self.field = field
        self.value = value


class InsufficientDataError(EnrolmentPulseError):
    """Fewer data points than an operation requires."""

    def __init__(self, message: str, required: int, available: int):
        super().__init__(message, required=required, available=available)
        self.required = required
        self.available = available


class InvalidArgumentError(EnrolmentPulseError):
    """Bad caller-supplied parameter."""

    def __init__(self, message: str, argument: Optional[str] = None, value: Any = None):
        super().__init__(message, argument=argument, value=value)
        self.argument = argument
        self.value = value


class LLMUnavailableError(EnrolmentPulseError):
    """The text-generation service is not configured or did not answer."""

    status_code = 503
