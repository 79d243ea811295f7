"""
Numeric statistics used by the anomaly, trend and forecast endpoints.

Every function recomputes from its raw input; the daily series here are at
most a few hundred points. Degenerate input (empty, single element, zero
spread) returns a defined fallback instead of raising, so callers in the
aggregation pipeline do not need to special-case small slices.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Sequence

import numpy as np

from enrolment_pulse.exceptions import InvalidArgumentError, ValidationError
from enrolment_pulse.utils.constants import (
    CONFIDENCE_SATURATION_SAMPLES,
    DEFAULT_ANOMALY_THRESHOLD,
    DEFAULT_MODEL_ACCURACY,
    SEASONAL_AMPLITUDE_RATIO,
    TREND_TOLERANCE,
)


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


@dataclass
class SeasonalPattern:
    """Result of a fixed-period seasonality check."""
    has_pattern: bool
    amplitude: float
    peak_indices: List[int] = field(default_factory=list)
    period_length: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_pattern": self.has_pattern,
            "amplitude": round(self.amplitude, 2),
            "peak_indices": list(self.peak_indices),
            "period_length": self.period_length,
        }


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(list(values), dtype=float)


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty sequence."""
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation; 0.0 for fewer than two values."""
    arr = _as_array(values)
    if arr.size < 2:
        return 0.0
    return float(arr.std(ddof=0))


def z_score(value: float, mean_value: float, std_dev: float) -> float:
    """Standard score of value; 0.0 when there is no spread."""
    if std_dev == 0:
        return 0.0
    return (value - mean_value) / std_dev


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Standard deviation over mean; 0.0 when the mean is 0."""
    mean_value = mean(values)
    if mean_value == 0:
        return 0.0
    return standard_deviation(values) / mean_value


def growth_rate(current: float, previous: float) -> float:
    """Relative change from previous to current; 0.0 when previous is 0."""
    if previous == 0:
        return 0.0
    return (current - previous) / previous


def detect_anomalies_zscore(
    values: Sequence[float],
    threshold: float = DEFAULT_ANOMALY_THRESHOLD
) -> List[int]:
    """
    Indices whose absolute z-score exceeds threshold.

    Mean and standard deviation are computed once over the whole sequence.
    """
    arr = _as_array(values)
    if arr.size == 0:
        return []

    mean_value = float(arr.mean())
    std_dev = float(arr.std(ddof=0))
    if std_dev == 0:
        scores = np.zeros(arr.size)
    else:
        scores = np.abs((arr - mean_value) / std_dev)
    return [int(i) for i in np.flatnonzero(scores > threshold)]


def detect_trend_direction(values: Sequence[float]) -> TrendDirection:
    """
    Compare the mean of the second half of the series with the first half.

    The second half takes the extra element for odd lengths. A relative
    change beyond TREND_TOLERANCE either way leaves "stable".
    """
    if len(values) < 2:
        return TrendDirection.STABLE

    midpoint = len(values) // 2
    first_mean = mean(values[:midpoint])
    second_mean = mean(values[midpoint:])

    if first_mean == 0:
        return TrendDirection.INCREASING if second_mean > 0 else TrendDirection.STABLE

    change = (second_mean - first_mean) / abs(first_mean)
    if change > TREND_TOLERANCE:
        return TrendDirection.INCREASING
    if change < -TREND_TOLERANCE:
        return TrendDirection.DECREASING
    return TrendDirection.STABLE


def exponential_smoothing(values: Sequence[float], alpha: float) -> List[float]:
    """
    Single exponential smoothing, same length as the input.

    Raises:
        InvalidArgumentError: alpha outside (0, 1] or empty input
    """
    if not 0 < alpha <= 1:
        raise InvalidArgumentError(
            "Smoothing factor must be in (0, 1]", argument="alpha", value=alpha
        )
    if len(values) == 0:
        raise InvalidArgumentError(
            "Cannot smooth an empty series", argument="values", value=[]
        )

    smoothed = [float(values[0])]
    for value in values[1:]:
        smoothed.append(alpha * float(value) + (1 - alpha) * smoothed[-1])
    return smoothed


def simple_moving_average(values: Sequence[float], window: int) -> List[float]:
    """Trailing moving average; one output per full window."""
    if window < 1:
        raise InvalidArgumentError("Window must be at least 1", argument="window", value=window)
    return [
        mean(values[i - window + 1:i + 1])
        for i in range(window - 1, len(values))
    ]


def detect_seasonal_pattern(values: Sequence[float], period_length: int) -> SeasonalPattern:
    """
    Check for a recurring fluctuation with a fixed period.

    Values are grouped by position modulo period_length. The pattern counts
    when the spread of the per-offset averages exceeds
    SEASONAL_AMPLITUDE_RATIO of the overall mean. Peaks are offsets at or
    above one standard deviation over the average of the offset means.
    """
    if period_length < 1:
        raise InvalidArgumentError(
            "Period length must be at least 1", argument="period_length", value=period_length
        )
    if len(values) < period_length * 2:
        return SeasonalPattern(has_pattern=False, amplitude=0.0, period_length=period_length)

    arr = _as_array(values)
    components = np.array([arr[offset::period_length].mean() for offset in range(period_length)])

    amplitude = float(components.max() - components.min())
    overall_mean = float(arr.mean())
    has_pattern = amplitude > abs(overall_mean) * SEASONAL_AMPLITUDE_RATIO

    component_std = float(components.std(ddof=0))
    if component_std == 0:
        peaks: List[int] = []
    else:
        cutoff = float(components.mean()) + component_std
        peaks = [int(i) for i in np.flatnonzero(components >= cutoff)]

    return SeasonalPattern(
        has_pattern=bool(has_pattern),
        amplitude=amplitude,
        peak_indices=peaks,
        period_length=period_length,
    )


def calculate_confidence_score(
    sample_size: int,
    coefficient_of_variation: float,
    base_model_accuracy: float = DEFAULT_MODEL_ACCURACY
) -> float:
    """
    Deterministic confidence in [0, base_model_accuracy].

    Half of the score comes from sample size on a log scale that saturates at
    CONFIDENCE_SATURATION_SAMPLES, half from dispersion as 1 / (1 + cv).
    """
    if not 0 <= base_model_accuracy <= 1:
        raise ValidationError(
            "Model accuracy must be a probability in [0, 1]",
            field="base_model_accuracy",
            value=base_model_accuracy,
        )
    if sample_size < 0:
        raise InvalidArgumentError(
            "Sample size cannot be negative", argument="sample_size", value=sample_size
        )

    data_factor = min(
        math.log10(1 + sample_size) / math.log10(1 + CONFIDENCE_SATURATION_SAMPLES), 1.0
    )
    dispersion_factor = 1.0 / (1.0 + max(coefficient_of_variation, 0.0))

    score = base_model_accuracy * (0.5 * data_factor + 0.5 * dispersion_factor)
    return min(max(score, 0.0), 1.0)
