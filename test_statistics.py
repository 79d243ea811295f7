"""
Tests for the numeric statistics library.
"""
import pytest

from enrolment_pulse.exceptions import InvalidArgumentError, ValidationError
from enrolment_pulse.utils.statistics import (
    TrendDirection,
    calculate_confidence_score,
    coefficient_of_variation,
    detect_anomalies_zscore,
    detect_seasonal_pattern,
    detect_trend_direction,
    exponential_smoothing,
    growth_rate,
    mean,
    simple_moving_average,
    standard_deviation,
    z_score,
)


class TestBasicStatistics:
    """mean, standard deviation, z-score and friends."""

    def test_mean_of_empty_is_zero(self):
        assert mean([]) == 0.0

    def test_mean(self):
        assert mean([1, 2, 3, 4]) == pytest.approx(2.5)

    def test_standard_deviation_is_population(self):
        assert standard_deviation([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)

    def test_standard_deviation_degenerate(self):
        assert standard_deviation([]) == 0.0
        assert standard_deviation([42]) == 0.0

    @pytest.mark.parametrize("values", [[1, 1, 1], [0, 100, -50, 3], [5.5, 2.25]])
    def test_standard_deviation_never_negative(self, values):
        assert standard_deviation(values) >= 0

    def test_z_score_without_spread(self):
        assert z_score(10, 5, 0) == 0.0

    def test_z_score(self):
        assert z_score(14, 10, 2) == pytest.approx(2.0)

    def test_coefficient_of_variation_zero_mean(self):
        assert coefficient_of_variation([0, 0, 0]) == 0.0

    def test_growth_rate(self):
        assert growth_rate(150, 100) == pytest.approx(0.5)
        assert growth_rate(10, 0) == 0.0

    def test_simple_moving_average(self):
        assert simple_moving_average([1, 2, 3, 4], 2) == [1.5, 2.5, 3.5]

    def test_simple_moving_average_rejects_bad_window(self):
        with pytest.raises(InvalidArgumentError):
            simple_moving_average([1, 2], 0)


class TestAnomalyDetection:
    """Z-score anomaly indices."""

    def test_flags_only_the_outlier(self):
        values = [100, 102, 98, 101, 99, 100, 250]
        assert detect_anomalies_zscore(values, 2.0) == [6]

    def test_is_idempotent(self):
        values = [100, 102, 98, 101, 99, 100, 250]
        assert detect_anomalies_zscore(values, 2.0) == detect_anomalies_zscore(values, 2.0)

    def test_constant_series_has_no_anomalies(self):
        assert detect_anomalies_zscore([7, 7, 7, 7]) == []

    def test_empty_series(self):
        assert detect_anomalies_zscore([]) == []


class TestTrendDirection:

    @pytest.mark.parametrize("values,expected", [
        ([10, 10, 10, 10], TrendDirection.STABLE),
        ([1, 1, 1, 10, 10, 10], TrendDirection.INCREASING),
        ([10, 10, 10, 1, 1, 1], TrendDirection.DECREASING),
        ([5], TrendDirection.STABLE),
        ([], TrendDirection.STABLE),
        ([0, 0, 3, 3], TrendDirection.INCREASING),
        ([100, 103], TrendDirection.STABLE),
    ])
    def test_direction(self, values, expected):
        assert detect_trend_direction(values) == expected


class TestExponentialSmoothing:

    def test_recurrence(self):
        assert exponential_smoothing([10, 20], 0.5) == [10.0, 15.0]

    def test_same_length_as_input(self):
        assert len(exponential_smoothing([3, 1, 4, 1, 5], 0.3)) == 5

    def test_mean_stays_within_input_bounds(self):
        values = [3, 9, 1, 14, 6, 2, 8]
        smoothed = exponential_smoothing(values, 0.3)
        assert min(values) <= mean(smoothed) <= max(values)

    @pytest.mark.parametrize("alpha", [0, -0.1, 1.5])
    def test_rejects_alpha_outside_range(self, alpha):
        with pytest.raises(InvalidArgumentError):
            exponential_smoothing([1, 2, 3], alpha)

    def test_rejects_empty_input(self):
        with pytest.raises(InvalidArgumentError):
            exponential_smoothing([], 0.5)


class TestSeasonalPattern:

    def test_weekly_peak(self):
        week = [100, 100, 100, 100, 100, 100, 300]
        pattern = detect_seasonal_pattern(week * 3, 7)
        assert pattern.has_pattern is True
        assert pattern.amplitude == pytest.approx(200.0)
        assert pattern.peak_indices == [6]

    def test_short_input(self):
        pattern = detect_seasonal_pattern([1, 2, 3], 7)
        assert pattern.has_pattern is False
        assert pattern.amplitude == 0.0
        assert pattern.peak_indices == []

    def test_flat_series_has_no_peaks(self):
        pattern = detect_seasonal_pattern([5] * 14, 7)
        assert pattern.has_pattern is False
        assert pattern.peak_indices == []

    def test_rejects_bad_period(self):
        with pytest.raises(InvalidArgumentError):
            detect_seasonal_pattern([1, 2, 3], 0)


class TestConfidenceScore:

    def test_bounded_by_model_accuracy(self):
        score = calculate_confidence_score(5000, 0.0, 0.85)
        assert 0 <= score <= 0.85
        assert score == pytest.approx(0.85)

    def test_increases_with_sample_size(self):
        assert calculate_confidence_score(10, 0.5) < calculate_confidence_score(500, 0.5)

    def test_decreases_with_dispersion(self):
        assert calculate_confidence_score(100, 0.1) > calculate_confidence_score(100, 2.0)

    def test_zero_samples(self):
        assert calculate_confidence_score(0, 0.0, 0.8) == pytest.approx(0.4)

    def test_rejects_bad_accuracy(self):
        with pytest.raises(ValidationError):
            calculate_confidence_score(10, 0.5, 1.5)

    def test_rejects_negative_sample_size(self):
        with pytest.raises(InvalidArgumentError):
            calculate_confidence_score(-1, 0.5)
