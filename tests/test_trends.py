# =============================================================================
# tests/test_trends.py - Trend Statistics Tests
# =============================================================================
# Tests for lib/trends.py:
# - descriptive stats and half-split trend labels
# - threshold grading and overall health
# - regression, spike detection and threshold projection
# =============================================================================

from datetime import datetime, timedelta, timezone

import pytest

from core.models.alerts import TrendDirection
from core.models.trends import OverallHealth, ParameterStatus, TrendLabel
from lib.trends import (
    DEFAULT_THRESHOLDS,
    analyze_series,
    classify_status,
    days_to_threshold,
    describe,
    detect_spike,
    display_name,
    half_split_trend,
    linear_regression,
    overall_health,
    parameters_for_tank_type,
)

START = datetime(2024, 6, 1, tzinfo=timezone.utc)


def daily(values):
    """(measured_at, value) pairs one day apart."""
    return [(START + timedelta(days=i), v) for i, v in enumerate(values)]


class TestDescribe:
    """Tests for describe()."""

    def test_stats(self):
        assert describe([7.0, 7.2, 7.4]) == {"current": 7.4, "min": 7.0, "max": 7.4, "avg": 7.2}

    def test_empty(self):
        assert describe([]) == {"current": None, "min": None, "max": None, "avg": None}


class TestHalfSplitTrend:
    """Tests for half_split_trend()."""

    def test_rising(self):
        assert half_split_trend([1, 2, 3, 4]) == TrendLabel.RISING

    def test_falling(self):
        assert half_split_trend([40, 30, 20, 10]) == TrendLabel.FALLING

    def test_flat_is_stable(self):
        assert half_split_trend([5, 5, 5, 5]) == TrendLabel.STABLE

    def test_needs_four_readings(self):
        assert half_split_trend([1, 2, 3]) is None


class TestClassifyStatus:
    """Tests for classify_status()."""

    @pytest.mark.parametrize("value, expected", [
        (7.0, ParameterStatus.SAFE),
        (8.2, ParameterStatus.WARNING),
        (9.0, ParameterStatus.DANGER),
        (5.0, ParameterStatus.DANGER),
    ])
    def test_grades(self, value, expected):
        assert classify_status(value, 6.5, 8.0, 6.0, 8.5) == expected

    def test_missing_value(self):
        assert classify_status(None, 6.5, 8.0, 6.0, 8.5) is None

    def test_no_thresholds(self):
        assert classify_status(7.0, None, None, None, None) is None

    def test_zero_bounds_are_real_bounds(self):
        assert classify_status(0.5, 0, 0, 0, 0.25) == ParameterStatus.DANGER


class TestOverallHealth:
    """Tests for overall_health()."""

    def test_all_safe(self):
        assert overall_health([ParameterStatus.SAFE] * 10) == OverallHealth.EXCELLENT

    def test_some_warnings(self):
        statuses = [ParameterStatus.SAFE] * 8 + [ParameterStatus.WARNING] * 2
        assert overall_health(statuses) == OverallHealth.GOOD

    def test_some_danger(self):
        statuses = [ParameterStatus.SAFE] * 8 + [ParameterStatus.DANGER] * 2
        assert overall_health(statuses) == OverallHealth.FAIR

    def test_lots_of_danger(self):
        statuses = [ParameterStatus.SAFE] * 7 + [ParameterStatus.DANGER] * 3
        assert overall_health(statuses) == OverallHealth.POOR

    def test_nothing_measured(self):
        assert overall_health([None, None]) == OverallHealth.EXCELLENT


class TestRegression:
    """Tests for linear_regression(), detect_spike() and days_to_threshold()."""

    def test_perfect_line(self):
        slope, r_squared = linear_regression([0, 1, 2, 3], [1, 3, 5, 7])
        assert slope == pytest.approx(2.0)
        assert r_squared == pytest.approx(1.0)

    def test_degenerate_x(self):
        assert linear_regression([1, 1, 1], [1, 2, 3]) == (0.0, 0.0)

    def test_spike(self):
        assert detect_spike([10] * 9 + [30])

    def test_no_spike(self):
        assert not detect_spike([1, 2, 3])
        assert not detect_spike([5, 5, 5])

    def test_days_to_upper_bound(self):
        assert days_to_threshold(20, 2, DEFAULT_THRESHOLDS["nitrate_ppm"]) == 30

    def test_days_to_lower_bound(self):
        assert days_to_threshold(7.0, -0.1, DEFAULT_THRESHOLDS["ph"]) == 10

    def test_flat_never_crosses(self):
        assert days_to_threshold(7.0, 0, DEFAULT_THRESHOLDS["ph"]) is None


class TestAnalyzeSeries:
    """Tests for analyze_series()."""

    def test_rising_nitrate_is_candidate(self):
        trend = analyze_series("nitrate_ppm", daily([10, 20, 30]))

        assert trend.slope_per_day == pytest.approx(10.0)
        assert trend.direction == TrendDirection.INCREASING
        assert trend.days_to_threshold == 5
        assert trend.is_alert_candidate

    def test_flat_series_is_not_candidate(self):
        trend = analyze_series("nitrate_ppm", daily([20, 20, 20]))

        assert trend.direction == TrendDirection.STABLE
        assert not trend.is_alert_candidate

    def test_too_few_points(self):
        assert analyze_series("ph", daily([7.0, 7.1])) is None

    def test_unknown_parameter(self):
        assert analyze_series("copper_ppm", daily([1, 2, 3])) is None

    def test_prompt_dict(self):
        data = analyze_series("ph", daily([7.4, 7.2, 7.0])).to_prompt_dict()

        assert data["display_name"] == "pH"
        assert data["direction"] == "decreasing"
        assert data["danger_range"] == [6.0, 8.5]


class TestHelpers:
    """Tests for parameter naming helpers."""

    @pytest.mark.parametrize("column, expected", [
        ("ph", "pH"),
        ("ammonia_ppm", "Ammonia"),
        ("temperature_f", "Temperature"),
        ("alkalinity_dkh", "Alkalinity"),
    ])
    def test_display_name(self, column, expected):
        assert display_name(column) == expected

    def test_marine_parameters(self):
        assert "calcium_ppm" in parameters_for_tank_type("reef")
        assert "calcium_ppm" not in parameters_for_tank_type("freshwater")
        assert "salinity" in parameters_for_tank_type("saltwater")
