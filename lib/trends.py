# =============================================================================
# lib/trends.py - Water Parameter Trend Statistics
# =============================================================================
# Pure numeric helpers used by two callers:
#
# 1. The on-demand trend analysis endpoint (core/services/trend_service.py)
#    - describe(): current/min/max/avg
#    - half_split_trend(): rising/falling/stable
#    - classify_status() / overall_health(): threshold grading
#
# 2. The daily proactive alert job (core/services/alert_service.py)
#    - linear_regression(): slope per day + r^2 confidence
#    - detect_spike(): last value > 2 std devs from the mean
#    - days_to_threshold(): projection onto the danger bounds
#    - analyze_series(): all of the above for one parameter
#
# Nothing here touches the database; inputs are plain lists.
# =============================================================================

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Sequence

import numpy as np

from core.models.alerts import TrendDirection
from core.models.trends import OverallHealth, ParameterStatus, TrendLabel
from lib.utils import parse_datetime


# =============================================================================
# Default Thresholds
# =============================================================================

@dataclass(frozen=True)
class ParameterThreshold:
    """
    Safe band and danger bounds for one parameter.

    Values between the safe band and the danger bounds are "warning".
    """
    safe_min: float
    safe_max: float
    danger_min: float
    danger_max: float
    unit: str = ""


DEFAULT_THRESHOLDS: dict[str, ParameterThreshold] = {
    "ph": ParameterThreshold(6.5, 8.0, 6.0, 8.5, ""),
    "ammonia_ppm": ParameterThreshold(0, 0.25, 0, 0.5, "ppm"),
    "nitrite_ppm": ParameterThreshold(0, 0.25, 0, 0.5, "ppm"),
    "nitrate_ppm": ParameterThreshold(0, 40, 0, 80, "ppm"),
    "temperature_f": ParameterThreshold(72, 82, 68, 86, "F"),
    "gh_dgh": ParameterThreshold(4, 12, 2, 20, "dGH"),
    "kh_dgh": ParameterThreshold(4, 12, 2, 20, "dKH"),
    "salinity": ParameterThreshold(1.020, 1.026, 1.018, 1.028, "sg"),
    "calcium_ppm": ParameterThreshold(380, 450, 350, 500, "ppm"),
    "alkalinity_dkh": ParameterThreshold(7, 12, 5, 14, "dKH"),
    "magnesium_ppm": ParameterThreshold(1250, 1400, 1150, 1500, "ppm"),
    "phosphate_ppm": ParameterThreshold(0, 0.03, 0, 0.1, "ppm"),
}

FRESHWATER_PARAMETERS: tuple[str, ...] = (
    "ph",
    "ammonia_ppm",
    "nitrite_ppm",
    "nitrate_ppm",
    "temperature_f",
    "gh_dgh",
    "kh_dgh",
)

MARINE_PARAMETERS: tuple[str, ...] = FRESHWATER_PARAMETERS + (
    "salinity",
    "calcium_ppm",
    "alkalinity_dkh",
    "magnesium_ppm",
    "phosphate_ppm",
)

# Below this absolute slope (units/day) a series counts as flat
STABLE_SLOPE = 0.01

# Alert candidates: projected to cross a danger bound within this many days
PROJECTION_HORIZON_DAYS = 30

MIN_CONFIDENCE = 0.3


def parameters_for_tank_type(tank_type: str | None) -> tuple[str, ...]:
    if tank_type in ("saltwater", "reef"):
        return MARINE_PARAMETERS
    return FRESHWATER_PARAMETERS


def display_name(parameter: str) -> str:
    """
    "ammonia_ppm" -> "Ammonia", "temperature_f" -> "Temperature", "ph" -> "pH".
    """
    if parameter == "ph":
        return "pH"
    base = parameter
    for suffix in ("_ppm", "_dgh", "_dkh", "_f"):
        if base.endswith(suffix):
            base = base[: -len(suffix)]
            break
    return base.replace("_", " ").title()


# =============================================================================
# Descriptive Statistics (on-demand analysis)
# =============================================================================

def describe(values: Sequence[float]) -> dict[str, float | None]:
    """
    current (last value), min, max and avg, rounded to 2 decimals.

    Values must be in chronological order.
    """
    if not values:
        return {"current": None, "min": None, "max": None, "avg": None}

    arr = np.asarray(values, dtype=float)
    return {
        "current": round(float(arr[-1]), 2),
        "min": round(float(arr.min()), 2),
        "max": round(float(arr.max()), 2),
        "avg": round(float(arr.mean()), 2),
    }


def half_split_trend(values: Sequence[float]) -> TrendLabel | None:
    """
    Compare the mean of the first half with the mean of the second half.

    The difference is judged against 5% of the observed range, so noisy
    but flat series stay "stable". Needs at least 4 readings.
    """
    if len(values) < 4:
        return None

    arr = np.asarray(values, dtype=float)
    mid = len(arr) // 2
    first_avg = float(arr[:mid].mean())
    second_avg = float(arr[mid:].mean())
    value_range = float(arr.max() - arr.min())
    diff = second_avg - first_avg

    if diff > value_range * 0.05:
        return TrendLabel.RISING
    if diff < -value_range * 0.05:
        return TrendLabel.FALLING
    return TrendLabel.STABLE


def classify_status(
    value: float | None,
    safe_min: float | None,
    safe_max: float | None,
    warning_min: float | None,
    warning_max: float | None,
) -> ParameterStatus | None:
    """
    Grade a value against a safe band and a wider warning band.

    A missing bound is treated as open-ended. Returns None when there is
    no value or no usable threshold at all.
    """
    if value is None:
        return None
    if all(b is None for b in (safe_min, safe_max, warning_min, warning_max)):
        return None

    def within(low: float | None, high: float | None) -> bool:
        return (low is None or value >= low) and (high is None or value <= high)

    if within(safe_min, safe_max):
        return ParameterStatus.SAFE
    if within(warning_min, warning_max):
        return ParameterStatus.WARNING
    return ParameterStatus.DANGER


def overall_health(statuses: Iterable[ParameterStatus | None]) -> OverallHealth:
    """
    Grade the tank from per-parameter statuses.

    - more than 20% danger -> poor
    - more than 10% danger, or under 70% safe -> fair
    - under 90% safe -> good
    - otherwise excellent (also when nothing was measured)
    """
    graded = [s for s in statuses if s is not None]
    if not graded:
        return OverallHealth.EXCELLENT

    total = len(graded)
    danger_ratio = sum(1 for s in graded if s == ParameterStatus.DANGER) / total
    safe_ratio = sum(1 for s in graded if s == ParameterStatus.SAFE) / total

    if danger_ratio > 0.2:
        return OverallHealth.POOR
    if danger_ratio > 0.1 or safe_ratio < 0.7:
        return OverallHealth.FAIR
    if safe_ratio < 0.9:
        return OverallHealth.GOOD
    return OverallHealth.EXCELLENT


# =============================================================================
# Regression & Projection (proactive alerts)
# =============================================================================

def linear_regression(x: Sequence[float], y: Sequence[float]) -> tuple[float, float]:
    """
    Least-squares fit of y over x.

    Returns:
        (slope, r_squared) with r_squared clamped to [0, 1].
        A degenerate x (all equal) returns (0.0, 0.0).
    """
    n = len(x)
    if n < 2 or n != len(y):
        return 0.0, 0.0

    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)

    x_dev = xs - xs.mean()
    denominator = float((x_dev ** 2).sum())
    if denominator == 0:
        return 0.0, 0.0

    slope = float((x_dev * (ys - ys.mean())).sum()) / denominator
    intercept = float(ys.mean()) - slope * float(xs.mean())

    ss_tot = float(((ys - ys.mean()) ** 2).sum())
    ss_res = float(((ys - (slope * xs + intercept)) ** 2).sum())
    r_squared = 1 - ss_res / ss_tot if ss_tot else 0.0

    return slope, max(0.0, min(1.0, r_squared))


def detect_spike(values: Sequence[float]) -> bool:
    """
    True when the latest value sits more than 2 population std devs
    away from the series mean. Needs at least 3 values.
    """
    if len(values) < 3:
        return False
    arr = np.asarray(values, dtype=float)
    std = float(arr.std())
    if std == 0:
        return False
    return abs(float(arr[-1]) - float(arr.mean())) > 2 * std


def days_to_threshold(
    current: float,
    slope: float,
    threshold: ParameterThreshold,
) -> int | None:
    """
    Days until the current value crosses a danger bound at the present slope.

    Returns None when the series is heading away from both bounds (or is
    already past the one it is heading toward).
    """
    if slope > 0 and current < threshold.danger_max:
        days = (threshold.danger_max - current) / slope
    elif slope < 0 and current > threshold.danger_min:
        days = abs((threshold.danger_min - current) / slope)
    else:
        return None

    if not math.isfinite(days):
        return None
    return max(0, round(days))


def trend_direction(slope: float, spiking: bool) -> TrendDirection:
    if spiking:
        return TrendDirection.SPIKING
    if abs(slope) < STABLE_SLOPE:
        return TrendDirection.STABLE
    return TrendDirection.INCREASING if slope > 0 else TrendDirection.DECREASING


@dataclass
class ParameterTrend:
    """Regression summary for one parameter of one tank."""
    parameter: str
    values: list[float]
    current: float
    slope_per_day: float
    confidence: float
    direction: TrendDirection
    days_to_threshold: int | None
    is_spike: bool
    threshold: ParameterThreshold

    @property
    def is_alert_candidate(self) -> bool:
        """
        Worth asking the LLM about: crossing soon, a confident drift, or a spike.
        """
        if self.days_to_threshold is not None and self.days_to_threshold < PROJECTION_HORIZON_DAYS:
            return True
        if abs(self.slope_per_day) > STABLE_SLOPE and self.confidence > MIN_CONFIDENCE:
            return True
        return self.is_spike

    def to_prompt_dict(self) -> dict[str, Any]:
        return {
            "parameter": self.parameter,
            "display_name": display_name(self.parameter),
            "unit": self.threshold.unit,
            "values": [round(v, 3) for v in self.values],
            "current_value": self.current,
            "slope_per_day": round(self.slope_per_day, 4),
            "confidence": round(self.confidence, 2),
            "direction": self.direction.value,
            "days_to_threshold": self.days_to_threshold,
            "is_spike": self.is_spike,
            "safe_range": [self.threshold.safe_min, self.threshold.safe_max],
            "danger_range": [self.threshold.danger_min, self.threshold.danger_max],
        }


def analyze_series(
    parameter: str,
    points: Sequence[tuple[datetime | str, float]],
    threshold: ParameterThreshold | None = None,
) -> ParameterTrend | None:
    """
    Fit one parameter's readings.

    Args:
        parameter: Column name, e.g. "nitrate_ppm"
        points: (measured_at, value) pairs in chronological order
        threshold: Override for DEFAULT_THRESHOLDS[parameter]

    Returns:
        ParameterTrend, or None with fewer than 3 points or no threshold
    """
    threshold = threshold or DEFAULT_THRESHOLDS.get(parameter)
    if threshold is None or len(points) < 3:
        return None

    times = [parse_datetime(t) for t, _ in points]
    start = times[0]
    x = [(t - start).total_seconds() / 86400 for t in times]
    y = [float(v) for _, v in points]

    slope, confidence = linear_regression(x, y)
    spiking = detect_spike(y)
    current = y[-1]

    return ParameterTrend(
        parameter=parameter,
        values=y,
        current=current,
        slope_per_day=slope,
        confidence=confidence,
        direction=trend_direction(slope, spiking),
        days_to_threshold=days_to_threshold(current, slope, threshold),
        is_spike=spiking,
        threshold=threshold,
    )
