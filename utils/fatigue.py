"""
Fatigue modeling.
Linear-in-distance pace degradation, its integral over a race, and the
fade rate actually observed in a completed run.
"""

import math
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence

import numpy as np

import config


@dataclass(frozen=True)
class FatigueCurvePoint:
    distance: float
    fatigue_multiplier: float  # 1.0 = fresh, 1.1 = 10% slower
    expected_pace: float
    percent_degradation: float


@dataclass(frozen=True)
class FatigueComparison:
    difference: float  # percentage points, actual - expected
    performance: str  # better / similar / worse
    message: str


def fatigue_multiplier(distance: float, fatigue_factor: float) -> float:
    """
    Pace multiplier after covering `distance`.

    Formula: 1 + (distance / 10) * (fatigue_factor / 100)

    Example:
        fatigue_multiplier(50, 3.0) -> 1.15 (15% slower at mile 50)
    """
    return 1.0 + (distance / config.FATIGUE_DISTANCE_UNIT) * (fatigue_factor / 100.0)


def expected_pace_at_distance(base_pace: float, distance: float, fatigue_factor: float) -> float:
    return base_pace * fatigue_multiplier(distance, fatigue_factor)


class FatigueCurve:
    """
    Evenly spaced fatigue samples from the start to the finish.

    Points are computed on iteration, so the curve can be iterated any
    number of times and always yields the same sequence.
    """

    def __init__(self, base_pace: float, total_distance: float, fatigue_factor: float, num_points: int):
        self.base_pace = base_pace
        self.total_distance = total_distance
        self.fatigue_factor = fatigue_factor
        self.num_points = num_points

    def __iter__(self) -> Iterator[FatigueCurvePoint]:
        if self.total_distance <= 0 or self.num_points <= 0:
            yield _curve_point(self.base_pace, 0.0, self.fatigue_factor)
            return

        interval = self.total_distance / self.num_points
        for i in range(self.num_points + 1):
            yield _curve_point(self.base_pace, i * interval, self.fatigue_factor)

    def __len__(self) -> int:
        if self.total_distance <= 0 or self.num_points <= 0:
            return 1
        return self.num_points + 1


def _curve_point(base_pace: float, distance: float, fatigue_factor: float) -> FatigueCurvePoint:
    multiplier = fatigue_multiplier(distance, fatigue_factor)
    return FatigueCurvePoint(
        distance=distance,
        fatigue_multiplier=multiplier,
        expected_pace=base_pace * multiplier,
        percent_degradation=(multiplier - 1.0) * 100.0,
    )


def generate_fatigue_curve(
        base_pace: float,
        total_distance: float,
        fatigue_factor: float,
        num_points: Optional[int] = None
) -> FatigueCurve:
    """
    Expected pace along the race, one sample per mile by default.

    Args:
        base_pace: Fresh pace (min/mile)
        total_distance: Race distance (miles)
        fatigue_factor: % slowdown per 10 miles
        num_points: Number of intervals; the curve has num_points + 1 points

    Returns:
        FatigueCurve; a zero-distance race gives a single neutral point
    """
    if num_points is None:
        num_points = math.ceil(total_distance) if total_distance > 0 else 0
    return FatigueCurve(base_pace, total_distance, fatigue_factor, num_points)


def calculate_total_time_with_fatigue(
        base_pace: float,
        total_distance: float,
        fatigue_factor: float,
        steps: int = config.FATIGUE_INTEGRATION_STEPS
) -> float:
    """
    Total running time (minutes) with fatigue, by the trapezoidal rule.

    Example:
        10:00/mi over 100 miles at 3% per 10 miles -> 1150 minutes
    """
    if total_distance <= 0:
        return 0.0

    distances = np.linspace(0.0, total_distance, steps + 1)
    paces = base_pace * (1.0 + distances / config.FATIGUE_DISTANCE_UNIT * fatigue_factor / 100.0)
    step_size = total_distance / steps

    return float(np.sum((paces[:-1] + paces[1:]) / 2.0) * step_size)


def calculate_actual_fade_rate(paces: Sequence[float], distances: Sequence[float]) -> float:
    """
    Observed fade of a completed run in % per 10 miles.

    The series is split at half distance. The slowdown between the two
    halves' mean paces is divided by the distance between the halves' mean
    positions, then expressed relative to the pace extrapolated back to the
    start. For a run that faded linearly this returns the factor that
    generated it.

    Returns:
        Fade rate (negative for a run that sped up); 0.0 for degenerate input
    """
    if len(paces) < 2 or len(paces) != len(distances):
        return 0.0

    paces = np.asarray(paces, dtype=float)
    distances = np.asarray(distances, dtype=float)
    if not (np.all(np.isfinite(paces)) and np.all(np.isfinite(distances))):
        return 0.0

    mid_distance = distances[0] + (distances[-1] - distances[0]) / 2.0
    first = distances < mid_distance
    second = ~first

    if not first.any() or not second.any():
        return 0.0

    first_pace, second_pace = paces[first].mean(), paces[second].mean()
    first_center, second_center = distances[first].mean(), distances[second].mean()

    spread = second_center - first_center
    if spread <= config.EPSILON:
        return 0.0

    slope = (second_pace - first_pace) / spread
    start_pace = first_pace - slope * first_center
    if start_pace <= 0:
        start_pace = first_pace
    if start_pace <= 0:
        return 0.0

    return float(slope / start_pace * config.FATIGUE_DISTANCE_UNIT * 100.0)


def compare_fatigue(expected_factor: float, actual_fade_rate: float) -> FatigueComparison:
    """Compare a planned fatigue factor with the fade actually observed."""
    difference = actual_fade_rate - expected_factor

    if difference < -config.FATIGUE_MATCH_TOLERANCE:
        return FatigueComparison(difference, "better",
                                 f"Excellent fatigue management! {abs(difference):.1f}% less fade than expected")
    if difference > config.FATIGUE_MATCH_TOLERANCE:
        return FatigueComparison(difference, "worse",
                                 f"Higher fade than expected. {difference:.1f}% more degradation")
    return FatigueComparison(difference, "similar", "Fatigue matched expectations")


def fatigue_description(percent_degradation: float) -> str:
    if percent_degradation < 5:
        return "Fresh"
    if percent_degradation < 10:
        return "Mild fatigue"
    if percent_degradation < 15:
        return "Moderate fatigue"
    if percent_degradation < 20:
        return "Significant fatigue"
    return "Severe fatigue"
