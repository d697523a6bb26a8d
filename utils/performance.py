"""
Performance modeling and adjustment functions.
Grade-adjusted pace (flat-ground equivalent effort) from a fixed cost curve.
"""

import math

import config

GAP_MIN_PACE = 3.0
GAP_MAX_PACE = 30.0
FLAT_GRADIENT_BAND = 0.5  # % grade treated as flat


def energy_cost_multiplier(gradient_percent: float) -> float:
    """
    Relative energy cost of running at a gradient versus flat ground.

    Polynomial approximation of Minetti et al. (2002):
    - Uphill: cost = 1 + 3.5g + 5g^2 (g as a decimal)
    - Downhill to -10%: cheaper than flat, never below 0.7
    - Steeper downhill: braking cost, capped at 1.2

    Args:
        gradient_percent: Grade (%), positive uphill

    Returns:
        Cost multiplier (1.0 = flat)

    Example:
        energy_cost_multiplier(10) -> 1.40
        energy_cost_multiplier(-5) -> ~0.975
    """
    g = gradient_percent / 100.0

    if gradient_percent >= 0:
        return 1.0 + 3.5 * g + 5.0 * g ** 2

    abs_g = abs(g)
    if abs(gradient_percent) <= 10:
        return max(0.7, 1.0 - 0.5 * abs_g + 0.15 * g ** 2)

    return min(1.2, 0.7 + 0.1 * (abs_g - 0.10) ** 2)


def grade_adjusted_pace(actual_pace: float, gradient_percent: float) -> float:
    """
    Convert a pace on a gradient into the equivalent flat-ground pace.

    Uphill GAP is faster than the actual pace, downhill GAP slower.
    Invalid inputs and implausible results (outside 3..30 min/mile) return
    the actual pace unchanged.

    Example:
        10:00/mi up a 10% grade -> ~7:09/mi GAP
    """
    if not _is_finite(actual_pace) or actual_pace <= 0:
        return actual_pace
    if not _is_finite(gradient_percent) or abs(gradient_percent) < FLAT_GRADIENT_BAND:
        return actual_pace

    speed_mph = config.MINUTES_PER_HOUR / actual_pace
    gap_speed = speed_mph * energy_cost_multiplier(gradient_percent)
    gap_pace = config.MINUTES_PER_HOUR / gap_speed

    if not _is_finite(gap_pace) or gap_pace < GAP_MIN_PACE or gap_pace > GAP_MAX_PACE:
        return actual_pace
    return gap_pace


def effort_level(actual_pace: float, gap: float, band_percent: float = 5.0) -> str:
    """'harder' when GAP is notably faster than actual pace, 'easier' when slower."""
    if actual_pace <= 0:
        return "similar"
    variance = (gap - actual_pace) / actual_pace * 100.0
    if variance < -band_percent:
        return "harder"
    if variance > band_percent:
        return "easier"
    return "similar"


def _is_finite(value) -> bool:
    return value is not None and math.isfinite(value)
