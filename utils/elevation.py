"""
Elevation analysis utilities.
Computes gain/loss for a stretch of course and classifies climbs.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from utils.records import TrackPoint
import config


@dataclass(frozen=True)
class ElevationStats:
    gain: float  # meters
    loss: float  # meters
    min_elevation: float
    max_elevation: float
    distance: float  # miles covered by the sliced points

    @property
    def net(self) -> float:
        return self.gain - self.loss


EMPTY_STATS = ElevationStats(0.0, 0.0, 0.0, 0.0, 0.0)


def segment_elevation(
        points: Sequence[TrackPoint],
        start_distance: float,
        end_distance: float,
        min_step_m: float = config.ELEVATION_HYSTERESIS_M
) -> ElevationStats:
    """
    Calculate elevation statistics for the course between two distances.

    Uses hysteresis filtering so GPS noise does not count as climbing.

    Args:
        points: Track points ordered by ascending distance
        start_distance: Start of the stretch (miles, inclusive)
        end_distance: End of the stretch (miles, inclusive)
        min_step_m: Minimum elevation change to count as real gain/loss

    Returns:
        ElevationStats; all zeros when fewer than 2 points fall in range
    """
    if not points or end_distance <= start_distance:
        return EMPTY_STATS

    distances = np.array([p.distance for p in points], dtype=float)
    elevations = np.array([p.elevation for p in points], dtype=float)

    mask = (distances >= start_distance) & (distances <= end_distance)
    if np.count_nonzero(mask) < 2:
        return EMPTY_STATS

    sliced = elevations[mask]
    sliced_distances = distances[mask]
    gain, loss = _calculate_elevation_changes_with_hysteresis(sliced, min_step_m)

    return ElevationStats(
        gain=gain,
        loss=loss,
        min_elevation=float(np.min(sliced)),
        max_elevation=float(np.max(sliced)),
        distance=float(sliced_distances[-1] - sliced_distances[0]),
    )


def course_stats(points: Sequence[TrackPoint]) -> ElevationStats:
    """Elevation statistics for an entire track."""
    if len(points) < 2:
        return EMPTY_STATS
    return segment_elevation(points, points[0].distance, points[-1].distance)


def _calculate_elevation_changes_with_hysteresis(
        elevations: np.ndarray,
        min_threshold_m: float
) -> Tuple[float, float]:
    """
    Calculate elevation gain and loss with hysteresis filtering.

    Hysteresis Algorithm:
    - Track upward and downward movement in accumulators
    - Only commit to gain/loss when accumulated change reaches threshold

    Example:
        If threshold is 3m:
        - Climbing 2m then descending 1m = no gain recorded (noise)
        - Climbing 5m then descending 1m = 5m gain recorded (real climb)

    Returns:
        Tuple of (total_gain_m, total_loss_m)
    """
    total_gain = 0.0
    total_loss = 0.0
    upward_accumulator = 0.0
    downward_accumulator = 0.0

    previous_elevation = elevations[0]

    for current_elevation in elevations[1:]:
        elevation_change = current_elevation - previous_elevation

        if elevation_change >= 0:
            upward_accumulator += elevation_change
            if downward_accumulator <= -min_threshold_m:
                total_loss += -downward_accumulator
            downward_accumulator = 0.0
        else:
            downward_accumulator += elevation_change
            if upward_accumulator >= min_threshold_m:
                total_gain += upward_accumulator
            upward_accumulator = 0.0

        previous_elevation = current_elevation

    # commit whatever is still pending at the end of the stretch
    if upward_accumulator >= min_threshold_m:
        total_gain += upward_accumulator
    if downward_accumulator <= -min_threshold_m:
        total_loss += -downward_accumulator

    return float(total_gain), float(total_loss)


def average_gradient(stats: ElevationStats, distance_miles: float) -> float:
    """Net average gradient (%) of a stretch: (gain - loss) / horizontal distance."""
    if distance_miles <= 0:
        return 0.0
    return stats.net / (distance_miles * config.METERS_PER_MILE) * 100.0


def classify_climb(gradient_percent: float, gain_m: float) -> str:
    """
    Classify climb difficulty from average gradient.

    Less than ~15m (50ft) of gain is always 'Flat/Rolling'.
    """
    if gain_m < config.FLAT_GAIN_M:
        return "Flat/Rolling"

    steepness = abs(gradient_percent)
    for threshold, label in config.CLIMB_THRESHOLDS:
        if steepness >= threshold:
            return label
    return "Flat/Rolling"
