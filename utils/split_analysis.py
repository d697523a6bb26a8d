"""
Post-race split analysis.
Compares a completed activity against the plan, checkpoint by checkpoint,
and turns the aggregated splits into pacing, nutrition and strategy insights.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
from loguru import logger

from utils.records import ActivityRecord, InsightCategory, Segment, ensure_segment_order
from utils.geo import find_closest_track_point
from utils.elevation import segment_elevation, average_gradient
from utils.performance import grade_adjusted_pace, effort_level
from utils.fatigue import FatigueComparison, calculate_actual_fade_rate, compare_fatigue
import config


@dataclass(frozen=True)
class CheckpointSplit:
    segment_index: int
    checkpoint_name: str
    segment_distance: float
    cumulative_distance: float
    planned_time: float  # minutes
    actual_time: float  # minutes
    time_difference: float
    planned_pace: float  # min/mile
    actual_pace: float
    pace_variance: float  # % (positive = slower than plan)
    planned_gap: float
    actual_gap: float
    gap_variance: float  # %
    gap_effort: str  # harder / similar / easier than the raw pace suggests
    effort_level: Optional[str]  # from heart rate; None without HR
    fatigue_index: float
    avg_heart_rate: Optional[float]
    max_heart_rate: Optional[float]
    avg_power: Optional[float]
    elevation_gain: float  # meters
    elevation_loss: float  # meters
    avg_grade: float  # %


@dataclass(frozen=True)
class Insight:
    category: InsightCategory
    priority: str  # high / medium / low
    message: str
    recommendation: str
    details: str


@dataclass(frozen=True)
class RaceAnalytics:
    splits: List[CheckpointSplit]
    total_planned_time: float
    total_actual_time: float
    time_difference: float
    avg_pace: float
    pace_variance: float
    avg_heart_rate: Optional[float]
    efficiency_score: int
    efficiency_grade: str
    negative_split: bool
    pacing_consistency: str
    fade_rate: float  # % per 10 miles
    fatigue_comparison: Optional[FatigueComparison] = None
    insights: List[Insight] = field(default_factory=list)


def locate_checkpoint_index(
        segment: Segment,
        records: Sequence[ActivityRecord],
        start_index: int = 0
) -> int:
    """
    Index of the record where the runner reached a checkpoint.

    Uses GPS when the checkpoint and every record have coordinates,
    otherwise the record nearest to the checkpoint's cumulative distance.
    Never returns an index before `start_index`.
    """
    if not records:
        return start_index

    if segment.has_coordinates and all(r.lat is not None and r.lng is not None for r in records):
        return find_closest_track_point(segment.latitude, segment.longitude, records, start_index)

    distances = np.array([r.distance for r in records], dtype=float)
    index = int(np.searchsorted(distances, segment.cumulative_distance))
    index = min(index, len(records) - 1)
    if index > 0 and abs(distances[index - 1] - segment.cumulative_distance) <= abs(distances[index] - segment.cumulative_distance):
        index -= 1
    return max(index, start_index)


def _split_time(records: Sequence[ActivityRecord]) -> float:
    """Minutes spent over consecutive records: sum of pace x distance step."""
    total = 0.0
    for previous, current in zip(records, records[1:]):
        step = current.distance - previous.distance
        if step > 0 and current.pace is not None and np.isfinite(current.pace) and current.pace > 0:
            total += current.pace * step
    return total


def _hr_effort(avg_heart_rate: Optional[float]) -> Optional[str]:
    if avg_heart_rate is None:
        return None
    percent = avg_heart_rate / config.ASSUMED_MAX_HR * 100
    if percent < 70:
        return "easy"
    if percent < 80:
        return "moderate"
    if percent < 90:
        return "hard"
    return "maximal"


def calculate_split_analysis(
        segments: Sequence[Segment],
        activity: Sequence[ActivityRecord],
        planned_paces: Optional[Sequence[float]] = None
) -> List[CheckpointSplit]:
    """
    Planned versus actual numbers for every checkpoint segment.

    Args:
        segments: Checkpoint segments (sorted into course order)
        activity: Records of the completed run, ordered by distance
        planned_paces: Planned pace per segment in course order; defaults to
            each segment's custom pace, then DEFAULT_PLANNED_PACE

    Returns:
        One CheckpointSplit per segment with enough data; segments shorter
        than MIN_SPLIT_DISTANCE or covered by fewer than 2 records are skipped

    Raises:
        SegmentOrderError: if cumulative distances decrease
    """
    ordered = ensure_segment_order(segments)
    if not activity:
        return []

    splits = []
    start_index = 0

    for i, segment in enumerate(ordered):
        end_index = locate_checkpoint_index(segment, activity, start_index)
        records = activity[start_index:end_index + 1]
        leg_start = start_index
        start_index = end_index

        if segment.segment_distance < config.MIN_SPLIT_DISTANCE or len(records) < 2:
            logger.debug(f"Skipping split '{segment.checkpoint_name}' ({len(records)} records)")
            continue

        if planned_paces is not None and i < len(planned_paces):
            planned_pace = planned_paces[i]
        else:
            planned_pace = segment.custom_pace or config.DEFAULT_PLANNED_PACE

        actual_time = _split_time(records)
        recorded_distance = records[-1].distance - records[0].distance
        actual_pace = actual_time / (recorded_distance if recorded_distance > 0 else segment.segment_distance)
        planned_time = segment.segment_distance * planned_pace

        heart_rates = [r.heart_rate for r in records if r.heart_rate and r.heart_rate > 0]
        powers = [r.power for r in records if r.power and r.power > 0]
        avg_heart_rate = float(np.mean(heart_rates)) if heart_rates else None

        stats = segment_elevation(records, records[0].distance, records[-1].distance)
        avg_grade = average_gradient(stats, segment.segment_distance)

        planned_gap = grade_adjusted_pace(planned_pace, avg_grade)
        actual_gap = grade_adjusted_pace(actual_pace, avg_grade)

        expected_with_fatigue = planned_pace * (1 + i * config.SPLIT_FATIGUE_PER_SEGMENT)

        splits.append(CheckpointSplit(
            segment_index=i,
            checkpoint_name=segment.checkpoint_name,
            segment_distance=segment.segment_distance,
            cumulative_distance=segment.cumulative_distance,
            planned_time=planned_time,
            actual_time=actual_time,
            time_difference=actual_time - planned_time,
            planned_pace=planned_pace,
            actual_pace=actual_pace,
            pace_variance=_percent_change(planned_pace, actual_pace),
            planned_gap=planned_gap,
            actual_gap=actual_gap,
            gap_variance=_percent_change(planned_gap, actual_gap),
            gap_effort=effort_level(actual_pace, actual_gap),
            effort_level=_hr_effort(avg_heart_rate),
            fatigue_index=_percent_change(expected_with_fatigue, actual_pace),
            avg_heart_rate=avg_heart_rate,
            max_heart_rate=float(max(heart_rates)) if heart_rates else None,
            avg_power=float(np.mean(powers)) if powers else None,
            elevation_gain=stats.gain,
            elevation_loss=stats.loss,
            avg_grade=avg_grade,
        ))
        logger.debug(
            f"Split '{segment.checkpoint_name}' records {leg_start}-{end_index}: "
            f"{actual_pace:.2f} vs planned {planned_pace:.2f} min/mi"
        )

    return splits


def _percent_change(reference: float, value: float) -> float:
    if reference <= 0:
        return 0.0
    return (value - reference) / reference * 100.0


def calculate_race_analytics(
        segments: Sequence[Segment],
        activity: Sequence[ActivityRecord],
        planned_paces: Optional[Sequence[float]] = None,
        expected_fatigue_factor: Optional[float] = None
) -> Optional[RaceAnalytics]:
    """
    Whole-race verdict built from the checkpoint splits.

    Returns:
        RaceAnalytics, or None when no split could be measured
    """
    splits = calculate_split_analysis(segments, activity, planned_paces)
    if not splits:
        return None

    total_distance = sum(s.segment_distance for s in splits)
    total_planned = sum(s.planned_time for s in splits)
    total_actual = sum(s.actual_time for s in splits)

    avg_pace = total_actual / total_distance
    avg_planned_pace = total_planned / total_distance
    pace_variance = _percent_change(avg_planned_pace, avg_pace)

    heart_rates = [s.avg_heart_rate for s in splits if s.avg_heart_rate is not None]
    avg_heart_rate = float(np.mean(heart_rates)) if heart_rates else None

    paces = np.array([s.actual_pace for s in splits])
    negative_split = _is_negative_split(paces)
    pacing_consistency = _pacing_consistency(paces)

    consistency_score = _consistency_score(paces)
    efficiency_score = int(round((max(0.0, 100.0 - abs(pace_variance)) + consistency_score) / 2))

    midpoints = [s.cumulative_distance - s.segment_distance / 2 for s in splits]
    fade_rate = calculate_actual_fade_rate(list(paces), midpoints)

    comparison = None
    if expected_fatigue_factor is not None:
        comparison = compare_fatigue(expected_fatigue_factor, fade_rate)

    insights = generate_insights(splits, fade_rate, negative_split, pacing_consistency, comparison)

    return RaceAnalytics(
        splits=splits,
        total_planned_time=total_planned,
        total_actual_time=total_actual,
        time_difference=total_actual - total_planned,
        avg_pace=avg_pace,
        pace_variance=pace_variance,
        avg_heart_rate=avg_heart_rate,
        efficiency_score=efficiency_score,
        efficiency_grade=_efficiency_grade(efficiency_score),
        negative_split=negative_split,
        pacing_consistency=pacing_consistency,
        fade_rate=fade_rate,
        fatigue_comparison=comparison,
        insights=insights,
    )


def _is_negative_split(paces: np.ndarray) -> bool:
    """Second half of the splits run faster than the first half."""
    if len(paces) < 2:
        return False
    half = len(paces) // 2
    return bool(paces[half:].mean() < paces[:half].mean())


def _pacing_consistency(paces: np.ndarray) -> str:
    std = float(np.std(paces))
    for threshold, label in config.CONSISTENCY_LEVELS:
        if std < threshold:
            return label
    return "Poor"


def _consistency_score(paces: np.ndarray) -> float:
    """100 minus ten times the coefficient of variation (%)."""
    if len(paces) < 2 or paces.mean() <= 0:
        return 100.0
    cv = float(np.std(paces)) / float(paces.mean()) * 100.0
    return max(0.0, 100.0 - cv * 10.0)


def _efficiency_grade(score: int) -> str:
    if score >= 90:
        return "A"
    if score >= 80:
        return "B"
    if score >= 70:
        return "C"
    if score >= 60:
        return "D"
    return "F"


def generate_insights(
        splits: Sequence[CheckpointSplit],
        fade_rate: float,
        negative_split: bool,
        pacing_consistency: str,
        comparison: Optional[FatigueComparison] = None
) -> List[Insight]:
    """Fixed threshold rules over the aggregated splits."""
    insights = []

    if fade_rate > config.FADE_RATE_INSIGHT:
        insights.append(Insight(
            category=InsightCategory.PACING,
            priority="high",
            message="Significant pace degradation detected",
            recommendation="Consider starting more conservatively to maintain energy",
            details=f"Your pace faded by {fade_rate:.1f}% per 10 miles",
        ))

    if comparison is not None and comparison.performance == "worse":
        insights.append(Insight(
            category=InsightCategory.PACING,
            priority="medium",
            message="Fade was steeper than planned",
            recommendation="Plan with a higher fatigue factor or an easier opening pace",
            details=comparison.message,
        ))

    if pacing_consistency == "Poor":
        insights.append(Insight(
            category=InsightCategory.PACING,
            priority="medium",
            message="Pacing was inconsistent between checkpoints",
            recommendation="Pace by effort on climbs and hold back on runnable sections",
            details="Split paces varied by more than 1.5 min/mile",
        ))

    if negative_split:
        insights.append(Insight(
            category=InsightCategory.STRATEGY,
            priority="low",
            message="Negative split achieved",
            recommendation="Keep the same opening restraint in future races",
            details="Your second half was faster than your first",
        ))
    elif len(splits) > config.POSITIVE_SPLIT_MIN_SPLITS:
        insights.append(Insight(
            category=InsightCategory.STRATEGY,
            priority="medium",
            message="Positive split pacing strategy",
            recommendation="Try maintaining consistent effort for a better overall time",
            details="You started faster than you finished",
        ))

    large_variances = [s for s in splits if abs(s.pace_variance) > config.LARGE_PACE_VARIANCE_PCT]
    if len(large_variances) > len(splits) * config.LARGE_VARIANCE_SHARE:
        insights.append(Insight(
            category=InsightCategory.NUTRITION,
            priority="medium",
            message="Inconsistent pacing suggests energy management issues",
            recommendation="Review nutrition strategy for more consistent energy",
            details=f"{len(large_variances)} segments had >{config.LARGE_PACE_VARIANCE_PCT:.0f}% pace variance",
        ))

    return insights
