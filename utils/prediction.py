"""
Race prediction engine.
Derives a terrain-aware pace for each checkpoint segment from the gradient
profile of a past effort, then assembles the whole-race plan.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from utils.records import (
    ActivityRecord, AthleteMetrics, AthleteSettings, Confidence, Segment, TrackPoint,
)
from utils.elevation import segment_elevation, average_gradient, classify_climb
from utils.pace_builder import GradientBucket, average_pace_between
from utils.performance import energy_cost_multiplier
from utils.zones import (
    HRZoneSuggestion, PowerZoneSuggestion,
    calculate_hr_zones, calculate_power_zones, suggest_hr_zone, suggest_power_zone,
)
from utils.strategy import PaceStrategy, generate_pace_options
from utils.fatigue import calculate_total_time_with_fatigue
from utils.energy import EnergyBalanceCalculation, fold_energy_balance
from utils.race_summary import RaceTimeSummary, calculate_race_time_summary
from utils.eccentric_load import (
    RaceEccentricSummary, SegmentEccentricAnalysis, analyze_segment_eccentric_load, calculate_race_eccentric_summary,
)
from utils.app_utils import format_pace
import config


@dataclass(frozen=True)
class ElevationDetails:
    gain_m: float
    loss_m: float
    distance_miles: float
    avg_gradient_percent: float
    climb_type: str

    @property
    def gain_feet(self) -> float:
        return self.gain_m * config.FEET_PER_METER

    @property
    def loss_feet(self) -> float:
        return self.loss_m * config.FEET_PER_METER


@dataclass(frozen=True)
class PaceDerivation:
    pace_min_per_distance: float
    confidence: Confidence
    reasoning: str
    elevation_details: Optional[ElevationDetails] = None
    suggested_hr_zone: Optional[HRZoneSuggestion] = None
    suggested_power_zone: Optional[PowerZoneSuggestion] = None
    matched_bucket_samples: int = 0


@dataclass(frozen=True)
class _BucketMatch:
    pace: float  # cost-adjusted or interpolated pace
    anchor_pace: float  # pace the result is bounded around
    sample_count: int
    gradient_difference: float
    buckets: Tuple[GradientBucket, ...]
    description: str


def derive_segment_pace(
        segment: Segment,
        segment_index: int,
        gradient_profile: Sequence[GradientBucket],
        track_points: Sequence[TrackPoint],
        activity: Sequence[ActivityRecord],
        bounds: Optional[Tuple[float, float]] = None,
        fallback_pace: float = config.DEFAULT_FLAT_PACE,
        athlete_settings: Optional[AthleteSettings] = None,
        blend_historical: bool = False
) -> PaceDerivation:
    """
    Predict the pace for one checkpoint segment.

    Steps:
    1. Elevation gain/loss of the course between the segment's start and end
    2. Match the net average gradient to the populated gradient bucket(s),
       interpolating between neighbours when its own bucket is empty
    3. Adjust the bucket pace by the energy-cost ratio of the two gradients,
       bounded to +-50% of the bucket pace, then apply the terrain factor
    4. Confidence from the matched sample count and gradient distance
    5. HR / power zone suggestions when the matched buckets carry that data

    Bad or sparse data never raises: the result falls back to
    `fallback_pace` with low confidence.

    Args:
        segment: The checkpoint segment to price
        segment_index: Position of the segment in course order (for logs)
        gradient_profile: Output of build_gradient_profile
        track_points: Course track (for the elevation slice)
        activity: The historical activity the profile was built from
        bounds: (start, end) mileage of the segment on the track, e.g. from
            GPS-matched checkpoints; defaults to the declared distances
        fallback_pace: Flat-ground pace used when nothing better is known
        athlete_settings: HR / FTP overrides for zone calculations
        blend_historical: Blend 70/30 with the pace held over the same
            mileage in `activity` (only meaningful for the same course)

    Returns:
        PaceDerivation (never NaN or infinite)
    """
    fallback_pace = fallback_pace if _finite_positive(fallback_pace) else config.DEFAULT_FLAT_PACE

    if not _finite_positive(segment.segment_distance):
        logger.warning(f"Segment {segment_index} '{segment.checkpoint_name}' has no distance; using fallback pace")
        return _fallback(fallback_pace, "Zero-length segment")

    start, end = bounds if bounds is not None else (segment.start_distance, segment.cumulative_distance)
    distance = end - start if bounds is not None else segment.segment_distance

    stats = segment_elevation(track_points, start, end)
    has_elevation = stats.distance > 0
    gradient = average_gradient(stats, distance)
    details = ElevationDetails(
        gain_m=stats.gain,
        loss_m=stats.loss,
        distance_miles=distance,
        avg_gradient_percent=gradient,
        climb_type=classify_climb(gradient, stats.gain),
    )

    match = _match_bucket(gradient, gradient_profile)
    if match is None:
        logger.warning(f"Segment {segment_index} '{segment.checkpoint_name}': no usable activity data")
        return _fallback(fallback_pace, f"No usable activity data; {_terrain_text(details)}", details)

    low, high = match.anchor_pace * (1 - config.MAX_PACE_EXTRAPOLATION), match.anchor_pace * (1 + config.MAX_PACE_EXTRAPOLATION)
    pace = float(np.clip(match.pace, low, high))

    terrain_factor = segment.terrain_factor if segment.terrain_factor is not None else 1.0
    pace *= terrain_factor

    reasoning = [f"{_terrain_text(details)}; {match.description}"]
    if terrain_factor != 1.0:
        reasoning.append(f"terrain factor x{terrain_factor:.2f}")

    confidence = _determine_confidence(match.sample_count, match.gradient_difference)
    if not has_elevation:
        confidence = confidence.less_certain()
        reasoning.append("no elevation data for this stretch")

    if blend_historical:
        historical = average_pace_between(activity, start, end)
        if historical is not None:
            pace = historical * config.HISTORICAL_SPLIT_WEIGHT + pace * (1 - config.HISTORICAL_SPLIT_WEIGHT)
            confidence = confidence.more_certain()
            reasoning.insert(0, f"Based on {format_pace(historical)} held over the same miles")

    if not _finite_positive(pace):
        logger.warning(f"Segment {segment_index} '{segment.checkpoint_name}': invalid pace {pace}; using fallback")
        return _fallback(fallback_pace, "Invalid intermediate pace", details)

    hr_zone, power_zone = _zone_suggestions(match.buckets, gradient, segment.cumulative_distance,
                                            activity, athlete_settings)

    logger.debug(
        f"Segment {segment_index} '{segment.checkpoint_name}': {pace:.2f} min/mi "
        f"({confidence.value}, {match.sample_count} samples)"
    )

    return PaceDerivation(
        pace_min_per_distance=pace,
        confidence=confidence,
        reasoning=", ".join(reasoning),
        elevation_details=details,
        suggested_hr_zone=hr_zone,
        suggested_power_zone=power_zone,
        matched_bucket_samples=match.sample_count,
    )


def _match_bucket(gradient: float, profile: Sequence[GradientBucket]) -> Optional[_BucketMatch]:
    """
    Find the bucket(s) to price a gradient from.

    Buckets are searched as a sorted array by representative gradient. The
    bucket whose range contains the gradient wins when populated; otherwise
    the nearest populated bucket on each side is interpolated, or the single
    nearest one is used.
    """
    if not math.isfinite(gradient):
        return None

    populated = sorted((b for b in profile if b.populated), key=lambda b: b.representative_gradient)
    if not populated:
        return None

    own = next((b for b in populated if b.lower <= gradient < b.upper), None)
    if own is not None:
        return _single_bucket_match(gradient, own, "matched")

    reps = np.array([b.representative_gradient for b in populated])
    position = int(np.searchsorted(reps, gradient))
    below = populated[position - 1] if position > 0 else None
    above = populated[position] if position < len(populated) else None

    if below is None or above is None:
        return _single_bucket_match(gradient, below or above, "nearest")

    span = above.representative_gradient - below.representative_gradient
    weight = (gradient - below.representative_gradient) / span if span > 0 else 0.5
    pace = below.avg_pace + weight * (above.avg_pace - below.avg_pace)

    return _BucketMatch(
        pace=pace,
        anchor_pace=pace,
        sample_count=min(below.sample_count, above.sample_count),
        gradient_difference=min(gradient - below.representative_gradient,
                                above.representative_gradient - gradient),
        buckets=(below, above),
        description=(
            f"interpolated between {below.label} ({below.sample_count} samples) "
            f"and {above.label} ({above.sample_count} samples)"
        ),
    )


def _single_bucket_match(gradient: float, bucket: GradientBucket, how: str) -> _BucketMatch:
    cost_ratio = energy_cost_multiplier(gradient) / energy_cost_multiplier(bucket.representative_gradient)
    return _BucketMatch(
        pace=bucket.avg_pace * cost_ratio,
        anchor_pace=bucket.avg_pace,
        sample_count=bucket.sample_count,
        gradient_difference=abs(gradient - bucket.representative_gradient),
        buckets=(bucket,),
        description=(
            f"{how} {bucket.label} bucket at {format_pace(bucket.avg_pace)} "
            f"({bucket.sample_count} samples)"
        ),
    )


def _determine_confidence(sample_count: int, gradient_difference: float) -> Confidence:
    if sample_count >= config.HIGH_CONFIDENCE_SAMPLES and gradient_difference < config.HIGH_CONFIDENCE_GRADIENT_DIFF:
        return Confidence.HIGH
    if sample_count >= config.MEDIUM_CONFIDENCE_SAMPLES:
        return Confidence.MEDIUM
    return Confidence.LOW


def _zone_suggestions(
        buckets: Sequence[GradientBucket],
        gradient: float,
        cumulative_distance: float,
        activity: Sequence[ActivityRecord],
        settings: Optional[AthleteSettings]
) -> Tuple[Optional[HRZoneSuggestion], Optional[PowerZoneSuggestion]]:
    hr_zone = None
    power_zone = None

    if any(b.avg_heart_rate is not None for b in buckets):
        hr_zone = suggest_hr_zone(gradient, cumulative_distance, calculate_hr_zones(activity, settings))
    if any(b.avg_power is not None for b in buckets):
        power_zone = suggest_power_zone(gradient, cumulative_distance, calculate_power_zones(activity, settings))

    return hr_zone, power_zone


def _terrain_text(details: ElevationDetails) -> str:
    return (
        f"{details.avg_gradient_percent:+.1f}% avg gradient with {details.gain_m:.0f}m ({details.gain_feet:.0f}ft) gain"
        f" and {details.loss_m:.0f}m ({details.loss_feet:.0f}ft) loss"
    )


def _fallback(pace: float, reason: str, details: Optional[ElevationDetails] = None) -> PaceDerivation:
    return PaceDerivation(
        pace_min_per_distance=pace,
        confidence=Confidence.LOW,
        reasoning=f"{reason}; using {format_pace(pace)} flat-ground pace",
        elevation_details=details,
    )


def _finite_positive(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


# ============================================================================
# WHOLE-RACE PLAN
# ============================================================================

@dataclass(frozen=True)
class RacePlan:
    segments: List[Segment]
    derivations: List[PaceDerivation]
    strategies: List[List[PaceStrategy]]
    segment_paces: List[float]  # pace actually planned (custom pace wins)
    segment_times: List[float]  # minutes, fatigue applied
    fatigue_factor: float
    base_pace: float  # distance-weighted average pace before fatigue
    finish_time_with_fatigue: float  # minutes of running, sum of segment_times
    time_summary: RaceTimeSummary
    energy: Optional[List[EnergyBalanceCalculation]] = None
    warnings: List[str] = field(default_factory=list)
    descents: List[SegmentEccentricAnalysis] = field(default_factory=list)
    eccentric_load: Optional[RaceEccentricSummary] = None

    @property
    def total_distance(self) -> float:
        return self.segments[-1].cumulative_distance if self.segments else 0.0


def _segment_running_time(segment: Segment, pace: float, fatigue_factor: float) -> float:
    """Minutes to run a segment at `pace`, integrating fatigue over its mileage."""
    if not _finite_positive(segment.segment_distance):
        return 0.0
    start = max(0.0, segment.start_distance)
    end = start + segment.segment_distance
    return (calculate_total_time_with_fatigue(pace, end, fatigue_factor)
            - calculate_total_time_with_fatigue(pace, start, fatigue_factor))


def _descent_analysis(derivation: PaceDerivation) -> SegmentEccentricAnalysis:
    details = derivation.elevation_details
    if details is None:
        return analyze_segment_eccentric_load(0.0, 0.0, 0.0)
    return analyze_segment_eccentric_load(details.avg_gradient_percent, details.distance_miles, details.loss_feet)


def plan_race(
        course,
        pace_model,
        athlete_metrics: Optional[AthleteMetrics] = None,
        fatigue_factor: Optional[float] = None
) -> RacePlan:
    """
    Build a complete race plan for a course.

    Args:
        course: models.Course (track points, elevation, ordered segments)
        pace_model: models.PaceModel built from a historical activity
        athlete_metrics: Enables the energy balance fold when body weight is set
        fatigue_factor: % slowdown per 10 miles; defaults to the model's estimate

    Returns:
        RacePlan with per-segment derivations, strategies, times, energy
        and downhill load
    """
    factor = pace_model.fatigue_factor if fatigue_factor is None else fatigue_factor
    segments = course.segments

    derivations = [
        pace_model.derive(segment, i, course.track_points, bounds)
        for i, (segment, bounds) in enumerate(zip(segments, course.segment_bounds))
    ]

    segment_paces = []
    segment_times = []
    strategies = []
    for segment, derivation in zip(segments, derivations):
        pace = segment.custom_pace if _finite_positive(segment.custom_pace) else derivation.pace_min_per_distance
        segment_paces.append(pace)
        segment_times.append(_segment_running_time(segment, pace, factor))
        strategies.append(generate_pace_options(
            pace, derivation.confidence, derivation.reasoning,
            derivation.suggested_hr_zone, derivation.suggested_power_zone,
        ))

    total_distance = sum(max(0.0, s.segment_distance) for s in segments)
    base_pace = (
        sum(max(0.0, s.segment_distance) * p for s, p in zip(segments, segment_paces)) / total_distance
        if total_distance > 0 else pace_model.flat_pace
    )
    finish = sum(segment_times)

    descents = [_descent_analysis(d) for d in derivations]

    energy = None
    warnings = []
    if athlete_metrics is not None and _finite_positive(athlete_metrics.body_weight_kg):
        elevations = [
            (d.elevation_details.gain_m, d.elevation_details.loss_m) if d.elevation_details else (0.0, 0.0)
            for d in derivations
        ]
        energy = fold_energy_balance(segments, segment_times, elevations, athlete_metrics)
    elif athlete_metrics is not None:
        warnings.append("Body weight missing or not positive; energy balance skipped")
        logger.warning(f"Body weight {athlete_metrics.body_weight_kg!r} unusable; skipping energy balance")

    return RacePlan(
        segments=list(segments),
        derivations=derivations,
        strategies=strategies,
        segment_paces=segment_paces,
        segment_times=segment_times,
        fatigue_factor=factor,
        base_pace=base_pace,
        finish_time_with_fatigue=finish,
        time_summary=calculate_race_time_summary(segments, segment_times),
        energy=energy,
        warnings=warnings,
        descents=descents,
        eccentric_load=calculate_race_eccentric_summary(descents),
    )
