import math

import pytest

from utils.records import AthleteSettings, Confidence
from utils.pace_builder import (
    build_gradient_profile, find_flat_bucket, estimate_flat_pace, estimate_fatigue_factor, average_pace_between,
)
from utils.prediction import derive_segment_pace
from utils.performance import energy_cost_multiplier, grade_adjusted_pace, effort_level
from utils.zones import calculate_hr_zones, calculate_power_zones, suggest_hr_zone, suggest_power_zone
from conftest import make_activity, make_track, grade_step, segment
import config


# ============================================================================
# GRADIENT PROFILE
# ============================================================================

def test_profile_has_every_bucket_sorted(flat_activity):
    profile = build_gradient_profile(flat_activity)

    assert len(profile) == len(config.GRADIENT_EDGES) + 1
    reps = [b.representative_gradient for b in profile]
    assert reps == sorted(reps)


def test_flat_activity_fills_flat_bucket_only(flat_activity):
    profile = build_gradient_profile(flat_activity)
    flat = find_flat_bucket(profile)

    assert flat.sample_count == 200
    assert flat.avg_pace == pytest.approx(9.0)
    assert flat.avg_heart_rate is None
    assert sum(b.sample_count for b in profile) == 200
    assert estimate_flat_pace(profile) == pytest.approx(9.0)


def test_empty_activity_gives_empty_profile():
    profile = build_gradient_profile([])
    assert not any(b.populated for b in profile)
    assert estimate_flat_pace(profile, default=11.0) == 11.0


def test_profile_skips_stopped_and_invalid_intervals():
    activity = make_activity([9.0, 9.0, 45.0, float("nan"), 9.0])
    flat = find_flat_bucket(build_gradient_profile(activity))
    assert flat.sample_count == 2
    assert flat.avg_pace == pytest.approx(9.0)


def test_profile_averages_heart_rate_and_ignores_dropouts():
    activity = make_activity([9.0] * 5, heart_rates=[140, 150, 0, 150, None])
    flat = find_flat_bucket(build_gradient_profile(activity))
    assert flat.avg_heart_rate == pytest.approx(150.0)


def test_bucket_labels(flat_activity):
    labels = [b.label for b in build_gradient_profile(flat_activity)]
    assert labels[0] == "<=-15%"
    assert labels[-1] == ">=+15%"
    assert "+3..+6%" in labels


def test_fatigue_factor_defaults_for_short_activity(flat_activity):
    assert estimate_fatigue_factor(flat_activity[:40]) == config.DEFAULT_FATIGUE_FACTOR
    # one 10-mile chunk only
    assert estimate_fatigue_factor(flat_activity) == config.DEFAULT_FATIGUE_FACTOR


def test_fatigue_factor_from_chunk_paces():
    distances = [i / 10 for i in range(400)]
    paces = [10.0 + math.floor(d / 10) / 3 for d in distances]
    activity = make_activity(paces, spacing=0.1)

    # 10% slower over 3 chunk steps
    assert estimate_fatigue_factor(activity) == pytest.approx(10.0 / 3, rel=1e-6)


def test_fatigue_factor_is_clamped():
    distances = [i / 10 for i in range(400)]
    faster = make_activity([12.0 - math.floor(d / 10) for d in distances], spacing=0.1)
    assert estimate_fatigue_factor(faster) == 0.0


def test_average_pace_between(flat_activity):
    assert average_pace_between(flat_activity, 2.0, 4.0) == pytest.approx(9.0)
    assert average_pace_between(flat_activity, 20.0, 30.0) is None


# ============================================================================
# SEGMENT PACE DERIVATION
# ============================================================================

def test_flat_segment_matches_flat_pace(flat_track, flat_activity):
    profile = build_gradient_profile(flat_activity)
    derivation = derive_segment_pace(segment(1, "Finish", 10.0, 10.0), 0, profile, flat_track, flat_activity)

    assert derivation.pace_min_per_distance == pytest.approx(9.0)
    assert derivation.confidence is Confidence.HIGH
    assert derivation.matched_bucket_samples == 200
    assert derivation.elevation_details.climb_type == "Flat/Rolling"
    assert "matched" in derivation.reasoning


def test_climb_segment_uses_climb_bucket(flat_then_climb_track, flat_and_climb_activity):
    profile = build_gradient_profile(flat_and_climb_activity)
    climb = segment(2, "Summit", 5.0, 10.0)
    derivation = derive_segment_pace(climb, 1, profile, flat_then_climb_track, flat_and_climb_activity)

    assert derivation.elevation_details.avg_gradient_percent == pytest.approx(4.0, rel=1e-3)
    assert derivation.pace_min_per_distance == pytest.approx(12.0, rel=0.01)
    assert derivation.elevation_details.climb_type == "Moderate"
    assert "+3..+6%" in derivation.reasoning


def test_empty_bucket_interpolates_between_neighbours():
    step = grade_step(8.0, 0.05)
    paces = [9.0] * 101 + [14.0] * 100
    elevations = [100.0] * 101 + [100.0 + i * step for i in range(1, 101)]
    activity = make_activity(paces, elevations)
    profile = build_gradient_profile(activity)

    track = make_track(
        [100.0 + i * grade_step(4.5, 0.1) for i in range(51)]
    )
    derivation = derive_segment_pace(segment(1, "Aid 1", 5.0, 5.0), 0, profile, track, activity)

    assert 9.0 < derivation.pace_min_per_distance < 14.0
    assert derivation.pace_min_per_distance == pytest.approx(9.0 + 4.5 / 8.0 * 5.0, rel=0.01)
    assert derivation.confidence is Confidence.MEDIUM
    assert "interpolated" in derivation.reasoning


def test_terrain_factor_scales_pace(flat_track, flat_activity):
    profile = build_gradient_profile(flat_activity)
    technical = segment(1, "Finish", 10.0, 10.0, terrain_factor=1.2)
    derivation = derive_segment_pace(technical, 0, profile, flat_track, flat_activity)
    assert derivation.pace_min_per_distance == pytest.approx(10.8)


def test_no_activity_falls_back_without_nan(flat_track):
    derivation = derive_segment_pace(segment(1, "Finish", 10.0, 10.0), 0, build_gradient_profile([]),
                                     flat_track, [], fallback_pace=11.5)

    assert derivation.pace_min_per_distance == 11.5
    assert derivation.confidence is Confidence.LOW
    assert math.isfinite(derivation.pace_min_per_distance)


def test_zero_distance_segment_falls_back(flat_track, flat_activity):
    profile = build_gradient_profile(flat_activity)
    derivation = derive_segment_pace(segment(1, "Start", 0.0, 0.0), 0, profile, flat_track, flat_activity)
    assert derivation.confidence is Confidence.LOW
    assert derivation.pace_min_per_distance == config.DEFAULT_FLAT_PACE


def test_invalid_fallback_pace_is_replaced(flat_track):
    derivation = derive_segment_pace(segment(1, "Finish", 10.0, 10.0), 0, build_gradient_profile([]),
                                     flat_track, [], fallback_pace=float("nan"))
    assert derivation.pace_min_per_distance == config.DEFAULT_FLAT_PACE


def test_missing_elevation_lowers_confidence(flat_activity):
    profile = build_gradient_profile(flat_activity)
    derivation = derive_segment_pace(segment(1, "Finish", 10.0, 10.0), 0, profile, [], flat_activity)
    assert derivation.confidence is Confidence.MEDIUM
    assert derivation.pace_min_per_distance == pytest.approx(9.0)


def test_historical_blend(flat_track):
    activity = make_activity([8.0] * 201)
    profile = build_gradient_profile(make_activity([10.0] * 201))
    derivation = derive_segment_pace(segment(1, "Finish", 10.0, 10.0), 0, profile, flat_track, activity,
                                     blend_historical=True)
    assert derivation.pace_min_per_distance == pytest.approx(8.0 * 0.7 + 10.0 * 0.3)


def test_zone_suggestions_when_heart_rate_present(flat_track):
    activity = make_activity([9.0] * 201, heart_rates=[120 + (i % 50) for i in range(201)])
    profile = build_gradient_profile(activity)
    derivation = derive_segment_pace(segment(1, "Finish", 10.0, 10.0), 0, profile, flat_track, activity,
                                     athlete_settings=AthleteSettings(max_hr=190, resting_hr=50))

    assert derivation.suggested_hr_zone is not None
    assert derivation.suggested_hr_zone.zone_name == "Zone 2"
    assert derivation.suggested_power_zone is None


# ============================================================================
# GRADE ADJUSTED PACE
# ============================================================================

def test_energy_cost_multiplier():
    assert energy_cost_multiplier(0) == 1.0
    assert energy_cost_multiplier(10) == pytest.approx(1.4)
    assert 0.7 <= energy_cost_multiplier(-5) < 1.0
    assert energy_cost_multiplier(-30) <= 1.2


def test_grade_adjusted_pace():
    assert grade_adjusted_pace(10.0, 10.0) == pytest.approx(60 / (6 * 1.4))
    assert grade_adjusted_pace(10.0, -5.0) > 10.0
    assert grade_adjusted_pace(10.0, 0.2) == 10.0
    assert grade_adjusted_pace(0.0, 10.0) == 0.0
    assert grade_adjusted_pace(10.0, float("nan")) == 10.0


def test_effort_level():
    assert effort_level(10.0, 7.0) == "harder"
    assert effort_level(10.0, 12.0) == "easier"
    assert effort_level(10.0, 10.2) == "similar"


# ============================================================================
# ZONES
# ============================================================================

def test_hr_zones_need_enough_readings():
    activity = make_activity([9.0] * 20, heart_rates=[140] * 20)
    assert calculate_hr_zones(activity) is None


def test_hr_zones_with_settings():
    activity = make_activity([9.0] * 60, heart_rates=[140] * 60)
    zones = calculate_hr_zones(activity, AthleteSettings(max_hr=190, resting_hr=50))

    assert len(zones) == 5
    assert (zones[0].low, zones[0].high) == (50, 134)
    assert zones[4].high == 190


def test_suggest_hr_zone_drifts_with_distance():
    activity = make_activity([9.0] * 60, heart_rates=[140] * 60)
    zones = calculate_hr_zones(activity, AthleteSettings(max_hr=190, resting_hr=50))
    suggestion = suggest_hr_zone(0.0, 45.0, zones)

    assert suggestion.zone_name == "Zone 2"
    assert (suggestion.min_bpm, suggestion.max_bpm) == (136, 150)
    assert suggest_hr_zone(0.0, 45.0, None) is None


def test_power_zones_and_suggestion():
    activity = make_activity([9.0] * 150, powers=[200.0] * 150)
    assert calculate_power_zones(activity[:50]) is None

    zones = calculate_power_zones(activity, AthleteSettings(ftp=250))
    suggestion = suggest_power_zone(7.0, 0.0, zones)

    assert suggestion.zone_name == "Tempo"
    assert (suggestion.min_watts, suggestion.max_watts) == (190, 225)
    assert (suggestion.percent_ftp_min, suggestion.percent_ftp_max) == (76, 90)
    assert "power" in suggestion.reasoning

    late = suggest_power_zone(7.0, 100.0, zones)
    assert late.max_watts < suggestion.max_watts
    assert late.max_watts >= round(225 * (1 - config.MAX_POWER_FATIGUE_REDUCTION)) - 1


def test_ftp_estimated_from_average_power():
    activity = make_activity([9.0] * 150, powers=[200.0] * 150)
    zones = calculate_power_zones(activity)
    threshold, low, high = zones[3]
    assert threshold.high == round(290 * high)
