import numpy as np
import pytest

from utils.elevation import (
    ElevationStats, segment_elevation, course_stats, average_gradient, classify_climb,
    _calculate_elevation_changes_with_hysteresis,
)
from utils.course_analysis import legs_from_cumulative_distance, distance_by_gradient_bucket, create_uniform_segments
from conftest import make_track


def test_hysteresis_ignores_noise():
    elevations = np.array([100.0, 100.5, 100.0, 100.5, 100.0, 100.5])
    assert _calculate_elevation_changes_with_hysteresis(elevations, 1.0) == (0.0, 0.0)


def test_hysteresis_counts_real_climb():
    gain, loss = _calculate_elevation_changes_with_hysteresis(np.array([100.0, 105.0, 104.0]), 3.0)
    assert gain == pytest.approx(5.0)
    assert loss == 0.0


def test_segment_elevation_of_climb(flat_then_climb_track):
    stats = segment_elevation(flat_then_climb_track, 5.0, 10.0)
    expected_gain = 5.0 * 1609.344 * 0.04

    assert stats.gain == pytest.approx(expected_gain, rel=1e-6)
    assert stats.loss == 0.0
    assert stats.distance == pytest.approx(5.0)
    assert stats.max_elevation - stats.min_elevation == pytest.approx(expected_gain, rel=1e-6)


def test_segment_elevation_needs_two_points(flat_track):
    assert segment_elevation(flat_track, 3.01, 3.05).distance == 0.0
    assert segment_elevation([], 0.0, 5.0).gain == 0.0
    assert segment_elevation(flat_track, 5.0, 5.0).gain == 0.0


def test_course_stats(flat_then_climb_track):
    stats = course_stats(flat_then_climb_track)
    assert stats.distance == pytest.approx(10.0)
    assert stats.net == pytest.approx(stats.gain)


def test_average_gradient_is_net():
    stats = ElevationStats(gain=200.0, loss=200.0, min_elevation=0.0, max_elevation=200.0, distance=2.0)
    assert average_gradient(stats, 2.0) == 0.0

    climb = ElevationStats(gain=1609.344 * 0.04, loss=0.0, min_elevation=0.0, max_elevation=64.0, distance=1.0)
    assert average_gradient(climb, 1.0) == pytest.approx(4.0)
    assert average_gradient(climb, 0.0) == 0.0


@pytest.mark.parametrize("gradient,gain,label", [
    (4.0, 100.0, "Moderate"),
    (12.0, 500.0, "Steep"),
    (-16.0, 500.0, "Very Steep"),
    (0.5, 100.0, "Flat/Rolling"),
    (8.0, 10.0, "Flat/Rolling"),
])
def test_classify_climb(gradient, gain, label):
    assert classify_climb(gradient, gain) == label


def test_legs_from_cumulative_distance(flat_track, two_segments):
    assert legs_from_cumulative_distance(flat_track, two_segments) == [(0, 50), (50, 100)]
    assert legs_from_cumulative_distance([], two_segments) == []


def test_distance_by_gradient_bucket(flat_then_climb_track):
    miles = distance_by_gradient_bucket(flat_then_climb_track)

    assert miles.sum() == pytest.approx(10.0)
    assert miles[3] == pytest.approx(5.0)  # -1..+1%
    assert miles[5] == pytest.approx(5.0)  # +3..+6%


def test_distance_by_gradient_bucket_short_track():
    assert distance_by_gradient_bucket(make_track([100.0])).sum() == 0.0


def test_create_uniform_segments(flat_track):
    segments = create_uniform_segments(flat_track, 4.0)

    assert [s.checkpoint_name for s in segments] == ["Checkpoint 1", "Checkpoint 2", "Finish"]
    assert [s.cumulative_distance for s in segments] == [4.0, 8.0, 10.0]
    assert [s.segment_distance for s in segments] == [4.0, 4.0, 2.0]
    assert (segments[0].latitude, segments[0].longitude) == (flat_track[40].lat, flat_track[40].lng)
    assert segments[-1].latitude == flat_track[-1].lat


def test_create_uniform_segments_degenerate(flat_track):
    assert create_uniform_segments(flat_track, 0.0) == []
    assert create_uniform_segments([], 5.0) == []
    assert [s.cumulative_distance for s in create_uniform_segments(flat_track, 25.0)] == [10.0]
