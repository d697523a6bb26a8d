import pytest

from utils.geo import (
    haversine_miles, find_closest_track_point, split_track_by_checkpoints, sample_track_points,
)
from conftest import make_track, segment


def test_haversine_known_distance():
    # NYC to London
    assert haversine_miles(40.7128, -74.0060, 51.5074, -0.1278) == pytest.approx(3460, rel=0.01)


def test_haversine_is_symmetric_and_zero_on_same_point():
    a = (45.0, 6.0)
    b = (45.3, 6.4)
    assert haversine_miles(*a, *b) == pytest.approx(haversine_miles(*b, *a))
    assert haversine_miles(*a, *a) == 0.0


def test_track_helper_spacing_matches_haversine():
    track = make_track([100.0] * 3)
    assert haversine_miles(track[0].lat, track[0].lng, track[1].lat, track[1].lng) == pytest.approx(0.1, rel=1e-6)


@pytest.mark.parametrize("start", [0, 2, 5])
def test_find_closest_track_point_from_any_earlier_start(start):
    # ~100m between points
    track = make_track([100.0] * 20, spacing=0.0621)
    target = track[5]
    assert find_closest_track_point(target.lat, target.lng, track, start) == 5


def test_find_closest_never_returns_before_start():
    track = make_track([100.0] * 20)
    target = track[3]
    assert find_closest_track_point(target.lat, target.lng, track, 10) >= 10


def test_find_closest_clamps_out_of_range_start():
    track = make_track([100.0] * 5)
    assert find_closest_track_point(45.0, 6.0, track, 50) == 4
    assert find_closest_track_point(45.0, 6.0, [], 3) == 0


def test_split_without_coordinates_is_single_piece(flat_track, two_segments):
    pieces = split_track_by_checkpoints(flat_track, two_segments)
    assert len(pieces) == 1
    assert len(pieces[0].points) == len(flat_track)


def test_split_empty_track():
    assert split_track_by_checkpoints([], []) == []


def test_split_pieces_share_boundaries(flat_track):
    segments = [
        segment(1, "Aid 1", 3.0, 3.0, latitude=flat_track[30].lat, longitude=flat_track[30].lng),
        segment(2, "Aid 2", 4.0, 7.0, latitude=flat_track[70].lat, longitude=flat_track[70].lng),
    ]
    pieces = split_track_by_checkpoints(flat_track, segments)

    assert [p.checkpoint_name for p in pieces] == ["Aid 1", "Aid 2", None]
    assert [len(p.points) for p in pieces] == [31, 41, 31]
    # every point covered, boundaries counted twice
    assert sum(len(p.points) for p in pieces) == len(flat_track) + len(pieces) - 1
    for left, right in zip(pieces, pieces[1:]):
        assert left.points[-1] == right.points[0]


def test_split_skips_checkpoint_on_same_point(flat_track):
    point = flat_track[50]
    segments = [
        segment(1, "Aid 1", 5.0, 5.0, latitude=point.lat, longitude=point.lng),
        segment(2, "Aid 1b", 0.0, 5.0, latitude=point.lat, longitude=point.lng),
        segment(3, "Finish", 5.0, 10.0, latitude=flat_track[-1].lat, longitude=flat_track[-1].lng),
    ]
    pieces = split_track_by_checkpoints(flat_track, segments)

    assert [p.checkpoint_name for p in pieces] == ["Aid 1", "Finish"]
    assert [p.segment_index for p in pieces] == [0, 1]


def test_sample_track_points_keeps_ends(flat_track):
    sampled = sample_track_points(flat_track, interval_distance=0.5)
    assert sampled[0] is flat_track[0]
    assert sampled[-1] is flat_track[-1]
    assert len(sampled) < len(flat_track)
    assert sample_track_points(flat_track, 0.5) == sampled
