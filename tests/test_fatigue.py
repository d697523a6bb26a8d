import pytest

from utils.fatigue import (
    fatigue_multiplier, expected_pace_at_distance, generate_fatigue_curve, calculate_total_time_with_fatigue,
    calculate_actual_fade_rate, compare_fatigue, fatigue_description,
)


def test_fatigue_multiplier():
    assert fatigue_multiplier(50, 3.0) == pytest.approx(1.15)
    assert fatigue_multiplier(0, 3.0) == 1.0
    assert expected_pace_at_distance(10.0, 20, 5.0) == pytest.approx(11.0)


def test_total_time_hundred_miles():
    total = calculate_total_time_with_fatigue(10.0, 100.0, 3.0)
    assert 1000 < total < 1300
    assert total == pytest.approx(1150.0)


def test_zero_fatigue_is_plain_pace_times_distance():
    assert calculate_total_time_with_fatigue(9.5, 26.2, 0.0) == pytest.approx(9.5 * 26.2)


def test_total_time_grows_with_fatigue():
    times = [calculate_total_time_with_fatigue(10.0, 50.0, f) for f in (0.0, 1.0, 3.0, 6.0)]
    assert times == sorted(times)
    assert len(set(times)) == len(times)


def test_total_time_grows_with_distance():
    times = [calculate_total_time_with_fatigue(10.0, d, 3.0) for d in (5.0, 13.1, 26.2, 50.0, 100.0)]
    assert times == sorted(times)
    assert len(set(times)) == len(times)


def test_total_time_zero_distance():
    assert calculate_total_time_with_fatigue(10.0, 0.0, 3.0) == 0.0


def test_curve_has_one_point_per_mile():
    curve = generate_fatigue_curve(10.0, 26.2, 3.0)
    points = list(curve)

    assert len(curve) == 28
    assert len(points) == 28
    assert points[0].fatigue_multiplier == 1.0
    assert points[-1].distance == pytest.approx(26.2)
    assert points[-1].percent_degradation == pytest.approx(26.2 / 10 * 3.0)


def test_curve_can_be_iterated_twice():
    curve = generate_fatigue_curve(10.0, 50.0, 2.0, num_points=10)
    assert list(curve) == list(curve)
    assert len(list(curve)) == 11


def test_zero_fatigue_curve_is_flat():
    points = list(generate_fatigue_curve(9.5, 31.0, 0.0))

    assert len(points) == 32
    assert all(p.expected_pace == 9.5 for p in points)
    assert all(p.percent_degradation == 0.0 for p in points)


def test_degenerate_curve_is_single_neutral_point():
    points = list(generate_fatigue_curve(10.0, 0.0, 3.0))
    assert len(points) == 1
    assert points[0].expected_pace == 10.0


@pytest.mark.parametrize("factor", [1.0, 3.0, 4.0, 7.5])
def test_fade_rate_recovers_generating_factor(factor):
    distances = [i + 0.5 for i in range(50)]
    paces = [expected_pace_at_distance(10.0, d, factor) for d in distances]
    assert calculate_actual_fade_rate(paces, distances) == pytest.approx(factor, rel=0.05)


def test_fade_rate_negative_for_speedup():
    assert calculate_actual_fade_rate([11.0, 10.5, 10.0, 9.5], [5, 15, 25, 35]) < 0


def test_fade_rate_degenerate_input():
    assert calculate_actual_fade_rate([10.0], [5.0]) == 0.0
    assert calculate_actual_fade_rate([10.0, 11.0], [5.0]) == 0.0
    assert calculate_actual_fade_rate([10.0, float("nan")], [5.0, 15.0]) == 0.0
    assert calculate_actual_fade_rate([10.0, 11.0], [5.0, 5.0]) == 0.0


def test_compare_fatigue():
    assert compare_fatigue(3.0, 5.0).performance == "worse"
    assert compare_fatigue(3.0, 1.0).performance == "better"
    assert compare_fatigue(3.0, 3.5).performance == "similar"


def test_fatigue_description():
    assert fatigue_description(2.0) == "Fresh"
    assert fatigue_description(12.0) == "Moderate fatigue"
    assert fatigue_description(30.0) == "Severe fatigue"
