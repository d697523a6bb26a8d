import pytest

from utils.eccentric_load import (
    DescentCategory, EccentricLoadLevel, descent_strategy, eccentric_score, analyze_segment_eccentric_load,
    eccentric_load_level, calculate_race_eccentric_summary,
)


@pytest.mark.parametrize("gradient,category,multiplier", [
    (-3.0, DescentCategory.EASY, 0.95),
    (-6.0, DescentCategory.EASY, 0.95),
    (-8.0, DescentCategory.MODERATE, 1.0),
    (-10.0, DescentCategory.MODERATE, 1.0),
    (-12.0, DescentCategory.TECHNICAL, 1.1),
    (-18.0, DescentCategory.EXTREME, 1.25),
])
def test_descent_strategy(gradient, category, multiplier):
    strategy = descent_strategy(gradient)
    assert strategy.category is category
    assert strategy.pace_multiplier == multiplier
    assert strategy.advice


def test_eccentric_score():
    # 12 + 2 * 4 gradient points, x1.5 for 3 miles, x1.2 for 1200ft
    assert eccentric_score(-8.0, 3.0, 1200.0) == pytest.approx(36.0)
    assert eccentric_score(-12.0, 1.0, 500.0) == pytest.approx(44.0 * 0.5 * 0.5)


def test_eccentric_score_ignores_climbs_and_caps():
    assert eccentric_score(4.0, 3.0, 1200.0) == 0.0
    assert eccentric_score(0.0, 3.0, 1200.0) == 0.0
    assert eccentric_score(-20.0, 10.0, 5000.0) == 100.0


def test_steep_segment_warnings():
    analysis = analyze_segment_eccentric_load(-18.0, 4.0, 2000.0)

    assert analysis.eccentric_score == 100.0
    assert analysis.strategy.category is DescentCategory.EXTREME
    assert len(analysis.warnings) == 3
    assert analysis.warnings[0].startswith("Steep descent (18.0%)")


def test_gentle_segment_has_no_warnings():
    analysis = analyze_segment_eccentric_load(-3.0, 2.0, 300.0)
    assert analysis.warnings == []
    assert analysis.eccentric_score == pytest.approx(6.0 * 1.0 * 0.3)


def test_load_levels():
    assert eccentric_load_level(0.0) is EccentricLoadLevel.LOW
    assert eccentric_load_level(100.0) is EccentricLoadLevel.MODERATE
    assert eccentric_load_level(499.9) is EccentricLoadLevel.HIGH
    assert eccentric_load_level(500.0) is EccentricLoadLevel.EXTREME


def test_race_summary_counts_descents():
    analyses = [
        analyze_segment_eccentric_load(-8.0, 3.0, 1200.0),
        analyze_segment_eccentric_load(-12.0, 4.0, 2000.0),
        analyze_segment_eccentric_load(4.0, 2.0, 0.0),
    ]
    summary = calculate_race_eccentric_summary(analyses)

    assert summary.total_eccentric_score == pytest.approx(136.0)
    assert summary.total_elevation_loss_feet == 3200.0
    assert summary.load_level is EccentricLoadLevel.MODERATE
    assert summary.steep_descent_segments == 1
    assert summary.extreme_descent_segments == 0
    assert summary.recommendations == ["1 segment(s) with steep descent (>10% grade)"]


def test_race_summary_high_load_recommendations():
    analyses = [analyze_segment_eccentric_load(-16.0, 5.0, 2500.0) for _ in range(3)]
    summary = calculate_race_eccentric_summary(analyses)

    assert summary.load_level is EccentricLoadLevel.HIGH
    assert summary.extreme_descent_segments == 3
    assert "Pre-race eccentric training strongly recommended" in summary.recommendations
    assert summary.recommendations[0].startswith("Total descent of 7500ft")


def test_empty_race_summary():
    summary = calculate_race_eccentric_summary([])
    assert summary.total_eccentric_score == 0.0
    assert summary.load_level is EccentricLoadLevel.LOW
