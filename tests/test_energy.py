import pytest

from utils.errors import PreconditionViolation, SegmentOrderError
from utils.records import AthleteMetrics, BonkRisk, FitnessLevel, NutritionItem
from utils.energy import (
    calculate_calories_burned, calculate_calories_consumed, glycogen_capacity_grams, fat_oxidation_rate,
    glycogen_risk, segment_deficit_risk, deficit_worsening, calculate_segment_energy_balance, fold_energy_balance,
)
from conftest import segment


def test_calories_burned_flat_reference(athlete):
    assert calculate_calories_burned(10.0, 0.0, 0.0, 10.0, athlete) == pytest.approx(60 * 16.09344, rel=1e-6)


def test_calories_burned_scales_with_weight_and_climbing(athlete):
    base = calculate_calories_burned(10.0, 0.0, 0.0, 10.0, athlete)
    heavier = calculate_calories_burned(10.0, 0.0, 0.0, 10.0, AthleteMetrics(70.0, gear_weight_kg=7.0))
    climbing = calculate_calories_burned(10.0, 500.0, 0.0, 10.0, athlete)
    descending = calculate_calories_burned(10.0, 0.0, 500.0, 10.0, athlete)

    assert heavier == pytest.approx(base * 1.1)
    assert climbing > descending > base


def test_hiking_costs_less_than_running(athlete):
    hiking = calculate_calories_burned(1.0, 0.0, 0.0, 20.0, athlete)
    running = calculate_calories_burned(1.0, 0.0, 0.0, 10.0, athlete)
    fast = calculate_calories_burned(1.0, 0.0, 0.0, 7.0, athlete)
    assert hiking < running < fast


def test_calories_consumed(gel):
    assert calculate_calories_consumed([gel]) == 200.0
    assert calculate_calories_consumed([]) == 0.0


def test_glycogen_capacity_by_fitness():
    assert glycogen_capacity_grams(AthleteMetrics(70.0)) == pytest.approx(490.0)
    assert glycogen_capacity_grams(AthleteMetrics(70.0, fitness_level=FitnessLevel.ELITE)) == pytest.approx(560.0)


def test_fat_oxidation_rate_bounds():
    assert fat_oxidation_rate(0.0, 0.0) == pytest.approx(0.30)
    assert fat_oxidation_rate(50.0, 6.0) == pytest.approx(0.30 + 0.20 + 0.05)
    assert fat_oxidation_rate(500.0, 100.0) == pytest.approx(0.70)


@pytest.mark.parametrize("percent,risk", [
    (80.0, BonkRisk.NONE),
    (40.0, BonkRisk.LOW),
    (20.0, BonkRisk.MODERATE),
    (10.0, BonkRisk.HIGH),
    (2.0, BonkRisk.CRITICAL),
])
def test_glycogen_risk(percent, risk):
    assert glycogen_risk(percent) is risk


def test_segment_deficit_risk():
    assert segment_deficit_risk(500.0, 0.0) is BonkRisk.HIGH
    assert segment_deficit_risk(300.0, 0.0) is BonkRisk.MODERATE
    assert segment_deficit_risk(800.0, 200.0) is BonkRisk.HIGH
    assert segment_deficit_risk(300.0, 250.0) is BonkRisk.NONE


def test_deficit_worsening():
    assert deficit_worsening([-100.0, -200.0, -300.0])
    assert not deficit_worsening([-300.0, -200.0, -100.0])
    assert not deficit_worsening([-100.0, -200.0])
    assert not deficit_worsening([100.0, -200.0, -300.0])


def test_intake_reduces_glycogen_depletion(athlete, gel):
    hungry = calculate_segment_energy_balance(segment(1, "Aid 1", 6.0, 6.0), 60.0, 0.0, 0.0,
                                              0.0, 0.0, 0.0, 0.0, athlete)
    fed = calculate_segment_energy_balance(segment(1, "Aid 1", 6.0, 6.0, nutrition_items=(gel,)), 60.0, 0.0, 0.0,
                                           0.0, 0.0, 0.0, 0.0, athlete)

    assert fed.estimated_glycogen_remaining > hungry.estimated_glycogen_remaining
    # 200 kcal absorbed at 80% storage efficiency
    assert fed.estimated_glycogen_remaining - hungry.estimated_glycogen_remaining == pytest.approx(40.0)
    assert fed.segment_deficit > hungry.segment_deficit


def test_intake_beyond_absorption_does_not_help(athlete):
    feast = NutritionItem(product_name="Drink mix", carbs_per_serving=100.0, quantity=3)
    plenty = NutritionItem(product_name="Drink mix", carbs_per_serving=100.0, quantity=1)
    a = calculate_segment_energy_balance(segment(1, "Aid 1", 6.0, 6.0, nutrition_items=(feast,)), 60.0, 0.0, 0.0,
                                         0.0, 0.0, 0.0, 0.0, athlete)
    b = calculate_segment_energy_balance(segment(1, "Aid 1", 6.0, 6.0, nutrition_items=(plenty,)), 60.0, 0.0, 0.0,
                                         0.0, 0.0, 0.0, 0.0, athlete)

    assert a.estimated_glycogen_remaining == pytest.approx(b.estimated_glycogen_remaining)
    assert any("absorb" in tip for tip in a.general_tips)


def test_no_time_to_bonk_without_depletion(athlete):
    result = calculate_segment_energy_balance(segment(1, "Start", 0.0, 0.0), 0.0, 0.0, 0.0,
                                              0.0, 0.0, 0.0, 0.0, athlete)
    assert result.time_to_bonk is None
    assert result.estimated_glycogen_percent == pytest.approx(100.0)


def test_missing_body_weight_raises():
    with pytest.raises(PreconditionViolation):
        calculate_segment_energy_balance(segment(1, "Aid 1", 6.0, 6.0), 60.0, 0.0, 0.0,
                                         0.0, 0.0, 0.0, 0.0, AthleteMetrics(body_weight_kg=None))


def _race(n, miles=6.0):
    return [segment(i + 1, f"Aid {i + 1}", miles, miles * (i + 1)) for i in range(n)]


def test_glycogen_never_rises_without_intake(athlete):
    segments = _race(10)
    results = fold_energy_balance(segments, [66.0] * 10, [(100.0, 100.0)] * 10, athlete)

    glycogen = [r.estimated_glycogen_remaining for r in results]
    assert all(later <= earlier for earlier, later in zip(glycogen, glycogen[1:]))
    assert all(g >= 0.0 for g in glycogen)
    assert results[-1].bonk_risk.level >= results[0].bonk_risk.level
    assert results[-1].state.distance_miles == pytest.approx(60.0)
    assert results[-1].cumulative_deficit == pytest.approx(-sum(r.segment_calories_burned for r in results))


def test_time_to_bonk_reported_while_depleting(athlete):
    results = fold_energy_balance(_race(2), [66.0, 66.0], [(0.0, 0.0)] * 2, athlete)
    assert results[0].time_to_bonk is not None
    assert results[0].time_to_bonk > 0


def test_fold_requires_body_weight():
    with pytest.raises(PreconditionViolation):
        fold_energy_balance(_race(2), [60.0, 60.0], [(0.0, 0.0)] * 2, None)


def test_fold_rejects_mismatched_lengths(athlete):
    with pytest.raises(PreconditionViolation):
        fold_energy_balance(_race(3), [60.0, 60.0], [(0.0, 0.0)] * 3, athlete)


def test_fold_rejects_out_of_order_segments(athlete):
    segments = list(reversed(_race(2)))
    with pytest.raises(SegmentOrderError):
        fold_energy_balance(segments, [60.0, 60.0], [(0.0, 0.0)] * 2, athlete)


def test_fold_rejects_decreasing_distance(athlete):
    segments = [segment(1, "Aid 1", 10.0, 10.0), segment(2, "Aid 2", 5.0, 5.0)]
    with pytest.raises(SegmentOrderError):
        fold_energy_balance(segments, [60.0, 60.0], [(0.0, 0.0)] * 2, athlete)
