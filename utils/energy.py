"""
Energy balance and bonk prevention.

Models calories burned versus carbohydrate eaten and the resulting glycogen
depletion, one segment at a time. The model keeps no state: each call reads
an EnergyBalanceState and returns the next one, and `fold_energy_balance`
threads it left to right over the ordered segments.

Research basis:
- Minetti et al. (2002): energy cost of running on gradients
- ~500g glycogen (~2000 kcal) for a trained 70kg athlete
- Fat oxidation share rises with distance and duration
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from utils.errors import PreconditionViolation, SegmentOrderError
from utils.records import AthleteMetrics, BonkRisk, NutritionItem, Segment, ensure_segment_order
import config


@dataclass(frozen=True)
class EnergyBalanceState:
    """Running totals threaded from one segment to the next."""
    calories_burned: float = 0.0
    calories_consumed: float = 0.0
    glycogen_remaining_grams: Optional[float] = None  # None = full stores
    distance_miles: float = 0.0
    time_hours: float = 0.0
    recent_deficits: Tuple[float, ...] = ()


@dataclass(frozen=True)
class EnergyBalanceCalculation:
    segment_calories_burned: float
    segment_calories_consumed: float
    segment_deficit: float  # consumed - burned (negative = deficit)
    cumulative_deficit: float
    estimated_glycogen_remaining: float  # grams
    estimated_glycogen_percent: float  # 0-100
    time_to_bonk: Optional[float]  # minutes, None unless glycogen is dropping
    bonk_risk: BonkRisk
    segment_warnings: List[str] = field(default_factory=list)
    general_tips: List[str] = field(default_factory=list)
    state: EnergyBalanceState = field(default_factory=EnergyBalanceState)


# ============================================
# CALORIES
# ============================================

def calculate_calories_burned(
        distance_miles: float,
        elevation_gain_m: float,
        elevation_loss_m: float,
        pace: float,
        athlete_metrics: AthleteMetrics
) -> float:
    """
    Estimate calories burned over a stretch of course.

    - Base: ~60 kcal/km for a 70kg runner, scaled by body + gear weight
    - Climbing: ~10 kcal per 100ft of gain
    - Descent: 40% of the climbing cost (eccentric work)
    - Intensity: fast running costs more, hiking slightly less

    Example:
        10 miles flat at 10:00/mi for 70kg -> ~966 kcal
    """
    total_weight = athlete_metrics.body_weight_kg + (athlete_metrics.gear_weight_kg or 0.0)
    weight_multiplier = total_weight / config.REFERENCE_WEIGHT_KG

    distance_km = distance_miles * config.KM_PER_MILE
    base = config.BASE_KCAL_PER_KM * distance_km * weight_multiplier
    climb = elevation_gain_m * config.KCAL_PER_M_GAIN * weight_multiplier
    descent = elevation_loss_m * config.KCAL_PER_M_GAIN * config.DESCENT_COST_FACTOR * weight_multiplier

    return (base + climb + descent) * _intensity_multiplier(pace)


def _intensity_multiplier(pace: float) -> float:
    if pace <= 0:
        return 1.0
    speed_kmh = config.MINUTES_PER_HOUR / pace * config.KM_PER_MILE
    if speed_kmh > config.FAST_SPEED_KMH:
        return config.FAST_INTENSITY
    if speed_kmh > config.MODERATE_SPEED_KMH:
        return config.MODERATE_INTENSITY
    if speed_kmh < config.HIKING_SPEED_KMH:
        return config.HIKING_INTENSITY
    return 1.0


def calculate_calories_consumed(items: Sequence[NutritionItem]) -> float:
    """Calories from carbohydrate (4 kcal/g) across a segment's nutrition items."""
    return sum(item.carbs_per_serving * item.quantity * config.KCAL_PER_GRAM_CARB for item in items)


# ============================================
# GLYCOGEN
# ============================================

def glycogen_capacity_grams(athlete_metrics: AthleteMetrics) -> float:
    """Starting glycogen stores: g/kg for the fitness level x body weight."""
    per_kg = config.GLYCOGEN_G_PER_KG[athlete_metrics.fitness_level.value]
    return per_kg * athlete_metrics.body_weight_kg


def fat_oxidation_rate(distance_miles: float, time_hours: float) -> float:
    """
    Share of energy drawn from fat.

    Starts at 30% and rises with distance (up to +40% by 100 miles) and time
    (up to +10% by 12 hours), capped at 70%.
    """
    distance_term = min(config.FAT_RATE_DISTANCE_GAIN,
                        distance_miles / config.FAT_RATE_DISTANCE_MILES * config.FAT_RATE_DISTANCE_GAIN)
    time_term = min(config.FAT_RATE_TIME_GAIN,
                    time_hours / config.FAT_RATE_TIME_HOURS * config.FAT_RATE_TIME_GAIN)
    return min(config.MAX_FAT_RATE, config.BASELINE_FAT_RATE + max(0.0, distance_term) + max(0.0, time_term))


def glycogen_risk(percent: float) -> BonkRisk:
    if percent >= config.BONK_NONE_PCT:
        return BonkRisk.NONE
    if percent >= config.BONK_LOW_PCT:
        return BonkRisk.LOW
    if percent >= config.BONK_MODERATE_PCT:
        return BonkRisk.MODERATE
    if percent >= config.BONK_CRITICAL_PCT:
        return BonkRisk.HIGH
    return BonkRisk.CRITICAL


def segment_deficit_risk(burned: float, consumed: float) -> BonkRisk:
    """
    Risk from one segment's intake alone.

    Burning a lot with nothing eaten is risky even while stores are healthy.
    """
    deficit = consumed - burned

    if consumed == 0 and burned > config.NO_INTAKE_HIGH_BURN_KCAL:
        return BonkRisk.HIGH
    if consumed == 0 and burned > config.NO_INTAKE_MODERATE_BURN_KCAL:
        return BonkRisk.MODERATE
    if deficit < config.DEFICIT_HIGH_KCAL:
        return BonkRisk.HIGH
    if deficit < config.DEFICIT_MODERATE_KCAL:
        return BonkRisk.MODERATE
    if deficit < config.DEFICIT_LOW_KCAL:
        return BonkRisk.LOW
    return BonkRisk.NONE


def deficit_worsening(deficits: Sequence[float], window: int = config.BONK_TREND_WINDOW) -> bool:
    """True when the last `window` deficits are all negative and each is worse than the one before."""
    if len(deficits) < window:
        return False
    recent = list(deficits)[-window:]
    return all(d < 0 for d in recent) and all(b < a for a, b in zip(recent, recent[1:]))


def _require_body_weight(athlete_metrics: Optional[AthleteMetrics]):
    if athlete_metrics is None or athlete_metrics.body_weight_kg is None or athlete_metrics.body_weight_kg <= 0:
        raise PreconditionViolation("Energy balance needs a positive body weight")


# ============================================
# SEGMENT ENERGY BALANCE
# ============================================

def calculate_segment_energy_balance(
        segment: Segment,
        segment_time_minutes: float,
        elevation_gain: float,
        elevation_loss: float,
        cumulative_burned: float,
        cumulative_consumed: float,
        cumulative_distance: float,
        cumulative_time_hours: float,
        athlete_metrics: AthleteMetrics,
        glycogen_remaining: Optional[float] = None,
        recent_deficits: Sequence[float] = ()
) -> EnergyBalanceCalculation:
    """
    Energy balance for one segment, given the totals before it.

    Glycogen falls by the carbohydrate share of calories burned and rises by
    what the gut can absorb: intake beyond the absorption ceiling for the
    segment's duration does not slow depletion further.

    Args:
        segment: The segment (distance, nutrition items, name)
        segment_time_minutes: Planned time for the segment
        elevation_gain, elevation_loss: Segment elevation change (meters)
        cumulative_*: Totals before this segment
        athlete_metrics: Body weight (required), gear weight, fitness level
        glycogen_remaining: Grams before this segment; None = full stores
        recent_deficits: Deficits of the preceding segments, oldest first

    Returns:
        EnergyBalanceCalculation carrying the next EnergyBalanceState

    Raises:
        PreconditionViolation: if body weight is missing or not positive
    """
    _require_body_weight(athlete_metrics)

    distance = max(0.0, segment.segment_distance)
    segment_hours = max(0.0, segment_time_minutes) / config.MINUTES_PER_HOUR
    pace = segment_time_minutes / distance if distance > 0 else config.DEFAULT_ENERGY_PACE

    burned = calculate_calories_burned(distance, elevation_gain, elevation_loss, pace, athlete_metrics)
    consumed = calculate_calories_consumed(segment.nutrition_items)
    deficit = consumed - burned

    total_burned = cumulative_burned + burned
    total_consumed = cumulative_consumed + consumed
    total_distance = cumulative_distance + distance
    total_hours = cumulative_time_hours + segment_hours

    capacity = glycogen_capacity_grams(athlete_metrics)
    before = capacity if glycogen_remaining is None else glycogen_remaining

    fat_rate = fat_oxidation_rate(total_distance, total_hours)
    used_grams = burned * (1.0 - fat_rate) / config.KCAL_PER_GRAM_CARB
    absorbable_kcal = min(consumed, config.CARB_ABSORPTION_CEILING_KCAL_PER_HOUR * segment_hours)
    absorbed_grams = absorbable_kcal * config.CARB_STORAGE_EFFICIENCY / config.KCAL_PER_GRAM_CARB

    after = min(capacity, max(0.0, before - used_grams + absorbed_grams))
    percent = after / capacity * 100.0

    deficits = tuple(recent_deficits) + (deficit,)
    risk = BonkRisk.worst(glycogen_risk(percent), segment_deficit_risk(burned, consumed))
    if deficit_worsening(deficits):
        risk = risk.escalate()

    time_to_bonk = None
    dropped = before - after
    if dropped > 0 and segment_hours > 0:
        time_to_bonk = after / (dropped / segment_hours) * config.MINUTES_PER_HOUR

    warnings, tips = _recommendations(segment, risk, deficit, burned, consumed, dropped / capacity * 100.0,
                                      segment_hours)

    logger.debug(
        f"{segment.checkpoint_name}: burned {burned:.0f} kcal, ate {consumed:.0f} kcal, "
        f"glycogen {after:.0f}g ({percent:.0f}%), risk {risk.value}"
    )

    return EnergyBalanceCalculation(
        segment_calories_burned=burned,
        segment_calories_consumed=consumed,
        segment_deficit=deficit,
        cumulative_deficit=total_consumed - total_burned,
        estimated_glycogen_remaining=after,
        estimated_glycogen_percent=percent,
        time_to_bonk=time_to_bonk,
        bonk_risk=risk,
        segment_warnings=warnings,
        general_tips=tips,
        state=EnergyBalanceState(
            calories_burned=total_burned,
            calories_consumed=total_consumed,
            glycogen_remaining_grams=after,
            distance_miles=total_distance,
            time_hours=total_hours,
            recent_deficits=deficits[-config.BONK_TREND_WINDOW:],
        ),
    )


_RISK_ADVICE = {
    BonkRisk.LOW: "maintain nutrition intake",
    BonkRisk.MODERATE: "increase nutrition intake",
    BonkRisk.HIGH: "increase carb intake significantly",
    BonkRisk.CRITICAL: "immediate action needed",
}


def _recommendations(
        segment: Segment,
        risk: BonkRisk,
        deficit: float,
        burned: float,
        consumed: float,
        depletion_percent: float,
        segment_hours: float
) -> Tuple[List[str], List[str]]:
    """Deterministic warnings for this segment and general tips."""
    warnings = []
    tips = []

    if burned <= 0:
        return warnings, tips

    if risk is not BonkRisk.NONE:
        warnings.append(
            f"{risk.value.capitalize()} risk at {segment.checkpoint_name} "
            f"({abs(round(deficit))} kcal deficit) - {_RISK_ADVICE[risk]}"
        )

    if depletion_percent > config.HIGH_SEGMENT_DEPLETION_PCT:
        warnings.append(
            f"High glycogen depletion on {segment.checkpoint_name} "
            f"({depletion_percent:.0f}% of stores)"
        )

    if risk is BonkRisk.CRITICAL:
        tips.append("CRITICAL: Glycogen nearly depleted - increase carb intake immediately")
        tips.append("Consider slowing pace to reduce energy expenditure")

    if segment_hours > 0 and consumed / segment_hours > config.CARB_ABSORPTION_CEILING_KCAL_PER_HOUR:
        tips.append(
            f"Planned intake on {segment.checkpoint_name} exceeds what the gut can absorb "
            f"(~{config.CARB_ABSORPTION_CEILING_KCAL_PER_HOUR / config.KCAL_PER_GRAM_CARB:.0f}g carbs/hour)"
        )

    return warnings, tips


def fold_energy_balance(
        segments: Sequence[Segment],
        segment_times: Sequence[float],
        elevations: Sequence[Tuple[float, float]],
        athlete_metrics: AthleteMetrics
) -> List[EnergyBalanceCalculation]:
    """
    Run the energy balance over a whole race, strictly in segment order.

    Args:
        segments: Segments in course order
        segment_times: Minutes per segment
        elevations: (gain_m, loss_m) per segment
        athlete_metrics: Must carry a positive body weight

    Raises:
        PreconditionViolation: missing body weight or mismatched inputs
        SegmentOrderError: segments not in course order
    """
    _require_body_weight(athlete_metrics)

    if not (len(segments) == len(segment_times) == len(elevations)):
        raise PreconditionViolation("segments, segment_times and elevations must have the same length")

    ordered = ensure_segment_order(segments)
    if [s.order for s in ordered] != [s.order for s in segments]:
        raise SegmentOrderError("Segments must be supplied in course order")

    results = []
    state = EnergyBalanceState()
    for segment, minutes, (gain, loss) in zip(segments, segment_times, elevations):
        result = calculate_segment_energy_balance(
            segment, minutes, gain, loss,
            state.calories_burned, state.calories_consumed,
            state.distance_miles, state.time_hours,
            athlete_metrics,
            glycogen_remaining=state.glycogen_remaining_grams,
            recent_deficits=state.recent_deficits,
        )
        results.append(result)
        state = result.state

    return results
