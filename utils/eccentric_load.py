"""
Eccentric (downhill) load.
Scores the quad damage of each descent from its gradient, length and
elevation loss, suggests how to run it, and rolls the scores up into a
race-wide load level.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Sequence

from loguru import logger

import config


class DescentCategory(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    TECHNICAL = "technical"
    EXTREME = "extreme"


class EccentricLoadLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    EXTREME = "extreme"


_DESCENT_ADVICE = {
    DescentCategory.EASY: "Let gravity assist. Maintain upright posture and quick turnover.",
    DescentCategory.MODERATE: "Optimal efficiency zone. Controlled speed, lean slightly forward.",
    DescentCategory.TECHNICAL: "High quad load. Shorten stride, increase cadence, protect knees.",
    DescentCategory.EXTREME: "Extreme eccentric load. Consider walking, use trekking poles if available.",
}

_LOAD_LEVEL_TEXT = {
    EccentricLoadLevel.LOW: (
        "Low eccentric load - Standard quad conditioning sufficient",
        "Normal training should prepare you well for this race.",
    ),
    EccentricLoadLevel.MODERATE: (
        "Moderate eccentric load - Expect quad fatigue in latter half",
        "Include 1-2 weekly downhill sessions in your training block.",
    ),
    EccentricLoadLevel.HIGH: (
        "High eccentric load - Downhill training essential",
        "Include 2-3 weekly downhill repeats. Consider eccentric-focused strength work.",
    ),
    EccentricLoadLevel.EXTREME: (
        "Extreme eccentric load - Race demands serious downhill preparation",
        "Prioritize downhill training. Consider trekking poles. Build up gradually to prevent injury.",
    ),
}


@dataclass(frozen=True)
class DescentStrategy:
    category: DescentCategory
    advice: str
    pace_multiplier: float  # suggestion on top of the derived pace


@dataclass(frozen=True)
class SegmentEccentricAnalysis:
    gradient: float  # net average % grade
    elevation_loss_feet: float
    distance_miles: float
    eccentric_score: float  # 0..100
    strategy: DescentStrategy
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RaceEccentricSummary:
    total_elevation_loss_feet: float
    total_eccentric_score: float
    load_level: EccentricLoadLevel
    message: str
    training_advice: str
    steep_descent_segments: int  # steeper than the moderate threshold
    extreme_descent_segments: int  # steeper than the technical threshold
    recommendations: List[str] = field(default_factory=list)


def descent_strategy(gradient_percent: float) -> DescentStrategy:
    """How to run a stretch with this average gradient."""
    if gradient_percent >= config.DESCENT_EASY_GRADIENT:
        category = DescentCategory.EASY
    elif gradient_percent >= config.DESCENT_MODERATE_GRADIENT:
        category = DescentCategory.MODERATE
    elif gradient_percent >= config.DESCENT_TECHNICAL_GRADIENT:
        category = DescentCategory.TECHNICAL
    else:
        category = DescentCategory.EXTREME

    return DescentStrategy(
        category=category,
        advice=_DESCENT_ADVICE[category],
        pace_multiplier=config.DESCENT_PACE_MULTIPLIERS[category.value],
    )


def eccentric_score(gradient_percent: float, distance_miles: float, elevation_loss_feet: float) -> float:
    """
    Eccentric load score (0-100) of one stretch.

    The gradient score grows piecewise-linearly with steepness, each band
    steeper than the last. It is then scaled by distance (capped at 5 miles)
    and elevation loss (capped at 3000ft). Climbs and flat stretches score 0.

    Example:
        -8% over 3 miles losing 1200ft -> 20 points * 1.5 * 1.2 = 36
    """
    if gradient_percent >= 0 or distance_miles <= 0 or elevation_loss_feet <= 0:
        return 0.0

    steepness = abs(gradient_percent)
    gradient_points = 0.0
    band_start = 0.0
    for band_end, slope in config.ECCENTRIC_GRADIENT_BANDS:
        span = min(steepness, band_end) - band_start
        if span <= 0:
            break
        gradient_points += span * slope
        band_start = band_end

    distance_multiplier = min(distance_miles, config.ECCENTRIC_DISTANCE_CAP_MILES) / config.ECCENTRIC_DISTANCE_DIVISOR
    loss_multiplier = min(elevation_loss_feet, config.ECCENTRIC_LOSS_CAP_FT) / config.ECCENTRIC_LOSS_DIVISOR_FT

    return min(config.MAX_SEGMENT_ECCENTRIC_SCORE, gradient_points * distance_multiplier * loss_multiplier)


def analyze_segment_eccentric_load(
        gradient_percent: float,
        distance_miles: float,
        elevation_loss_feet: float
) -> SegmentEccentricAnalysis:
    score = eccentric_score(gradient_percent, distance_miles, elevation_loss_feet)

    warnings = []
    if gradient_percent < config.DESCENT_TECHNICAL_GRADIENT:
        warnings.append(f"Steep descent ({abs(gradient_percent):.1f}%) - High eccentric load on quads")
    if elevation_loss_feet > config.ECCENTRIC_LOSS_WARNING_FT:
        warnings.append(f"Significant elevation loss ({elevation_loss_feet:.0f}ft) - Pace yourself")
    if score > config.ECCENTRIC_SCORE_WARNING:
        warnings.append("Consider pre-race downhill training for this segment")
    if gradient_percent < config.DESCENT_EXTREME_GRADIENT:
        warnings.append("Extreme gradient - Trekking poles strongly recommended")

    return SegmentEccentricAnalysis(
        gradient=gradient_percent,
        elevation_loss_feet=elevation_loss_feet,
        distance_miles=distance_miles,
        eccentric_score=score,
        strategy=descent_strategy(gradient_percent),
        warnings=warnings,
    )


def eccentric_load_level(total_score: float) -> EccentricLoadLevel:
    for upper, level in config.ECCENTRIC_LOAD_LEVELS:
        if total_score < upper:
            return EccentricLoadLevel(level)
    return EccentricLoadLevel.EXTREME


def calculate_race_eccentric_summary(analyses: Sequence[SegmentEccentricAnalysis]) -> RaceEccentricSummary:
    """
    Roll per-segment descent analyses up into a race-wide load.

    Only net-downhill segments contribute elevation loss and score.
    """
    descents = [a for a in analyses if a.gradient < 0]

    total_loss = sum(a.elevation_loss_feet for a in descents)
    total_score = sum(a.eccentric_score for a in descents)
    steep = sum(1 for a in descents if a.gradient < config.DESCENT_MODERATE_GRADIENT)
    extreme = sum(1 for a in descents if a.gradient < config.DESCENT_TECHNICAL_GRADIENT)

    level = eccentric_load_level(total_score)
    message, advice = _LOAD_LEVEL_TEXT[level]

    recommendations = []
    if total_loss > config.ECCENTRIC_TOTAL_LOSS_WARNING_FT:
        recommendations.append(f"Total descent of {total_loss:.0f}ft - significant cumulative quad stress")
    if steep:
        recommendations.append(f"{steep} segment(s) with steep descent (>{abs(config.DESCENT_MODERATE_GRADIENT):.0f}% grade)")
    if extreme:
        recommendations.append(f"{extreme} segment(s) with extreme descent - consider poles")
    if level in (EccentricLoadLevel.HIGH, EccentricLoadLevel.EXTREME):
        recommendations.append("Pre-race eccentric training strongly recommended")
        recommendations.append("Consider slower start to preserve quads for descents")

    logger.debug(f"Eccentric load: score {total_score:.0f} ({level.value}), {total_loss:.0f}ft of descent")

    return RaceEccentricSummary(
        total_elevation_loss_feet=total_loss,
        total_eccentric_score=total_score,
        load_level=level,
        message=message,
        training_advice=advice,
        steep_descent_segments=steep,
        extreme_descent_segments=extreme,
        recommendations=recommendations,
    )
