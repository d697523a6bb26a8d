"""
Pace strategies.
Expands one derived pace into aggressive / balanced / conservative options,
each with effort targets recomputed for its own pace.
"""

from dataclasses import dataclass, replace
from typing import List, Optional

from utils.records import Confidence, StrategyTier
from utils.zones import HRZoneSuggestion, PowerZoneSuggestion
import config


@dataclass(frozen=True)
class PaceStrategy:
    tier: StrategyTier
    pace_min_per_distance: float
    confidence: Confidence
    adjustment_percent: float
    description: str
    best_for: str
    reasoning: str
    suggested_hr_zone: Optional[HRZoneSuggestion] = None
    suggested_power_zone: Optional[PowerZoneSuggestion] = None


# tier -> (multiplier, description, best for, effort note)
_TIERS = [
    (StrategyTier.AGGRESSIVE, config.AGGRESSIVE_MULTIPLIER,
     "Push faster than your reference performance",
     "Optimal conditions, strong training block",
     "pushed effort"),
    (StrategyTier.BALANCED, config.BALANCED_MULTIPLIER,
     "Match your proven reference performance",
     "Similar conditions to your reference race",
     None),
    (StrategyTier.CONSERVATIVE, config.CONSERVATIVE_MULTIPLIER,
     "Slower buffer for a safety margin",
     "Tough weather, unknown terrain, first attempt",
     "conservative effort"),
]


def generate_pace_options(
        base_pace: float,
        confidence: Confidence,
        reasoning: str,
        hr_zone: Optional[HRZoneSuggestion] = None,
        power_zone: Optional[PowerZoneSuggestion] = None
) -> List[PaceStrategy]:
    """
    Generate the three pacing strategies for a segment.

    Order is always aggressive, balanced, conservative. The aggressive tier
    is one confidence level less certain and the conservative tier one level
    more certain than the derivation it came from.

    Heart rate targets move at half the rate of speed; power targets move in
    proportion to speed.

    Example:
        base 10:00/mi -> 9:18 aggressive, 10:00 balanced, 10:48 conservative
    """
    options = []
    for tier, multiplier, description, best_for, note in _TIERS:
        pace = base_pace * multiplier
        speed_ratio = base_pace / pace if pace > 0 else 1.0

        if tier is StrategyTier.AGGRESSIVE:
            tier_confidence = confidence.less_certain()
        elif tier is StrategyTier.CONSERVATIVE:
            tier_confidence = confidence.more_certain()
        else:
            tier_confidence = confidence

        options.append(PaceStrategy(
            tier=tier,
            pace_min_per_distance=pace,
            confidence=tier_confidence,
            adjustment_percent=round((multiplier - 1.0) * 100, 1),
            description=f"{description} ({(multiplier - 1.0) * 100:+.0f}%)" if note else description,
            best_for=best_for,
            reasoning=reasoning,
            suggested_hr_zone=_scale_hr_zone(hr_zone, speed_ratio, note),
            suggested_power_zone=_scale_power_zone(power_zone, speed_ratio, note),
        ))

    return options


def _scale_hr_zone(
        zone: Optional[HRZoneSuggestion],
        speed_ratio: float,
        note: Optional[str]
) -> Optional[HRZoneSuggestion]:
    if zone is None:
        return None

    scale = 1.0 + config.HR_PACE_SENSITIVITY * (speed_ratio - 1.0)
    return replace(
        zone,
        min_bpm=_clamp_bpm(zone.min_bpm * scale),
        max_bpm=_clamp_bpm(zone.max_bpm * scale),
        reasoning=f"{zone.reasoning} ({note})" if note else zone.reasoning,
    )


def _scale_power_zone(
        zone: Optional[PowerZoneSuggestion],
        speed_ratio: float,
        note: Optional[str]
) -> Optional[PowerZoneSuggestion]:
    if zone is None:
        return None

    scale = 1.0 + config.POWER_PACE_SENSITIVITY * (speed_ratio - 1.0)
    return replace(
        zone,
        min_watts=round(zone.min_watts * scale),
        max_watts=round(zone.max_watts * scale),
        percent_ftp_min=round(zone.percent_ftp_min * scale),
        percent_ftp_max=round(zone.percent_ftp_max * scale),
        reasoning=f"{zone.reasoning} ({note.replace('effort', 'watts')})" if note else zone.reasoning,
    )


def _clamp_bpm(value: float) -> int:
    return int(min(config.MAX_HR_BPM, max(config.MIN_HR_BPM, round(value))))
