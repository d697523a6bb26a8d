"""
Heart rate and power zones.
Zones are derived from a historical activity (or athlete overrides) and
mapped onto segments by gradient, drifting with distance covered.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from utils.records import ActivityRecord, AthleteSettings
import config


@dataclass(frozen=True)
class ZoneBand:
    name: str
    low: int
    high: int


@dataclass(frozen=True)
class HRZoneSuggestion:
    min_bpm: int
    max_bpm: int
    zone_name: str
    reasoning: str


@dataclass(frozen=True)
class PowerZoneSuggestion:
    min_watts: int
    max_watts: int
    zone_name: str
    percent_ftp_min: int
    percent_ftp_max: int
    reasoning: str


# Gradient upper bounds (%) and the zone index picked below each bound.
# The last entry covers everything steeper.
_GRADIENT_RULES = [
    (-5.0, 0, 0, "Downhill recovery - keep effort low"),
    (-2.0, 1, 0, "Gentle downhill - easy aerobic effort"),
    (2.0, 1, 1, "Flat terrain - steady aerobic effort"),
    (5.0, 2, 2, "Moderate climb - tempo effort"),
    (10.0, 3, 2, "Steep climb - sustained effort, hiking OK"),
    (float("inf"), 3, 2, "Very steep climb - power hike recommended"),
]


def calculate_hr_zones(
        activity: Sequence[ActivityRecord],
        settings: Optional[AthleteSettings] = None
) -> Optional[Tuple[ZoneBand, ...]]:
    """
    Five heart rate zones using the heart rate reserve (Karvonen) method.

    Target HR = resting + (max - resting) x intensity. Max and resting HR
    come from `settings` when given, otherwise from the activity's extremes.

    Returns:
        Tuple of 5 ZoneBands, or None with fewer than MIN_HR_SAMPLES readings
        or a non-positive reserve
    """
    heart_rates = np.array([r.heart_rate for r in activity if r.heart_rate], dtype=float)

    if len(heart_rates) < config.MIN_HR_SAMPLES:
        logger.debug(f"Only {len(heart_rates)} HR readings, skipping HR zones")
        return None

    max_hr = settings.max_hr if settings and settings.max_hr else float(heart_rates.max())
    resting_hr = settings.resting_hr if settings and settings.resting_hr else float(heart_rates.min())
    reserve = max_hr - resting_hr

    if reserve <= 0:
        logger.warning(f"Invalid HR reserve (max {max_hr}, resting {resting_hr}); no HR zones")
        return None

    fractions = config.HR_ZONE_FRACTIONS
    zones = []
    for i in range(5):
        low = round(resting_hr + reserve * fractions[i])
        high = round(max_hr) if i == 4 else round(resting_hr + reserve * fractions[i + 1])
        zones.append(ZoneBand(name=f"Zone {i + 1}", low=low, high=high))

    return tuple(zones)


def calculate_power_zones(
        activity: Sequence[ActivityRecord],
        settings: Optional[AthleteSettings] = None
) -> Optional[Tuple[Tuple[ZoneBand, float, float], ...]]:
    """
    Five power zones as fractions of FTP.

    FTP comes from `settings` when known, otherwise it is estimated from the
    activity's average power (an ultra is typically ridden/run at ~69% FTP).

    Returns:
        Tuple of (ZoneBand, low_fraction, high_fraction) per zone, or None with
        fewer than MIN_POWER_SAMPLES readings
    """
    powers = np.array([r.power for r in activity if r.power], dtype=float)

    if len(powers) < config.MIN_POWER_SAMPLES:
        logger.debug(f"Only {len(powers)} power readings, skipping power zones")
        return None

    if settings and settings.ftp:
        ftp = float(settings.ftp)
    else:
        ftp = float(round(powers.mean() * config.FTP_FROM_AVG_POWER))
        logger.debug(f"Estimated FTP {ftp:.0f} W from average power {powers.mean():.1f} W")

    if not np.isfinite(ftp) or ftp <= 0:
        logger.warning("Invalid FTP, cannot calculate power zones")
        return None

    return tuple(
        (ZoneBand(name=name, low=round(ftp * low), high=round(ftp * high)), low, high)
        for name, low, high in config.POWER_ZONE_FRACTIONS
    )


def _gradient_rule(gradient: float):
    for upper, hr_index, power_index, reasoning in _GRADIENT_RULES:
        if gradient < upper:
            return hr_index, power_index, reasoning
    return _GRADIENT_RULES[-1][1:]


def suggest_hr_zone(
        gradient: float,
        cumulative_distance: float,
        zones: Optional[Tuple[ZoneBand, ...]]
) -> Optional[HRZoneSuggestion]:
    """
    Pick an HR zone for a segment by its gradient.

    Targets drift up by 1 bpm every 20 miles (at most 5 bpm) as cardiac
    drift sets in.
    """
    if not zones:
        return None

    hr_index, _, reasoning = _gradient_rule(gradient)
    zone = zones[hr_index]
    boost = min(config.MAX_HR_FATIGUE_BOOST, int(cumulative_distance // config.HR_FATIGUE_BOOST_MILES))

    return HRZoneSuggestion(
        min_bpm=zone.low + boost,
        max_bpm=zone.high + boost,
        zone_name=zone.name,
        reasoning=reasoning,
    )


def suggest_power_zone(
        gradient: float,
        cumulative_distance: float,
        zones: Optional[Tuple[Tuple[ZoneBand, float, float], ...]]
) -> Optional[PowerZoneSuggestion]:
    """
    Pick a power zone for a segment by its gradient.

    Targets are reduced by distance / 200 (at most 15%) for accumulated fatigue.
    """
    if not zones:
        return None

    _, power_index, reasoning = _gradient_rule(gradient)
    zone, low_fraction, high_fraction = zones[power_index]
    keep = 1.0 - min(config.MAX_POWER_FATIGUE_REDUCTION, cumulative_distance / config.POWER_FATIGUE_MILES)

    return PowerZoneSuggestion(
        min_watts=round(zone.low * keep),
        max_watts=round(zone.high * keep),
        zone_name=zone.name,
        percent_ftp_min=round(low_fraction * 100 * keep),
        percent_ftp_max=round(high_fraction * 100 * keep),
        reasoning=reasoning.replace("effort", "power"),
    )
