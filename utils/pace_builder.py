"""
Build a personalized pace profile from a historical activity.
Groups the activity's point-to-point intervals by gradient and records the
pace, heart rate and power observed on each kind of terrain.
"""
# packages
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
from loguru import logger

# local imports
from utils.records import ActivityRecord
import config


@dataclass(frozen=True)
class GradientBucket:
    index: int
    lower: float  # % grade, -inf for the first bucket
    upper: float  # % grade, +inf for the last bucket
    representative_gradient: float
    sample_count: int
    avg_pace: Optional[float] = None  # min/mile
    avg_heart_rate: Optional[float] = None
    avg_power: Optional[float] = None

    @property
    def populated(self) -> bool:
        return self.sample_count > 0 and self.avg_pace is not None

    @property
    def low_confidence(self) -> bool:
        return self.sample_count < config.MIN_BUCKET_SAMPLES

    @property
    def label(self) -> str:
        if math.isinf(self.lower):
            return f"<={self.upper:+.0f}%"
        if math.isinf(self.upper):
            return f">={self.lower:+.0f}%"
        return f"{self.lower:+.0f}..{self.upper:+.0f}%"


def build_gradient_profile(
        activity: Sequence[ActivityRecord],
        edges: Sequence[float] = config.GRADIENT_EDGES,
        centers: Sequence[float] = config.GRADIENT_BUCKET_CENTERS
) -> List[GradientBucket]:
    """
    Build the gradient-bucketed pace profile of a past effort.

    Each interval between consecutive records gets a gradient
    (elevation delta / horizontal delta, in %) and the pace, HR and power of
    its end record. Intervals without forward movement or with an implausible
    pace (stopped, GPS glitch) are skipped.

    Args:
        activity: Records ordered by distance
        edges: Bucket edges (% grade); len(edges) + 1 buckets
        centers: Representative gradient for buckets without samples

    Returns:
        One GradientBucket per bucket, sorted by representative gradient.
        Empty buckets have sample_count 0 and no pace.

    Example:
        A flat 10 mile run at 9:00/mi gives a flat bucket with avg_pace 9.0
        and every other bucket empty.
    """
    intervals = _activity_intervals(activity)

    if intervals.empty:
        logger.debug("No usable intervals in activity; gradient profile is empty")
        grouped = pd.DataFrame()
    else:
        intervals["bucket"] = np.digitize(intervals["gradient"].to_numpy(), edges, right=False)
        grouped = intervals.groupby("bucket").agg(
            samples=("pace", "size"),
            avg_pace=("pace", "mean"),
            avg_heart_rate=("heart_rate", "mean"),
            avg_power=("power", "mean"),
            gradient=("gradient", "mean"),
        )

    bounds = [-math.inf] + list(edges) + [math.inf]
    buckets = []
    for i in range(len(edges) + 1):
        if i in grouped.index:
            row = grouped.loc[i]
            buckets.append(GradientBucket(
                index=i,
                lower=bounds[i],
                upper=bounds[i + 1],
                representative_gradient=float(row["gradient"]),
                sample_count=int(row["samples"]),
                avg_pace=float(row["avg_pace"]),
                avg_heart_rate=_optional(row["avg_heart_rate"]),
                avg_power=_optional(row["avg_power"]),
            ))
        else:
            buckets.append(GradientBucket(
                index=i,
                lower=bounds[i],
                upper=bounds[i + 1],
                representative_gradient=float(centers[i]),
                sample_count=0,
            ))

    for bucket in buckets:
        if bucket.populated:
            logger.debug(
                f"Bucket {bucket.label}: {bucket.sample_count} samples, "
                f"{bucket.avg_pace:.2f} min/mi at {bucket.representative_gradient:+.1f}%"
            )

    return sorted(buckets, key=lambda b: b.representative_gradient)


def _activity_intervals(activity: Sequence[ActivityRecord]) -> pd.DataFrame:
    """Point-to-point intervals with gradient, pace, HR and power."""
    if len(activity) < 2:
        return pd.DataFrame()

    distances = np.array([r.distance for r in activity], dtype=float)
    elevations = np.array([r.elevation for r in activity], dtype=float)
    paces = np.array([r.pace for r in activity], dtype=float)
    heart_rates = np.array([r.heart_rate for r in activity], dtype=float)
    powers = np.array([r.power for r in activity], dtype=float)

    distance_deltas = np.diff(distances)
    elevation_deltas = np.diff(elevations)

    with np.errstate(divide="ignore", invalid="ignore"):
        gradients = elevation_deltas / (distance_deltas * config.METERS_PER_MILE) * 100.0

    df = pd.DataFrame({
        "gradient": gradients,
        "pace": paces[1:],
        "heart_rate": heart_rates[1:],
        "power": powers[1:],
    })

    valid = (
        (distance_deltas > 0)
        & np.isfinite(gradients)
        & np.isfinite(paces[1:])
        & (paces[1:] > 0)
        & (paces[1:] < config.MAX_VALID_PACE)
    )
    df = df[valid].copy()

    # zero HR/power means the sensor dropped out
    df.loc[df["heart_rate"] <= 0, "heart_rate"] = np.nan
    df.loc[df["power"] <= 0, "power"] = np.nan

    return df


def _optional(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def find_flat_bucket(profile: Sequence[GradientBucket]) -> Optional[GradientBucket]:
    """The bucket whose range contains 0% grade."""
    for bucket in profile:
        if bucket.lower <= 0.0 < bucket.upper:
            return bucket
    return None


def estimate_flat_pace(
        profile: Sequence[GradientBucket],
        default: float = config.DEFAULT_FLAT_PACE
) -> float:
    """Observed flat-ground pace, or `default` when the flat bucket is empty."""
    flat = find_flat_bucket(profile)
    if flat is not None and flat.populated:
        return flat.avg_pace
    logger.debug(f"No flat-ground samples; using default flat pace {default:.2f}")
    return default


def estimate_fatigue_factor(activity: Sequence[ActivityRecord]) -> float:
    """
    Estimate how much a runner slowed down over a past effort.

    Splits the activity into 10-mile chunks and compares the average pace of
    the first and last chunk.

    Returns:
        Slowdown in % per 10 miles, clamped to 0..8. Falls back to 2.0 with
        fewer than 50 records or fewer than 2 usable chunks.

    Example:
        First 10 miles at 10:00/mi, miles 30-40 at 11:00/mi (4 chunks):
        (10% slower) / 3 chunks -> ~3.3% per 10 miles
    """
    if len(activity) < config.MIN_FATIGUE_RECORDS:
        return config.DEFAULT_FATIGUE_FACTOR

    chunks = []
    current = []
    chunk_start = activity[0].distance

    for record in activity:
        if record.distance >= chunk_start + config.FATIGUE_CHUNK_MILES:
            if len(current) > 5:
                chunks.append(current)
            current = []
            chunk_start = record.distance
        current.append(record)

    if len(current) > 5:
        chunks.append(current)

    chunk_paces = [_average_valid_pace(chunk) for chunk in chunks]
    chunk_paces = [p for p in chunk_paces if p is not None]

    if len(chunk_paces) < 2:
        return config.DEFAULT_FATIGUE_FACTOR

    first_pace, last_pace = chunk_paces[0], chunk_paces[-1]
    percent_change = (last_pace - first_pace) / first_pace * 100.0
    per_ten_miles = percent_change / (len(chunk_paces) - 1)

    factor = float(np.clip(per_ten_miles, 0.0, config.MAX_FATIGUE_FACTOR))
    logger.debug(f"Estimated fatigue factor {factor:.2f}% per 10 mi from {len(chunk_paces)} chunks")
    return factor


def _average_valid_pace(records: Sequence[ActivityRecord]) -> Optional[float]:
    paces = [r.pace for r in records if 0 < r.pace < config.MAX_VALID_PACE]
    if not paces:
        return None
    return float(np.mean(paces))


def average_pace_between(
        activity: Sequence[ActivityRecord],
        start_distance: float,
        end_distance: float,
        min_records: int = config.MIN_HISTORICAL_RECORDS
) -> Optional[float]:
    """Average pace the activity held over the same stretch of mileage."""
    matching = [r for r in activity if start_distance <= r.distance <= end_distance]
    if len(matching) < min_records:
        return None
    return _average_valid_pace(matching)
