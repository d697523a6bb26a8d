"""
FIT activity parsing.
Reads the `record` messages of a device recording into ActivityRecords.
"""

import io
import math
from typing import BinaryIO, List, Optional, Sequence, Union

import fitparse
from fitparse.utils import FitParseError
from loguru import logger

from utils.errors import MalformedInputError
from utils.geo import haversine_miles
from utils.records import ActivityRecord
import config


def parse_fit(source: Union[str, bytes, BinaryIO]) -> List[ActivityRecord]:
    """
    Parse a FIT file into activity records ordered by distance.

    Distances are converted to miles and speed to pace (min/mile). When the
    device did not log distance it is accumulated from GPS positions; when it
    did not log speed, pace comes from time and distance deltas. Records
    where the runner was stopped are dropped.

    Args:
        source: Path, raw bytes or binary file object

    Returns:
        Cleaned list of ActivityRecord

    Raises:
        MalformedInputError: If the file cannot be decoded or has no usable records
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)

    try:
        fitfile = fitparse.FitFile(source)
        messages = [msg.get_values() for msg in fitfile.get_messages("record")]
    except (FitParseError, OSError) as e:
        raise MalformedInputError(f"Failed to parse FIT file: {e}") from e

    records = []
    cumulative_miles = 0.0
    previous = None

    for values in messages:
        lat = _degrees(values.get("position_lat"))
        lng = _degrees(values.get("position_long"))

        distance_m = values.get("distance")
        if _finite(distance_m):
            distance = distance_m / config.METERS_PER_MILE
        elif previous is not None and lat is not None and lng is not None and previous["lat"] is not None:
            distance = cumulative_miles + haversine_miles(previous["lat"], previous["lng"], lat, lng)
        elif previous is None and lat is not None:
            distance = 0.0
        else:
            continue
        cumulative_miles = distance

        pace = _pace_from_speed(_first(values, "enhanced_speed", "speed"))
        if pace is None and previous is not None:
            pace = _pace_from_deltas(previous, values.get("timestamp"), distance)

        elevation = _first(values, "enhanced_altitude", "altitude")
        current = {"lat": lat, "lng": lng, "distance": distance, "timestamp": values.get("timestamp")}
        previous = current

        if pace is None:
            continue

        records.append(ActivityRecord(
            distance=distance,
            elevation=elevation if _finite(elevation) else 0.0,
            pace=pace,
            heart_rate=values.get("heart_rate"),
            power=values.get("power"),
            lat=lat,
            lng=lng,
        ))

    records = clean_activity_records(records)
    if not records:
        raise MalformedInputError("No usable records found in FIT file")

    logger.debug(f"Parsed {len(records)} FIT records over {records[-1].distance:.2f} mi")
    return records


def _first(values: dict, *keys):
    for key in keys:
        value = values.get(key)
        if value is not None:
            return value
    return None


def _degrees(semicircles) -> Optional[float]:
    if not _finite(semicircles):
        return None
    return semicircles * config.SEMICIRCLES_TO_DEGREES


def _pace_from_speed(speed_mps) -> Optional[float]:
    if not _finite(speed_mps) or speed_mps <= 0:
        return None
    pace = config.METERS_PER_MILE / speed_mps / config.SECONDS_PER_MINUTE
    return pace if pace < config.MAX_VALID_PACE else None


def _pace_from_deltas(previous: dict, timestamp, distance: float) -> Optional[float]:
    if timestamp is None or previous["timestamp"] is None:
        return None
    minutes = (timestamp - previous["timestamp"]).total_seconds() / config.SECONDS_PER_MINUTE
    step = distance - previous["distance"]
    if minutes <= 0 or step <= 0:
        return None
    pace = minutes / step
    return pace if pace < config.MAX_VALID_PACE else None


def _finite(value) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


def clean_activity_records(records: Sequence[ActivityRecord]) -> List[ActivityRecord]:
    """
    Drop records the engine cannot use.

    Removes records with non-finite distance, elevation or pace and records
    whose distance goes backwards. Non-finite or non-positive heart rate and
    power become None, never NaN.
    """
    cleaned = []
    dropped = 0
    last_distance = -math.inf

    for record in records:
        if not (_finite(record.distance) and _finite(record.elevation) and _finite(record.pace)):
            dropped += 1
            continue
        if record.distance < last_distance:
            dropped += 1
            continue

        heart_rate = float(record.heart_rate) if _finite(record.heart_rate) and record.heart_rate > 0 else None
        power = float(record.power) if _finite(record.power) and record.power > 0 else None
        lat = record.lat if _finite(record.lat) else None
        lng = record.lng if _finite(record.lng) else None

        cleaned.append(ActivityRecord(
            distance=float(record.distance),
            elevation=float(record.elevation),
            pace=float(record.pace),
            heart_rate=heart_rate,
            power=power,
            lat=lat if lng is not None else None,
            lng=lng if lat is not None else None,
        ))
        last_distance = record.distance

    if dropped:
        logger.debug(f"Dropped {dropped} unusable activity records")

    return cleaned
