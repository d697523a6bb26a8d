"""
Data persistence functions for loading and saving race plans.

A race plan file is JSON:

    {
      "start_time": "2025-06-14T05:00:00",
      "athlete": {"body_weight_kg": 70, "fitness_level": "trained", "max_hr": 185},
      "segments": [
        {"order": 1, "checkpoint_name": "Aid 1", "cumulative_distance": 12.4,
         "latitude": 45.1, "longitude": 6.2, "checkpoint_time_minutes": 3,
         "nutrition": [{"product_name": "Gel", "carbs_per_serving": 25, "quantity": 2}]}
      ]
    }

`segment_distance` may be omitted; it is derived from consecutive
cumulative distances.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Union

from loguru import logger

from utils.errors import MalformedInputError
from utils.records import (
    AthleteMetrics, AthleteSettings, FitnessLevel, NutritionItem, Segment, ensure_segment_order,
)


@dataclass(frozen=True)
class RacePlanFile:
    segments: List[Segment]
    athlete_metrics: Optional[AthleteMetrics] = None
    athlete_settings: AthleteSettings = field(default_factory=AthleteSettings)
    start_time: Optional[datetime] = None


def load_race_plan(path: Union[str, Path]) -> RacePlanFile:
    """
    Load segments and athlete data from a JSON race plan.

    Raises:
        MalformedInputError: unreadable JSON or a segment missing required fields
        SegmentOrderError: cumulative distances decrease along the order
    """
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise MalformedInputError(f"Could not read race plan {path}: {e}") from e

    segments = _parse_segments(data.get("segments", []))
    athlete = data.get("athlete") or {}

    metrics = None
    if athlete.get("body_weight_kg") is not None:
        metrics = AthleteMetrics(
            body_weight_kg=float(athlete["body_weight_kg"]),
            gear_weight_kg=float(athlete.get("gear_weight_kg", 0.0)),
            fitness_level=FitnessLevel(athlete.get("fitness_level", FitnessLevel.TRAINED.value)),
        )

    settings = AthleteSettings(
        max_hr=athlete.get("max_hr"),
        resting_hr=athlete.get("resting_hr"),
        ftp=athlete.get("ftp"),
    )

    start_time = datetime.fromisoformat(data["start_time"]) if data.get("start_time") else None

    logger.debug(f"Loaded {len(segments)} segments from {path}")
    return RacePlanFile(segments, metrics, settings, start_time)


def _parse_segments(raw_segments: Sequence[dict]) -> List[Segment]:
    parsed = []
    for position, raw in enumerate(raw_segments):
        try:
            parsed.append((
                int(raw.get("order", position + 1)),
                str(raw["checkpoint_name"]),
                float(raw["cumulative_distance"]),
                raw,
            ))
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedInputError(f"Segment {position + 1} is missing a required field: {e}") from e

    parsed.sort(key=lambda item: item[0])

    segments = []
    previous_cumulative = 0.0
    for order, name, cumulative, raw in parsed:
        segment_distance = raw.get("segment_distance")
        if segment_distance is None:
            segment_distance = cumulative - previous_cumulative
        previous_cumulative = cumulative

        segments.append(Segment(
            order=order,
            checkpoint_name=name,
            segment_distance=float(segment_distance),
            cumulative_distance=cumulative,
            latitude=raw.get("latitude"),
            longitude=raw.get("longitude"),
            custom_pace=raw.get("custom_pace"),
            terrain_factor=raw.get("terrain_factor"),
            nutrition_items=tuple(
                NutritionItem(
                    product_name=item.get("product_name", ""),
                    carbs_per_serving=float(item.get("carbs_per_serving", 0.0)),
                    sodium_per_serving=float(item.get("sodium_per_serving", 0.0)),
                    water_per_serving=float(item.get("water_per_serving", 0.0)),
                    quantity=float(item.get("quantity", 1.0)),
                )
                for item in raw.get("nutrition", [])
            ),
            checkpoint_time_minutes=float(raw.get("checkpoint_time_minutes", 0.0)),
            support_crew=bool(raw.get("support_crew", False)),
        ))

    return ensure_segment_order(segments)


def save_race_plan(
        path: Union[str, Path],
        segments: Sequence[Segment],
        athlete_metrics: Optional[AthleteMetrics] = None,
        athlete_settings: Optional[AthleteSettings] = None,
        start_time: Optional[datetime] = None
):
    """Persist a race plan as JSON (the format load_race_plan reads)."""
    athlete = {}
    if athlete_metrics is not None:
        athlete.update(
            body_weight_kg=athlete_metrics.body_weight_kg,
            gear_weight_kg=athlete_metrics.gear_weight_kg,
            fitness_level=athlete_metrics.fitness_level.value,
        )
    if athlete_settings is not None:
        athlete.update({k: v for k, v in (("max_hr", athlete_settings.max_hr),
                                          ("resting_hr", athlete_settings.resting_hr),
                                          ("ftp", athlete_settings.ftp)) if v is not None})

    data = {
        "start_time": start_time.isoformat() if start_time else None,
        "athlete": athlete,
        "segments": [_segment_to_dict(s) for s in ensure_segment_order(segments)],
    }

    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)


def _segment_to_dict(segment: Segment) -> dict:
    raw = {
        "order": segment.order,
        "checkpoint_name": segment.checkpoint_name,
        "segment_distance": segment.segment_distance,
        "cumulative_distance": segment.cumulative_distance,
        "checkpoint_time_minutes": segment.checkpoint_time_minutes,
        "support_crew": segment.support_crew,
        "nutrition": [
            {
                "product_name": item.product_name,
                "carbs_per_serving": item.carbs_per_serving,
                "sodium_per_serving": item.sodium_per_serving,
                "water_per_serving": item.water_per_serving,
                "quantity": item.quantity,
            }
            for item in segment.nutrition_items
        ],
    }
    for key in ("latitude", "longitude", "custom_pace", "terrain_factor"):
        value = getattr(segment, key)
        if value is not None:
            raw[key] = value
    return raw
