"""
Race time summary.
Splits the planned race into running time and aid-station time and projects
the clock time at every checkpoint.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from utils.records import Segment
import config


@dataclass(frozen=True)
class CheckpointStop:
    checkpoint_name: str
    stop_minutes: float
    support_crew: bool


@dataclass(frozen=True)
class RaceTimeSummary:
    total_running_minutes: float
    total_checkpoint_minutes: float
    total_race_minutes: float
    total_distance: float
    checkpoint_breakdown: List[CheckpointStop] = field(default_factory=list)


@dataclass(frozen=True)
class CheckpointETA:
    checkpoint_name: str
    cumulative_distance: float
    arrival: datetime
    departure: datetime
    elapsed_minutes: float  # at arrival


def calculate_race_time_summary(
        segments: Sequence[Segment],
        segment_times: Sequence[float]
) -> RaceTimeSummary:
    """
    Running time, aid-station time and total time for the race.

    Args:
        segments: Segments in course order
        segment_times: Running minutes per segment
    """
    running = 0.0
    stopped = 0.0
    breakdown = []

    for segment, minutes in zip(segments, segment_times):
        running += max(0.0, minutes)
        stop = max(0.0, segment.checkpoint_time_minutes)
        stopped += stop
        if stop > 0:
            breakdown.append(CheckpointStop(segment.checkpoint_name, stop, segment.support_crew))

    return RaceTimeSummary(
        total_running_minutes=running,
        total_checkpoint_minutes=stopped,
        total_race_minutes=running + stopped,
        total_distance=sum(max(0.0, s.segment_distance) for s in segments),
        checkpoint_breakdown=breakdown,
    )


def suggest_checkpoint_time(segment: Segment) -> float:
    """
    Suggested aid-station stop (minutes) when the plan does not set one.

    Quick stop by default, longer with crew, more nutrition to collect or
    after a long segment; never more than 15 minutes.
    """
    if segment.checkpoint_time_minutes > 0:
        return segment.checkpoint_time_minutes

    minutes = config.CREW_STOP_MINUTES if segment.support_crew else config.QUICK_STOP_MINUTES

    if len(segment.nutrition_items) > 3:
        minutes += config.NUTRITION_STOP_EXTRA_MINUTES
    if segment.segment_distance > config.LONG_SEGMENT_MILES:
        minutes += config.LONG_SEGMENT_EXTRA_MINUTES

    return min(minutes, config.MAX_CHECKPOINT_MINUTES)


def calculate_checkpoint_etas(
        start_time: Optional[datetime],
        segments: Sequence[Segment],
        segment_times: Sequence[float]
) -> List[CheckpointETA]:
    """Clock time of arrival and departure at every checkpoint."""
    if start_time is None:
        return []

    etas = []
    elapsed = 0.0
    for segment, minutes in zip(segments, segment_times):
        elapsed += max(0.0, minutes)
        arrival = start_time + timedelta(minutes=elapsed)
        stop = max(0.0, segment.checkpoint_time_minutes)
        etas.append(CheckpointETA(
            checkpoint_name=segment.checkpoint_name,
            cumulative_distance=segment.cumulative_distance,
            arrival=arrival,
            departure=arrival + timedelta(minutes=stop),
            elapsed_minutes=elapsed,
        ))
        elapsed += stop

    return etas
