"""
Geographic and geometric utility functions.
Handles great-circle distances, nearest-point search and checkpoint-based
track segmentation.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from utils.records import Segment, TrackPoint
import config


@dataclass(frozen=True)
class RouteSegment:
    points: Tuple[TrackPoint, ...]
    segment_index: int
    checkpoint_name: Optional[str] = None
    checkpoint_order: Optional[int] = None


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Uses the Haversine formula with a 3959 mile Earth radius. Inputs are not
    range-checked; out-of-range coordinates are the caller's responsibility.

    Args:
        lat1, lon1: Latitude and longitude of first point (degrees)
        lat2, lon2: Latitude and longitude of second point (degrees)

    Returns:
        Distance in miles

    Example:
        # Distance from NYC to London
        haversine_miles(40.7128, -74.0060, 51.5074, -0.1278) -> ~3,460 mi
    """
    lat1_rad, lat2_rad = math.radians(lat1), math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) *
         math.sin(delta_lon / 2) ** 2)
    # clamp guards sqrt(1 - a) against rounding just above 1 for antipodes
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return config.EARTH_RADIUS_MILES * c


def find_closest_track_point(
        target_lat: float,
        target_lon: float,
        points: Sequence,
        search_start_index: int = 0,
        early_exit_m: float = config.CLOSEST_POINT_EARLY_EXIT_M,
) -> int:
    """
    Find the index of the track point nearest to a target coordinate.

    Scans forward from `search_start_index`. Once the best match is within
    `early_exit_m` meters and a candidate is more than twice as far as that
    best, the scan stops: the track is assumed to be moving away. On
    self-intersecting courses (out-and-back, loops) this can miss a closer
    point further down the track.

    Args:
        target_lat, target_lon: Coordinate to match (degrees)
        points: Objects with `lat` and `lng` attributes
        search_start_index: First index to consider

    Returns:
        Index of the closest point; the start index, clamped to the track, if nothing was scanned
    """
    start = min(max(0, search_start_index), max(0, len(points) - 1))
    closest_index = start
    min_distance_m = math.inf

    for i in range(start, len(points)):
        point = points[i]
        distance_m = haversine_miles(target_lat, target_lon, point.lat, point.lng) * config.METERS_PER_MILE

        if distance_m < min_distance_m:
            min_distance_m = distance_m
            closest_index = i

        if min_distance_m < early_exit_m and distance_m > min_distance_m * config.CLOSEST_POINT_REGRESSION_RATIO:
            break

    return closest_index


def split_track_by_checkpoints(
        points: Sequence[TrackPoint],
        segments: Sequence[Segment]
) -> List[RouteSegment]:
    """
    Split a track into contiguous pieces ending at each GPS-located checkpoint.

    Checkpoints are matched in declared order, each search starting at the
    previous match so a later checkpoint cannot land before an earlier one.
    Adjacent pieces share their boundary point. Segments without coordinates
    are ignored here (callers fall back to cumulative distance for them).

    Returns:
        List of RouteSegment; a single piece covering the whole track when no
        checkpoint has coordinates, an empty list for an empty track.

    Example:
        Track of 100 points, checkpoints matched at 30 and 70:
        [points[0:31], points[30:71], points[70:100]]
    """
    if not points:
        return []

    checkpoints = sorted((s for s in segments if s.has_coordinates), key=lambda s: s.order)
    if not checkpoints:
        return [RouteSegment(points=tuple(points), segment_index=0)]

    matches = []
    search_from = 0
    for checkpoint in checkpoints:
        index = find_closest_track_point(checkpoint.latitude, checkpoint.longitude, points, search_from)
        matches.append((index, checkpoint))
        search_from = index

    matches.sort(key=lambda m: m[0])

    route_segments = []
    current_start = 0
    for end_index, checkpoint in matches:
        # a checkpoint on the same point as its predecessor adds no piece
        if end_index > current_start:
            route_segments.append(RouteSegment(
                points=tuple(points[current_start:end_index + 1]),
                segment_index=len(route_segments),
                checkpoint_name=checkpoint.checkpoint_name,
                checkpoint_order=checkpoint.order,
            ))
        current_start = end_index

    if current_start < len(points) - 1:
        route_segments.append(RouteSegment(
            points=tuple(points[current_start:]),
            segment_index=len(route_segments),
        ))

    return route_segments


def sample_track_points(
        points: Sequence[TrackPoint],
        interval_distance: float = config.DEFAULT_SAMPLE_INTERVAL_MILES
) -> List[TrackPoint]:
    """
    Decimate a dense track to roughly one point per `interval_distance` miles.

    The first and last points are always kept. Deterministic: the same input
    always yields the same output.
    """
    if len(points) < 2:
        return list(points)

    sampled = [points[0]]
    accumulated = 0.0

    for previous, current in zip(points, points[1:]):
        accumulated += haversine_miles(previous.lat, previous.lng, current.lat, current.lng)
        if accumulated >= interval_distance:
            sampled.append(current)
            accumulated = 0.0

    if sampled[-1] is not points[-1]:
        sampled.append(points[-1])

    return sampled
