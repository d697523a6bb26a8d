"""
Course-specific analysis functions.
Handles distance-based segmentation by checkpoints and gradient distribution.
"""

from typing import List, Sequence, Tuple

import numpy as np

from utils.records import Segment, TrackPoint
import config


def legs_from_cumulative_distance(
        points: Sequence[TrackPoint],
        segments: Sequence[Segment]
) -> List[Tuple[int, int]]:
    """
    Divide a course into index ranges using checkpoint cumulative distances.

    This is the fallback for checkpoints without GPS coordinates.

    Args:
        points: Track points ordered by distance
        segments: Segments in course order

    Returns:
        List of (start_idx, end_idx) tuples, one per segment

    Example:
        For a 50mi race with checkpoints at 10, 25 and 50mi:
        Returns Start->CP1, CP1->CP2, CP2->Finish
    """
    if not points:
        return []

    distances = np.array([p.distance for p in points], dtype=float)
    last_index = len(points) - 1
    legs = []
    start_idx = 0

    for segment in segments:
        end_idx = int(np.searchsorted(distances, segment.cumulative_distance, side="left"))
        end_idx = min(max(end_idx, start_idx), last_index)

        # prefer the nearer neighbour when the checkpoint falls between two points
        if 0 < end_idx and end_idx > start_idx:
            before = distances[end_idx - 1]
            if abs(segment.cumulative_distance - before) < abs(distances[end_idx] - segment.cumulative_distance):
                end_idx -= 1

        legs.append((start_idx, end_idx))
        start_idx = end_idx

    return legs


def distance_by_gradient_bucket(
        points: Sequence[TrackPoint],
        edges: Sequence[float] = config.GRADIENT_EDGES
) -> np.ndarray:
    """
    Analyze how much distance is covered in each gradient bucket.

    Args:
        points: Track points ordered by distance
        edges: Bucket edges (% grade); len(edges) + 1 buckets

    Returns:
        Array where each element is miles covered in that bucket

    Example:
        With the default edges, a 10mi course that is half flat and half a
        4% climb returns 5.0 in the flat bucket and 5.0 in the +3..+6% bucket.
    """
    miles_by_bucket = np.zeros(len(edges) + 1)
    if len(points) < 2:
        return miles_by_bucket

    distances = np.array([p.distance for p in points], dtype=float)
    elevations = np.array([p.elevation for p in points], dtype=float)

    distance_increments = np.diff(distances)
    elevation_increments = np.diff(elevations)

    valid = distance_increments > 0
    grades = np.zeros_like(distance_increments)
    grades[valid] = elevation_increments[valid] / (distance_increments[valid] * config.METERS_PER_MILE) * 100.0

    bucket_indices = np.digitize(grades, edges, right=False)
    np.add.at(miles_by_bucket, bucket_indices[valid], distance_increments[valid])

    return miles_by_bucket


def create_uniform_segments(
        points: Sequence[TrackPoint],
        interval_miles: float = config.DEFAULT_CHECKPOINT_INTERVAL_MILES
) -> List[Segment]:
    """
    Create evenly spaced checkpoint segments along a track.

    Each checkpoint carries the coordinates of the track point nearest its
    cumulative distance, so it can be matched by GPS later. The last
    checkpoint is always the finish.

    Example:
        A 25mi track with a 10mi interval -> checkpoints at 10, 20 and 25mi
    """
    if not points or interval_miles <= 0:
        return []

    total = points[-1].distance
    cumulative = []
    current = interval_miles
    while current < total - config.MIN_SPLIT_DISTANCE:
        cumulative.append(current)
        current += interval_miles
    cumulative.append(total)
    cumulative = [round(c, 3) for c in cumulative]

    distances = np.array([p.distance for p in points], dtype=float)
    segments = []
    previous = 0.0
    for order, distance in enumerate(cumulative, start=1):
        index = min(int(np.searchsorted(distances, distance)), len(points) - 1)
        if index > 0 and distance - distances[index - 1] < distances[index] - distance:
            index -= 1
        is_finish = order == len(cumulative)
        segments.append(Segment(
            order=order,
            checkpoint_name="Finish" if is_finish else f"Checkpoint {order}",
            segment_distance=round(distance - previous, 3),
            cumulative_distance=distance,
            latitude=points[index].lat,
            longitude=points[index].lng,
        ))
        previous = distance

    return segments
