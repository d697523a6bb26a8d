"""
GPX file parsing and basic track processing.
Handles reading GPX files and converting them to clean TrackPoint lists.
"""

import io
import math
from typing import List, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import gpxpy
from loguru import logger

from utils.errors import MalformedInputError
from utils.geo import haversine_miles
from utils.records import TrackPoint


def parse_gpx(source: Union[bytes, str]) -> List[TrackPoint]:
    """
    Parse a GPX document into track points with cumulative distance.

    Args:
        source: Raw GPX bytes or text

    Returns:
        TrackPoints ordered by distance (miles); missing elevations are
        interpolated from their neighbours, or 0 when the track has none

    Raises:
        MalformedInputError: If the GPX cannot be parsed or contains no points
    """
    gpx_data = _parse_gpx_data(source)
    points = _extract_gps_points(gpx_data)
    df = _create_base_dataframe(points)
    df = _interpolate_elevation(df)

    track = [
        TrackPoint(distance=float(row.dist_mi), elevation=float(row.ele_m), lat=float(row.lat), lng=float(row.lon))
        for row in df.itertuples(index=False)
    ]
    return clean_track_points(track)


def _parse_gpx_data(source: Union[bytes, str]):
    """Parse GPX bytes into gpxpy object with error handling."""
    try:
        gpx_content = source.decode('utf-8', errors='ignore') if isinstance(source, bytes) else source
        gpx_data = gpxpy.parse(io.StringIO(gpx_content))
    except Exception as e:
        raise MalformedInputError(f"Failed to parse GPX file: {e}") from e

    if not gpx_data.tracks and not gpx_data.routes:
        raise MalformedInputError("No tracks found in GPX file")

    return gpx_data


def _extract_gps_points(gpx_data) -> List[Tuple[float, float, float, float]]:
    """
    Extract GPS coordinates and calculate cumulative distances from GPX data.

    Falls back to route points when the file has no track.

    Returns:
        List of tuples: (latitude, longitude, elevation_m, cumulative_distance_mi)
    """
    points = []
    cumulative_distance = 0.0
    last_point = None

    if gpx_data.tracks:
        raw_points = (p for track in gpx_data.tracks for segment in track.segments for p in segment.points)
    else:
        raw_points = (p for route in gpx_data.routes for p in route.points)

    for point in raw_points:
        if not (_finite(point.latitude) and _finite(point.longitude)):
            continue

        # Calculate distance from previous point
        if last_point:
            distance = haversine_miles(
                last_point.latitude, last_point.longitude,
                point.latitude, point.longitude
            )
            cumulative_distance += distance if not np.isnan(distance) else 0.0

        # Store point data
        elevation = point.elevation if _finite(point.elevation) else np.nan
        points.append((point.latitude, point.longitude, elevation, cumulative_distance))
        last_point = point

    if not points:
        raise MalformedInputError("No valid GPS points found in GPX file")

    return points


def _create_base_dataframe(points: List[Tuple[float, float, float, float]]) -> pd.DataFrame:
    """Create DataFrame from GPS points."""
    return pd.DataFrame(points, columns=['lat', 'lon', 'ele_m', 'dist_mi'])


def _interpolate_elevation(df: pd.DataFrame) -> pd.DataFrame:
    """Fill missing elevation data using interpolation."""
    df = df.copy()
    df['ele_m'] = df['ele_m'].interpolate().bfill().ffill().fillna(0.0)
    return df


def _finite(value) -> bool:
    return value is not None and math.isfinite(value)


def clean_track_points(points: Sequence[TrackPoint]) -> List[TrackPoint]:
    """
    Drop points the engine cannot use.

    Removes points with non-finite coordinates or distance and points whose
    distance goes backwards. A non-finite elevation becomes 0.
    """
    cleaned = []
    dropped = 0
    last_distance = -math.inf

    for point in points:
        if not (_finite(point.distance) and _finite(point.lat) and _finite(point.lng)):
            dropped += 1
            continue
        if point.distance < last_distance:
            dropped += 1
            continue
        if not _finite(point.elevation):
            point = TrackPoint(point.distance, 0.0, point.lat, point.lng)
        cleaned.append(point)
        last_distance = point.distance

    if dropped:
        logger.debug(f"Dropped {dropped} unusable track points")

    return cleaned
