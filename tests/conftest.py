import math

import pytest

from utils.records import ActivityRecord, AthleteMetrics, NutritionItem, Segment, TrackPoint
import config

MILES_PER_DEGREE_LAT = 2 * math.pi * config.EARTH_RADIUS_MILES / 360.0


def grade_step(grade_percent: float, spacing: float) -> float:
    """Meters of climb over `spacing` miles at `grade_percent`."""
    return spacing * config.METERS_PER_MILE * grade_percent / 100.0


def make_track(elevations, spacing=0.1, lat0=45.0, lng0=6.0):
    """Track heading due north, one point every `spacing` miles."""
    return [
        TrackPoint(
            distance=round(i * spacing, 9),
            elevation=float(elevation),
            lat=lat0 + i * spacing / MILES_PER_DEGREE_LAT,
            lng=lng0,
        )
        for i, elevation in enumerate(elevations)
    ]


def make_activity(paces, elevations=None, spacing=0.05, heart_rates=None, powers=None, with_gps=False):
    """Activity records one every `spacing` miles."""
    n = len(paces)
    elevations = elevations if elevations is not None else [100.0] * n
    records = []
    for i in range(n):
        records.append(ActivityRecord(
            distance=round(i * spacing, 9),
            elevation=float(elevations[i]),
            pace=paces[i],
            heart_rate=heart_rates[i] if heart_rates else None,
            power=powers[i] if powers else None,
            lat=45.0 + i * spacing / MILES_PER_DEGREE_LAT if with_gps else None,
            lng=6.0 if with_gps else None,
        ))
    return records


def climbing_elevations(n, grade_percent, spacing, start=100.0):
    step = grade_step(grade_percent, spacing)
    return [start + i * step for i in range(n)]


def segment(order, name, segment_distance, cumulative_distance, **kwargs):
    return Segment(order=order, checkpoint_name=name, segment_distance=segment_distance,
                   cumulative_distance=cumulative_distance, **kwargs)


@pytest.fixture
def flat_track():
    """10 flat miles at 100m."""
    return make_track([100.0] * 101)


@pytest.fixture
def flat_then_climb_track():
    """5 flat miles, then 5 miles at a steady 4% grade."""
    step = grade_step(4.0, 0.1)
    elevations = [100.0] * 51 + [100.0 + i * step for i in range(1, 51)]
    return make_track(elevations)


@pytest.fixture
def flat_activity():
    """10 flat miles at 9:00/mi."""
    return make_activity([9.0] * 201)


@pytest.fixture
def flat_and_climb_activity():
    """5 flat miles at 9:00/mi, then 5 miles of 4% climbing at 12:00/mi."""
    step = grade_step(4.0, 0.05)
    paces = [9.0] * 101 + [12.0] * 100
    elevations = [100.0] * 101 + [100.0 + i * step for i in range(1, 101)]
    return make_activity(paces, elevations)


@pytest.fixture
def two_segments():
    return [
        segment(1, "Aid 1", 5.0, 5.0),
        segment(2, "Finish", 5.0, 10.0),
    ]


@pytest.fixture
def athlete():
    return AthleteMetrics(body_weight_kg=70.0)


@pytest.fixture
def gel():
    return NutritionItem(product_name="Gel", carbs_per_serving=25.0, sodium_per_serving=50.0, quantity=2)


GPX_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1">
  <trk>
    <name>Test Course</name>
    <trkseg>
{points}
    </trkseg>
  </trk>
</gpx>
"""


def make_gpx(track):
    rows = []
    for p in track:
        if p.elevation is None:
            rows.append(f'      <trkpt lat="{p.lat:.8f}" lon="{p.lng:.8f}"></trkpt>')
        else:
            rows.append(f'      <trkpt lat="{p.lat:.8f}" lon="{p.lng:.8f}"><ele>{p.elevation:.1f}</ele></trkpt>')
    return GPX_TEMPLATE.format(points="\n".join(rows))
