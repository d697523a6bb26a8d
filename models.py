import hashlib
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from utils.records import ActivityRecord, AthleteSettings, Segment, TrackPoint, ensure_segment_order
from utils.gpx_parsing import parse_gpx, clean_track_points
from utils.elevation import course_stats
from utils.geo import split_track_by_checkpoints
from utils.course_analysis import legs_from_cumulative_distance, distance_by_gradient_bucket
from utils.pace_builder import build_gradient_profile, estimate_flat_pace, estimate_fatigue_factor
from utils.prediction import PaceDerivation, derive_segment_pace
import config


class Course:
    """
    Represents a race course: the track, its elevation and the ordered checkpoint segments.
    """

    def __init__(self, track_points: Sequence[TrackPoint], segments: Sequence[Segment], source: bytes = b""):
        self.track_points = clean_track_points(track_points)
        self.segments = ensure_segment_order(segments)
        self.source = source
        self.gradient_edges = config.GRADIENT_EDGES
        self._compute_context()

    @classmethod
    def from_gpx(cls, gpx: Union[bytes, str], segments: Sequence[Segment]) -> "Course":
        source = gpx.encode("utf-8") if isinstance(gpx, str) else gpx
        return cls(parse_gpx(source), segments, source=source)

    def _compute_context(self):
        """
        Calculates all course-derived attributes.
        """
        self.stats = course_stats(self.track_points)
        self.total_distance = self.track_points[-1].distance if self.track_points else 0.0
        self.route_segments = split_track_by_checkpoints(self.track_points, self.segments)
        self.segment_bounds = self._segment_bounds()
        self.legs_idx = legs_from_cumulative_distance(self.track_points, self.segments)

        self.legs_miles = []
        for (a, b) in self.legs_idx:
            miles = distance_by_gradient_bucket(self.track_points[a:b + 1], self.gradient_edges)
            self.legs_miles.append(miles)

        self.median_elevation = (
            float(np.median([p.elevation for p in self.track_points])) if self.track_points else 0.0
        )

    def _segment_bounds(self) -> List[Tuple[float, float]]:
        """
        Mileage range of each segment along the track.

        A checkpoint matched by GPS ends at its matched track point; any other
        checkpoint ends at its declared cumulative distance.
        """
        matched = {
            piece.checkpoint_order: piece.points[-1].distance
            for piece in self.route_segments if piece.checkpoint_order is not None
        }

        bounds = []
        for segment in self.segments:
            start = bounds[-1][1] if bounds else segment.start_distance
            end = matched.get(segment.order, segment.cumulative_distance)
            bounds.append((start, max(start, end)))
        return bounds

    @property
    def fingerprint(self) -> str:
        """
        A deterministic key to decide when to recompute a plan for this course.
        """
        h = hashlib.md5(self.source).hexdigest()
        edges_sig = ",".join(f"{x:.4f}" for x in self.gradient_edges)
        checkpoints_sig = ",".join(f"{s.order}:{s.cumulative_distance:.3f}" for s in self.segments)
        return f"{h}|{checkpoints_sig}|{edges_sig}"


class PaceModel:
    """
    Represents the runner's pacing model, built from one historical activity.
    """

    def __init__(
            self,
            activity: Sequence[ActivityRecord],
            athlete_settings: Optional[AthleteSettings] = None,
            fallback_pace: Optional[float] = None,
            blend_historical: bool = False
    ):
        self.activity = list(activity)
        self.athlete_settings = athlete_settings
        self.blend_historical = blend_historical
        self.profile = build_gradient_profile(self.activity)
        self.flat_pace = estimate_flat_pace(self.profile, fallback_pace or config.DEFAULT_FLAT_PACE)
        self.fatigue_factor = estimate_fatigue_factor(self.activity)

    @property
    def populated_buckets(self) -> int:
        return sum(1 for b in self.profile if b.populated)

    def derive(
            self,
            segment: Segment,
            segment_index: int,
            track_points: Sequence[TrackPoint],
            bounds: Optional[Tuple[float, float]] = None
    ) -> PaceDerivation:
        return derive_segment_pace(
            segment,
            segment_index,
            self.profile,
            track_points,
            self.activity,
            bounds=bounds,
            fallback_pace=self.flat_pace,
            athlete_settings=self.athlete_settings,
            blend_historical=self.blend_historical,
        )
