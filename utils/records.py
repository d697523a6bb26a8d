"""
Input data model shared by every engine module.
Track points, activity records and checkpoint segments arrive fully parsed;
the engine never mutates them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, List, Tuple

from utils.errors import SegmentOrderError


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    def less_certain(self) -> "Confidence":
        """One level less confident (LOW stays LOW)."""
        return Confidence.LOW if self is not Confidence.HIGH else Confidence.MEDIUM

    def more_certain(self) -> "Confidence":
        """One level more confident (HIGH stays HIGH)."""
        return Confidence.HIGH if self is not Confidence.LOW else Confidence.MEDIUM


class FitnessLevel(str, Enum):
    RECREATIONAL = "recreational"
    TRAINED = "trained"
    ELITE = "elite"


class BonkRisk(str, Enum):
    NONE = "none"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def level(self) -> int:
        return _BONK_ORDER.index(self)

    def escalate(self) -> "BonkRisk":
        return _BONK_ORDER[min(self.level + 1, len(_BONK_ORDER) - 1)]

    @classmethod
    def worst(cls, *risks: "BonkRisk") -> "BonkRisk":
        return max(risks, key=lambda r: r.level)


_BONK_ORDER = [BonkRisk.NONE, BonkRisk.LOW, BonkRisk.MODERATE, BonkRisk.HIGH, BonkRisk.CRITICAL]


class StrategyTier(str, Enum):
    AGGRESSIVE = "aggressive"
    BALANCED = "balanced"
    CONSERVATIVE = "conservative"


class InsightCategory(str, Enum):
    PACING = "pacing"
    NUTRITION = "nutrition"
    STRATEGY = "strategy"


@dataclass(frozen=True)
class TrackPoint:
    distance: float  # course-cumulative miles
    elevation: float  # meters
    lat: float
    lng: float


@dataclass(frozen=True)
class ActivityRecord:
    distance: float  # miles
    elevation: float  # meters
    pace: float  # min/mile
    heart_rate: Optional[float] = None
    power: Optional[float] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


@dataclass(frozen=True)
class NutritionItem:
    product_name: str
    carbs_per_serving: float  # grams
    sodium_per_serving: float = 0.0  # mg
    water_per_serving: float = 0.0  # ml
    quantity: float = 1.0


@dataclass(frozen=True)
class Segment:
    """A checkpoint boundary: the stretch of course ending at `checkpoint_name`."""
    order: int
    checkpoint_name: str
    segment_distance: float
    cumulative_distance: float
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    custom_pace: Optional[float] = None
    terrain_factor: Optional[float] = None
    nutrition_items: Tuple[NutritionItem, ...] = ()
    checkpoint_time_minutes: float = 0.0
    support_crew: bool = False

    @property
    def start_distance(self) -> float:
        return self.cumulative_distance - self.segment_distance

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class AthleteMetrics:
    body_weight_kg: Optional[float]
    gear_weight_kg: float = 0.0
    fitness_level: FitnessLevel = FitnessLevel.TRAINED


@dataclass(frozen=True)
class AthleteSettings:
    """Manual overrides for values otherwise detected from an activity."""
    max_hr: Optional[float] = None
    resting_hr: Optional[float] = None
    ftp: Optional[float] = None


def ensure_segment_order(segments: Sequence[Segment]) -> List[Segment]:
    """
    Return segments sorted by declared order, rejecting decreasing distances.

    Every consumer relies on cumulative distance being non-decreasing along
    the ordered list, so a violation is refused rather than silently fixed.

    Raises:
        SegmentOrderError: if any cumulative distance is below its predecessor's
    """
    ordered = sorted(segments, key=lambda s: s.order)
    for previous, current in zip(ordered, ordered[1:]):
        if current.cumulative_distance < previous.cumulative_distance:
            raise SegmentOrderError(
                f"Checkpoint '{current.checkpoint_name}' (order {current.order}) at "
                f"{current.cumulative_distance:.2f} mi comes before "
                f"'{previous.checkpoint_name}' at {previous.cumulative_distance:.2f} mi"
            )
    return ordered
