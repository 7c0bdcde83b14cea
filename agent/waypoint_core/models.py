"""
Fix, PositionRecord and Visit value types.

A Fix is what the position source hands us. A PositionRecord is the
normalized, buffered form of an accepted fix; it is what gets persisted and
uploaded. Speeds are m/s, distances and accuracies meters, times epoch
seconds. Negative values mean "unknown", as reported by the platform.
"""

from dataclasses import dataclass, asdict
from typing import Optional


@dataclass(frozen=True)
class Fix:
    timestamp: float
    latitude: float
    longitude: float
    horizontal_accuracy: float
    altitude: float = 0.0
    vertical_accuracy: float = -1.0
    floor: Optional[int] = None
    heading: float = -1.0
    heading_accuracy: float = -1.0
    speed: float = -1.0
    speed_accuracy: float = -1.0

    @property
    def speed_kmh(self) -> float:
        """Speed in km/h; unknown (negative) speed reads as standing still."""
        return max(self.speed, 0.0) * 3.6

    @classmethod
    def from_dict(cls, data):
        return cls(
            timestamp=float(data["timestamp"]),
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            horizontal_accuracy=float(data.get("horizontal_accuracy", -1.0)),
            altitude=float(data.get("altitude", 0.0)),
            vertical_accuracy=float(data.get("vertical_accuracy", -1.0)),
            floor=data.get("floor"),
            heading=float(data.get("heading", -1.0)),
            heading_accuracy=float(data.get("heading_accuracy", -1.0)),
            speed=float(data.get("speed", -1.0)),
            speed_accuracy=float(data.get("speed_accuracy", -1.0)),
        )


# Fields sent to the collection endpoint, in wire order. Floor is kept
# locally but the batch API has no slot for it.
WIRE_FIELDS = (
    "timestamp",
    "latitude",
    "longitude",
    "horizontal_accuracy",
    "altitude",
    "vertical_accuracy",
    "heading",
    "heading_accuracy",
    "speed",
    "speed_accuracy",
)


@dataclass(frozen=True, eq=False)
class PositionRecord:
    """
    Canonical buffered sample.

    Ordering and hashing use the timestamp only; equality (the duplicate
    test) needs timestamp, latitude and longitude to match.
    """

    timestamp: float
    latitude: float
    longitude: float
    horizontal_accuracy: float
    altitude: float
    vertical_accuracy: float
    floor: int
    heading: float
    heading_accuracy: float
    speed: float
    speed_accuracy: float

    @classmethod
    def from_fix(cls, fix):
        return cls(
            timestamp=fix.timestamp,
            latitude=fix.latitude,
            longitude=fix.longitude,
            horizontal_accuracy=fix.horizontal_accuracy,
            altitude=fix.altitude,
            vertical_accuracy=fix.vertical_accuracy,
            floor=fix.floor if fix.floor is not None else 0,
            heading=fix.heading,
            heading_accuracy=fix.heading_accuracy,
            speed=fix.speed,
            speed_accuracy=fix.speed_accuracy,
        )

    @classmethod
    def from_dict(cls, data):
        return cls(
            timestamp=float(data["timestamp"]),
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            horizontal_accuracy=float(data["horizontal_accuracy"]),
            altitude=float(data["altitude"]),
            vertical_accuracy=float(data["vertical_accuracy"]),
            floor=int(data.get("floor") or 0),
            heading=float(data["heading"]),
            heading_accuracy=float(data["heading_accuracy"]),
            speed=float(data["speed"]),
            speed_accuracy=float(data["speed_accuracy"]),
        )

    def to_dict(self):
        return asdict(self)

    def to_wire(self):
        return {name: getattr(self, name) for name in WIRE_FIELDS}

    def __eq__(self, other):
        if not isinstance(other, PositionRecord):
            return NotImplemented
        return (
            self.timestamp == other.timestamp
            and self.latitude == other.latitude
            and self.longitude == other.longitude
        )

    def __hash__(self):
        return hash(self.timestamp)

    def __lt__(self, other):
        if not isinstance(other, PositionRecord):
            return NotImplemented
        return self.timestamp < other.timestamp

    def __le__(self, other):
        if not isinstance(other, PositionRecord):
            return NotImplemented
        return self.timestamp <= other.timestamp


@dataclass(frozen=True)
class Visit:
    """Arrival/departure at a place. departure is None while still there."""

    arrival: Optional[float]
    departure: Optional[float]
    latitude: float = 0.0
    longitude: float = 0.0

    @property
    def has_departed(self) -> bool:
        return self.departure is not None
