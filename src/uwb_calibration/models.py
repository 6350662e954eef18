"""
Data models for points, correspondences, signal quality and observations.
"""

from __future__ import annotations

import math
import time
import uuid
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from .config import TOLERANCES
from .errors import SingularMatrixError

Vector3 = Tuple[float, float, float]


@dataclass(frozen=True)
class Point3D:
    """A point (or vector) in metres or map units."""

    x: float
    y: float
    z: float = 0.0

    @classmethod
    def zero(cls) -> Point3D:
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> Point3D:
        if len(values) == 2:
            return cls(float(values[0]), float(values[1]), 0.0)
        return cls(float(values[0]), float(values[1]), float(values[2]))

    @classmethod
    def from_dict(cls, data: dict) -> Point3D:
        return cls(x=data["x"], y=data["y"], z=data.get("z", 0.0))

    def __add__(self, other: Point3D) -> Point3D:
        return Point3D(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Point3D) -> Point3D:
        return Point3D(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, factor: float) -> Point3D:
        return Point3D(self.x * factor, self.y * factor, self.z * factor)

    __rmul__ = __mul__

    def __truediv__(self, divisor: float) -> Point3D:
        return Point3D(self.x / divisor, self.y / divisor, self.z / divisor)

    def __neg__(self) -> Point3D:
        return Point3D(-self.x, -self.y, -self.z)

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x ** 2 + self.y ** 2 + self.z ** 2)

    def distance_to(self, other: Point3D) -> float:
        return (self - other).magnitude

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y) and math.isfinite(self.z)

    def to_tuple(self) -> Vector3:
        return (self.x, self.y, self.z)

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    def to_payload(self) -> dict:
        return {"x": self.x, "y": self.y, "z": self.z}


def centroid(points: Sequence[Point3D]) -> Point3D:
    """Arithmetic mean of a non-empty point list."""
    count = len(points)
    return Point3D(
        sum(p.x for p in points) / count,
        sum(p.y for p in points) / count,
        sum(p.z for p in points) / count,
    )


@dataclass(frozen=True)
class Matrix2x2:
    """Row-major 2x2 matrix [[a11, a12], [a21, a22]]."""

    a11: float
    a12: float
    a21: float
    a22: float

    @classmethod
    def identity(cls) -> Matrix2x2:
        return cls(1.0, 0.0, 0.0, 1.0)

    @classmethod
    def rotation(cls, angle_radians: float) -> Matrix2x2:
        c = math.cos(angle_radians)
        s = math.sin(angle_radians)
        return cls(c, -s, s, c)

    @classmethod
    def from_array(cls, matrix: np.ndarray) -> Matrix2x2:
        return cls(
            float(matrix[0, 0]), float(matrix[0, 1]),
            float(matrix[1, 0]), float(matrix[1, 1]),
        )

    @property
    def determinant(self) -> float:
        return self.a11 * self.a22 - self.a12 * self.a21

    def multiply(self, point: Point3D) -> Point3D:
        """Apply to the XY part of a point. Z of the result is 0."""
        return Point3D(
            self.a11 * point.x + self.a12 * point.y,
            self.a21 * point.x + self.a22 * point.y,
            0.0,
        )

    def matmul(self, other: Matrix2x2) -> Matrix2x2:
        return Matrix2x2(
            self.a11 * other.a11 + self.a12 * other.a21,
            self.a11 * other.a12 + self.a12 * other.a22,
            self.a21 * other.a11 + self.a22 * other.a21,
            self.a21 * other.a12 + self.a22 * other.a22,
        )

    def transpose(self) -> Matrix2x2:
        return Matrix2x2(self.a11, self.a21, self.a12, self.a22)

    def inverse(self) -> Matrix2x2:
        det = self.determinant
        if abs(det) <= TOLERANCES["singular"]:
            raise SingularMatrixError()
        inv_det = 1.0 / det
        return Matrix2x2(
            self.a22 * inv_det, -self.a12 * inv_det,
            -self.a21 * inv_det, self.a11 * inv_det,
        )

    def to_array(self) -> np.ndarray:
        return np.array([[self.a11, self.a12], [self.a21, self.a22]], dtype=float)


@dataclass(frozen=True)
class CorrespondencePoint:
    """A measured (local) point paired with its known real-world position."""

    measured: Point3D
    reference: Point3D
    label: Optional[str] = None


@dataclass(frozen=True)
class MapCalibrationPoint:
    """A floor-map pixel/map coordinate paired with its real-world position."""

    map_coordinate: Point3D
    real_world_coordinate: Point3D
    antenna_id: str
    point_index: int

    def to_correspondence(self) -> CorrespondencePoint:
        return CorrespondencePoint(
            measured=self.map_coordinate,
            reference=self.real_world_coordinate,
            label=f"{self.antenna_id}#{self.point_index}",
        )


def split_correspondences(
    points: Iterable[CorrespondencePoint],
) -> Tuple[list[Point3D], list[Point3D]]:
    """Return (measured, reference) lists in input order."""
    measured: list[Point3D] = []
    reference: list[Point3D] = []
    for point in points:
        measured.append(point.measured)
        reference.append(point.reference)
    return measured, reference


def correspondences_from_maps(
    measured_by_name: dict[str, Point3D],
    reference_by_name: dict[str, Point3D],
) -> list[CorrespondencePoint]:
    """Pair two {name -> point} maps on their common names, sorted by name."""
    common = sorted(set(measured_by_name) & set(reference_by_name))
    return [
        CorrespondencePoint(
            measured=measured_by_name[name],
            reference=reference_by_name[name],
            label=name,
        )
        for name in common
    ]


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class SignalQuality:
    """Per-observation radio quality. Values are clamped on construction."""

    strength: float  # 0.0-1.0
    is_line_of_sight: bool
    confidence_level: float  # 0.0-1.0
    error_estimate: float  # metres

    def __post_init__(self) -> None:
        object.__setattr__(self, "strength", _clamp(self.strength, 0.0, 1.0))
        object.__setattr__(self, "confidence_level", _clamp(self.confidence_level, 0.0, 1.0))
        object.__setattr__(self, "error_estimate", max(0.0, self.error_estimate))

    @property
    def quality_level(self) -> str:
        if self.strength >= 0.8:
            return "excellent"
        if self.strength >= 0.6:
            return "good"
        if self.strength >= 0.4:
            return "fair"
        if self.strength >= 0.2:
            return "poor"
        return "very poor"

    @classmethod
    def from_dict(cls, data: dict) -> SignalQuality:
        return cls(
            strength=data["strength"],
            is_line_of_sight=bool(data["is_line_of_sight"]),
            confidence_level=data["confidence_level"],
            error_estimate=data["error_estimate"],
        )

    def to_payload(self) -> dict:
        return {
            "strength": self.strength,
            "is_line_of_sight": self.is_line_of_sight,
            "confidence_level": self.confidence_level,
            "error_estimate": self.error_estimate,
        }


@dataclass(frozen=True)
class ObservationPoint:
    """A single UWB reading of a tag as seen by one antenna."""

    antenna_id: str
    position: Point3D
    quality: SignalQuality
    distance: float
    rssi: float
    session_id: str
    timestamp: float = field(default_factory=time.time)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def from_dict(cls, data: dict) -> ObservationPoint:
        return cls(
            id=data["id"],
            antenna_id=data["antenna_id"],
            position=Point3D.from_dict(data["position"]),
            timestamp=data["timestamp"],
            quality=SignalQuality.from_dict(data["quality"]),
            distance=data["distance"],
            rssi=data["rssi"],
            session_id=data["session_id"],
        )

    def to_payload(self) -> dict:
        return {
            "id": self.id,
            "antenna_id": self.antenna_id,
            "position": self.position.to_payload(),
            "timestamp": self.timestamp,
            "quality": self.quality.to_payload(),
            "distance": self.distance,
            "rssi": self.rssi,
            "session_id": self.session_id,
        }
