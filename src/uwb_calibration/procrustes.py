"""
Centroid-based (Procrustes) calibration of measured positions against
reference positions.

Model: reference = R(theta) * (S * measured) + t, with R a rotation about the
Z axis, S a per-axis scale and t a 3D translation. Unlike the affine path
no full 6-parameter fit is performed.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .accuracy import calculate_rmse
from .config import MIN_CORRESPONDENCES, TOLERANCES
from .errors import InsufficientPointsError, InvalidInputError, SingularMatrixError
from .models import CorrespondencePoint, Matrix2x2, Point3D, centroid, split_correspondences
from .validation import validate_point_sets

logger = logging.getLogger(__name__)


def rotate_z(point: Point3D, angle_radians: float) -> Point3D:
    """Rotate about the Z axis; Z is left untouched."""
    cos_r = math.cos(angle_radians)
    sin_r = math.sin(angle_radians)
    return Point3D(
        point.x * cos_r - point.y * sin_r,
        point.x * sin_r + point.y * cos_r,
        point.z,
    )


def scale_axes(point: Point3D, scale: Point3D) -> Point3D:
    return Point3D(point.x * scale.x, point.y * scale.y, point.z * scale.z)


@dataclass(frozen=True)
class CalibrationTransform:
    """Translation, rotation (radians, about Z) and per-axis scale."""

    translation: Point3D
    rotation: float
    scale: Point3D
    accuracy: float = 0.0

    @classmethod
    def identity(cls) -> CalibrationTransform:
        return cls(translation=Point3D.zero(), rotation=0.0, scale=Point3D(1.0, 1.0, 1.0))

    @property
    def rotation_degrees(self) -> float:
        return math.degrees(self.rotation)

    @property
    def is_valid(self) -> bool:
        if not (self.scale.x > 0 and self.scale.y > 0 and self.scale.z > 0):
            return False
        if not math.isfinite(self.rotation):
            return False
        return self.translation.is_finite()

    def apply(self, point: Point3D) -> Point3D:
        """Scale, then rotate, then translate."""
        return rotate_z(scale_axes(point, self.scale), self.rotation) + self.translation

    def apply_all(self, points: Sequence[Point3D]) -> list[Point3D]:
        return [self.apply(p) for p in points]

    def apply_inverse(self, point: Point3D) -> Point3D:
        """Exact inverse of ``apply`` for any non-zero scale."""
        unrotated = rotate_z(point - self.translation, -self.rotation)
        return scale_axes(unrotated, _reciprocal_scale(self.scale))

    def inverse(self) -> CalibrationTransform:
        """
        Inverse in the same scale-rotate-translate form.

        Exact when the X and Y scales are equal; with anisotropic XY scale
        use ``apply_inverse`` instead.
        """
        inv_scale = _reciprocal_scale(self.scale)
        rotated = rotate_z(self.translation, -self.rotation)
        inv_translation = Point3D(
            -rotated.x * inv_scale.x,
            -rotated.y * inv_scale.y,
            -rotated.z * inv_scale.z,
        )
        return CalibrationTransform(
            translation=inv_translation,
            rotation=-self.rotation,
            scale=inv_scale,
            accuracy=self.accuracy,
        )

    @classmethod
    def from_dict(cls, data: dict) -> CalibrationTransform:
        return cls(
            translation=Point3D.from_dict(data["translation"]),
            rotation=data["rotation"],
            scale=Point3D.from_dict(data["scale"]),
            accuracy=data.get("accuracy", 0.0),
        )

    def to_payload(self) -> dict:
        return {
            "translation": self.translation.to_payload(),
            "rotation": self.rotation,
            "scale": self.scale.to_payload(),
            "accuracy": self.accuracy,
        }


def _reciprocal_scale(scale: Point3D) -> Point3D:
    return Point3D(
        1.0 / scale.x if scale.x != 0 else 1.0,
        1.0 / scale.y if scale.y != 0 else 1.0,
        1.0 / scale.z if scale.z != 0 else 1.0,
    )


def cross_covariance(measured: Sequence[Point3D], reference: Sequence[Point3D]) -> Matrix2x2:
    """H = sum(m * r^T) over centred XY coordinates."""
    h11 = h12 = h21 = h22 = 0.0
    for m, r in zip(measured, reference):
        h11 += m.x * r.x
        h12 += m.x * r.y
        h21 += m.y * r.x
        h22 += m.y * r.y
    return Matrix2x2(h11, h12, h21, h22)


def optimal_rotation(h: Matrix2x2) -> float:
    """
    Closed-form 2D Procrustes angle carrying the measured set onto the
    reference set.

    Raises:
        SingularMatrixError: det(H) is within the singular tolerance of 0.
    """
    if abs(h.determinant) < TOLERANCES["singular"]:
        raise SingularMatrixError(
            "Cross-covariance matrix is singular; check the calibration point layout"
        )
    return math.atan2(h.a12 - h.a21, h.a11 + h.a22)


def axis_scale(measured: Sequence[float], reference: Sequence[float]) -> float:
    """sum(m*r) / sum(m^2), or 1.0 when the axis carries no variance."""
    if len(measured) != len(reference):
        raise InvalidInputError("measured and reference axis lengths differ")
    sum_squares = sum(m * m for m in measured)
    if sum_squares <= TOLERANCES["scale_variance"]:
        return 1.0
    return sum(m * r for m, r in zip(measured, reference)) / sum_squares


def rotation_and_scale(
    measured: Sequence[Point3D],
    reference: Sequence[Point3D],
) -> Tuple[float, Point3D]:
    """Rotation and per-axis scale from centred point sets."""
    rotation = optimal_rotation(cross_covariance(measured, reference))

    # Bring the reference into the measured frame so each axis compares
    # like with like; with zero rotation this is the plain axis ratio.
    aligned = [rotate_z(r, -rotation) for r in reference]
    scale = Point3D(
        axis_scale([m.x for m in measured], [r.x for r in aligned]),
        axis_scale([m.y for m in measured], [r.y for r in aligned]),
        axis_scale([m.z for m in measured], [r.z for r in aligned]),
    )
    return rotation, scale


def estimate_calibration(points: Sequence[CorrespondencePoint]) -> CalibrationTransform:
    """
    Estimate a ``CalibrationTransform`` from measured/reference pairs.

    Raises:
        InsufficientPointsError: fewer than three pairs.
        InvalidInputError: coincident, collinear (measured side) or non-finite points.
        SingularMatrixError: degenerate cross covariance.
    """
    if len(points) < MIN_CORRESPONDENCES:
        raise InsufficientPointsError(required=MIN_CORRESPONDENCES, provided=len(points))
    measured, reference = split_correspondences(points)
    validate_point_sets(measured, reference, check_reference_collinearity=False)

    measured_centroid = centroid(measured)
    reference_centroid = centroid(reference)
    centred_measured = [p - measured_centroid for p in measured]
    centred_reference = [p - reference_centroid for p in reference]

    rotation, scale = rotation_and_scale(centred_measured, centred_reference)
    translation = reference_centroid - rotate_z(scale_axes(measured_centroid, scale), rotation)

    provisional = CalibrationTransform(translation=translation, rotation=rotation, scale=scale)
    accuracy = calculate_rmse(measured, reference, provisional.apply)
    logger.info(
        "Procrustes calibration from %d points: rotation=%.3f deg, "
        "scale=(%.4f, %.4f, %.4f), rmse=%.4f",
        len(points), math.degrees(rotation), scale.x, scale.y, scale.z, accuracy,
    )
    return CalibrationTransform(
        translation=translation, rotation=rotation, scale=scale, accuracy=accuracy
    )


def apply_calibration(point: Point3D, transform: CalibrationTransform) -> Point3D:
    return transform.apply(point)


def apply_calibration_all(
    points: Sequence[Point3D],
    transform: Optional[CalibrationTransform],
) -> list[Point3D]:
    """Transform every point; an absent transform leaves them unchanged."""
    if transform is None:
        return list(points)
    return transform.apply_all(points)
