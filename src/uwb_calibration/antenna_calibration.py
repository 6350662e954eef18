"""
Antenna placement calibration from tag observations.

Each antenna reports tag positions in its own local frame. Given the known
real-world position of every tag, a 2D affine map q = A * p + t is fitted
between the averaged local observations p and the true positions q. The
translation t is the antenna position and the rotation extracted from A is
the antenna heading.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .accuracy import calculate_rmse
from .affine import AffineFitStrategy, AffineTransform, solve_affine_parameters
from .config import MIN_CORRESPONDENCES
from .errors import InsufficientPointsError
from .models import Matrix2x2, Point3D
from .rotation import RotationExtraction, extract_rotation
from .validation import ensure_finite, ensure_not_collinear

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AntennaConfig:
    """Estimated antenna placement."""

    x: float  # metres
    y: float  # metres
    angle_degrees: float
    angle_radians: float
    scale_x: float
    scale_y: float
    rmse: float
    tag_count: int = 0

    @property
    def position(self) -> Point3D:
        return Point3D(self.x, self.y, 0.0)

    @property
    def scale_factors(self) -> tuple[float, float]:
        return (self.scale_x, self.scale_y)

    def to_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.angle_degrees)

    def to_payload(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "angle_degrees": self.angle_degrees,
            "scale_x": self.scale_x,
            "scale_y": self.scale_y,
            "rmse": self.rmse,
            "tag_count": self.tag_count,
        }


def _flatten(point: Point3D) -> Point3D:
    return Point3D(point.x, point.y, 0.0)


def average_point(points: Sequence[Point3D]) -> Point3D:
    """Mean XY of repeated observations of one tag (Z dropped)."""
    return Point3D(
        sum(p.x for p in points) / len(points),
        sum(p.y for p in points) / len(points),
        0.0,
    )


class AntennaAffineCalibration:
    """
    Estimates antenna position and heading from averaged tag observations.

    Algorithm:
    1. Pair tags present in both the observations and the known positions
    2. Average each tag's observations into one local point
    3. Reject collinear layouts
    4. Fit q = A * p + t by least squares
    5. Decompose A into heading and scale via SVD
    """

    def __init__(
        self,
        strategy: AffineFitStrategy = AffineFitStrategy.DIRECT_LEAST_SQUARES,
        collinearity_tol: Optional[float] = None,
    ):
        """
        Args:
            strategy: Least-squares solver used for the affine fit
            collinearity_tol: Absolute area tolerance for the collinearity
                check; scaled to the tag spread when None
        """
        self.strategy = strategy
        self.collinearity_tol = collinearity_tol

    def estimate_affine_transform(
        self,
        source_points: Sequence[Point3D],
        target_points: Sequence[Point3D],
        strategy: Optional[AffineFitStrategy] = None,
    ) -> AffineTransform:
        """
        Fit target = A * source + t on the XY plane.

        ``strategy`` overrides the solver chosen at construction.

        Raises:
            InvalidInputError: point counts differ
            InsufficientPointsError: fewer than three pairs
            InvalidInputError: a coordinate is NaN or infinite
            SingularMatrixError: rank-deficient (e.g. collinear) input
        """
        source = [_flatten(p) for p in source_points]
        target = [_flatten(p) for p in target_points]
        linear, tx, ty = solve_affine_parameters(source, target, strategy or self.strategy)
        transform = AffineTransform(linear=linear, tx=tx, ty=ty)
        return transform.with_accuracy(calculate_rmse(source, target, transform.apply))

    def extract_rotation_angle(self, matrix: Matrix2x2) -> RotationExtraction:
        """Heading (degrees/radians), scale factors and proper rotation of A."""
        return extract_rotation(matrix)

    def estimate_antenna_config(
        self,
        measured_points_by_tag: Dict[str, List[Point3D]],
        true_positions: Dict[str, Point3D],
    ) -> AntennaConfig:
        """
        Estimate the antenna placement.

        Args:
            measured_points_by_tag: Local tag observations per tag ID
            true_positions: Known real-world position per tag ID

        Returns:
            AntennaConfig with the antenna at the fitted translation.
        """
        common_tags = set(measured_points_by_tag) & set(true_positions)
        if len(common_tags) < MIN_CORRESPONDENCES:
            raise InsufficientPointsError(required=MIN_CORRESPONDENCES, provided=len(common_tags))

        source_points: List[Point3D] = []
        target_points: List[Point3D] = []
        for tag_id in sorted(common_tags):
            observations = measured_points_by_tag[tag_id]
            if not observations:
                logger.warning("Tag %s has no observations; skipped", tag_id)
                continue
            source_points.append(average_point(observations))
            target_points.append(_flatten(true_positions[tag_id]))

        if len(source_points) < MIN_CORRESPONDENCES:
            raise InsufficientPointsError(required=MIN_CORRESPONDENCES, provided=len(source_points))

        for index, (src, dst) in enumerate(zip(source_points, target_points), start=1):
            logger.debug(
                "Point%d: averaged (%.3f, %.3f) -> true (%.3f, %.3f)",
                index, src.x, src.y, dst.x, dst.y,
            )

        ensure_finite(source_points, "measured")
        ensure_finite(target_points, "reference")
        ensure_not_collinear(source_points, "measured", self.collinearity_tol)

        transform = self.estimate_affine_transform(source_points, target_points)
        rotation = self.extract_rotation_angle(transform.linear)

        config = AntennaConfig(
            x=transform.tx,
            y=transform.ty,
            angle_degrees=rotation.angle_degrees,
            angle_radians=rotation.angle_radians,
            scale_x=rotation.scale_x,
            scale_y=rotation.scale_y,
            rmse=transform.accuracy,
            tag_count=len(source_points),
        )
        logger.info(
            "Antenna calibration: position (%.3f, %.3f) m, angle %.2f deg, "
            "scale (%.3f, %.3f), rmse %.4f m, %d tags",
            config.x, config.y, config.angle_degrees,
            config.scale_x, config.scale_y, config.rmse, config.tag_count,
        )
        return config

    def get_correspondence_info(
        self,
        measured_points_by_tag: Dict[str, List[Point3D]],
        true_positions: Dict[str, Point3D],
    ) -> Dict[str, Any]:
        """Summary of the observations available for each tag."""
        info: Dict[str, Any] = {
            "num_tags": len(measured_points_by_tag),
            "common_tags": sorted(set(measured_points_by_tag) & set(true_positions)),
            "tags": {},
        }
        for tag_id, observations in sorted(measured_points_by_tag.items()):
            xy = np.array([[p.x, p.y] for p in observations]) if observations else np.zeros((0, 2))
            if len(xy):
                spread = float(np.sqrt(np.sum(np.var(xy, axis=0))))
                mean = (float(xy[:, 0].mean()), float(xy[:, 1].mean()))
            else:
                spread = 0.0
                mean = (math.nan, math.nan)
            info["tags"][tag_id] = {
                "count": len(observations),
                "mean": mean,
                "spread_m": spread,
                "has_true_position": tag_id in true_positions,
            }
        return info


def estimate_antenna_config(
    measured_points_by_tag: Dict[str, List[Point3D]],
    true_positions: Dict[str, Point3D],
    strategy: AffineFitStrategy = AffineFitStrategy.DIRECT_LEAST_SQUARES,
) -> AntennaConfig:
    """Convenience wrapper around ``AntennaAffineCalibration``."""
    calibrator = AntennaAffineCalibration(strategy=strategy)
    return calibrator.estimate_antenna_config(measured_points_by_tag, true_positions)
