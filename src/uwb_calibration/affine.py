"""
Map / local to real-world coordinate transformation by a 2D affine fit.

    [x']   [a  c] [u]   [tx]
    [y'] = [b  d] [v] + [ty],      z' = scale_z * z + translate_z

The linear part is estimated from three or more correspondences by least
squares, with one of two interchangeable strategies.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .accuracy import calculate_rmse
from .config import MIN_CORRESPONDENCES, TOLERANCES
from .errors import (
    CalculationFailedError,
    InsufficientPointsError,
    InvalidInputError,
    SingularMatrixError,
)
from .linalg import build_affine_design, solve_direct_least_squares, solve_normal_equations
from .models import (
    CorrespondencePoint,
    MapCalibrationPoint,
    Matrix2x2,
    Point3D,
    split_correspondences,
)
from .rotation import RotationExtraction, extract_rotation
from .validation import ensure_finite, validate_point_sets

logger = logging.getLogger(__name__)


class AffineFitStrategy(enum.Enum):
    """How the overdetermined 2n x 6 system is solved."""

    # A^T A p = A^T b with Gauss-Jordan elimination. Fast, loses precision
    # when the design matrix is poorly conditioned.
    NORMAL_EQUATIONS = "normal_equations"
    # SVD-based least squares on the design matrix itself.
    DIRECT_LEAST_SQUARES = "direct_least_squares"


@dataclass(frozen=True)
class AffineTransform:
    """Fitted 2D affine map plus an independent linear Z mapping."""

    linear: Matrix2x2
    tx: float
    ty: float
    scale_z: float = 1.0
    translate_z: float = 0.0
    accuracy: float = 0.0  # RMSE against the fitting correspondences

    @classmethod
    def identity(cls) -> AffineTransform:
        return cls(linear=Matrix2x2.identity(), tx=0.0, ty=0.0)

    @classmethod
    def from_parameters(
        cls,
        a: float,
        b: float,
        c: float,
        d: float,
        tx: float,
        ty: float,
        *,
        scale_z: float = 1.0,
        translate_z: float = 0.0,
        accuracy: float = 0.0,
    ) -> AffineTransform:
        return cls(
            linear=Matrix2x2(a11=a, a12=c, a21=b, a22=d),
            tx=tx,
            ty=ty,
            scale_z=scale_z,
            translate_z=translate_z,
            accuracy=accuracy,
        )

    # Named parameters of x' = a*u + c*v + tx, y' = b*u + d*v + ty.
    @property
    def a(self) -> float:
        return self.linear.a11

    @property
    def b(self) -> float:
        return self.linear.a21

    @property
    def c(self) -> float:
        return self.linear.a12

    @property
    def d(self) -> float:
        return self.linear.a22

    @property
    def translation(self) -> Point3D:
        return Point3D(self.tx, self.ty, self.translate_z)

    @property
    def determinant(self) -> float:
        return self.linear.determinant

    @property
    def is_valid(self) -> bool:
        values = (self.a, self.b, self.c, self.d, self.tx, self.ty,
                  self.scale_z, self.translate_z, self.accuracy)
        if not all(math.isfinite(v) for v in values):
            return False
        return abs(self.determinant) > TOLERANCES["singular"] and self.accuracy >= 0.0

    def apply(self, point: Point3D) -> Point3D:
        return Point3D(
            self.a * point.x + self.c * point.y + self.tx,
            self.b * point.x + self.d * point.y + self.ty,
            point.z * self.scale_z + self.translate_z,
        )

    def apply_all(self, points: Sequence[Point3D]) -> list[Point3D]:
        return [self.apply(p) for p in points]

    def inverse(self) -> AffineTransform:
        return invert_affine(self)

    def decompose(self) -> RotationExtraction:
        return extract_rotation(self.linear)

    def with_accuracy(self, accuracy: float) -> AffineTransform:
        return AffineTransform(
            linear=self.linear,
            tx=self.tx,
            ty=self.ty,
            scale_z=self.scale_z,
            translate_z=self.translate_z,
            accuracy=accuracy,
        )

    def describe(self) -> str:
        return (
            f"[[ {self.a:.3f}  {self.c:.3f}  {self.tx:.3f} ]\n"
            f" [ {self.b:.3f}  {self.d:.3f}  {self.ty:.3f} ]\n"
            f" [ 0.000  0.000  1.000 ]]\n"
            f"Z: scale={self.scale_z:.3f}, translate={self.translate_z:.3f}\n"
            f"Accuracy: {self.accuracy:.6f}"
        )

    @classmethod
    def from_dict(cls, data: dict) -> AffineTransform:
        return cls.from_parameters(
            data["a"], data["b"], data["c"], data["d"], data["tx"], data["ty"],
            scale_z=data.get("scale_z", 1.0),
            translate_z=data.get("translate_z", 0.0),
            accuracy=data.get("accuracy", 0.0),
        )

    def to_payload(self) -> dict:
        return {
            "a": self.a,
            "b": self.b,
            "c": self.c,
            "d": self.d,
            "tx": self.tx,
            "ty": self.ty,
            "scale_z": self.scale_z,
            "translate_z": self.translate_z,
            "accuracy": self.accuracy,
        }


def solve_affine_parameters(
    source: Sequence[Point3D],
    target: Sequence[Point3D],
    strategy: AffineFitStrategy = AffineFitStrategy.NORMAL_EQUATIONS,
) -> Tuple[Matrix2x2, float, float]:
    """
    Least-squares fit of target = A * source + t on the XY plane.

    Returns:
        (A, tx, ty)

    Raises:
        InvalidInputError: source and target lengths differ.
        InsufficientPointsError: fewer than three pairs.
        InvalidInputError: a coordinate is NaN or infinite.
        SingularMatrixError: rank-deficient system or near-zero det(A).
    """
    if len(source) != len(target):
        raise InvalidInputError(
            f"measured and reference point counts differ ({len(source)} != {len(target)})"
        )
    if len(source) < MIN_CORRESPONDENCES:
        raise InsufficientPointsError(required=MIN_CORRESPONDENCES, provided=len(source))
    ensure_finite(source, "measured")
    ensure_finite(target, "reference")

    design, rhs = build_affine_design(source, target)
    if strategy is AffineFitStrategy.NORMAL_EQUATIONS:
        params = solve_normal_equations(design, rhs)
    else:
        params = solve_direct_least_squares(design, rhs)

    a11, a12, a21, a22, tx, ty = (float(v) for v in params)
    linear = Matrix2x2(a11=a11, a12=a12, a21=a21, a22=a22)
    if not all(math.isfinite(v) for v in params):
        raise CalculationFailedError("solver produced non-finite parameters")
    if abs(linear.determinant) < TOLERANCES["singular"]:
        raise SingularMatrixError()
    return linear, tx, ty


def fit_z_axis(source_z: Sequence[float], target_z: Sequence[float]) -> Tuple[float, float]:
    """
    1D regression z' = scale * z + translate.

    When the source Z values carry no variance the scale falls back to 1.0
    and the translation to the mean offset.
    """
    n = float(len(source_z))
    sum_s = sum(source_z)
    sum_t = sum(target_z)
    sum_ss = sum(z * z for z in source_z)
    sum_st = sum(s * t for s, t in zip(source_z, target_z))

    denominator = n * sum_ss - sum_s * sum_s
    if abs(denominator) <= TOLERANCES["z_variance"]:
        return 1.0, (sum_t - sum_s) / n

    scale = (n * sum_st - sum_s * sum_t) / denominator
    translate = (sum_t - scale * sum_s) / n
    return scale, translate


def fit_affine(
    points: Sequence[CorrespondencePoint],
    strategy: AffineFitStrategy = AffineFitStrategy.NORMAL_EQUATIONS,
    *,
    collinearity_tol: Optional[float] = None,
) -> AffineTransform:
    """
    Validate the correspondences and fit an ``AffineTransform`` to them.

    Args:
        points: measured (map/local) -> reference (real-world) pairs, >= 3.
        strategy: solver strategy, see ``AffineFitStrategy``.
        collinearity_tol: absolute area tolerance for the collinearity
            check; scaled to the point spread when omitted.
    """
    if len(points) < MIN_CORRESPONDENCES:
        raise InsufficientPointsError(required=MIN_CORRESPONDENCES, provided=len(points))
    measured, reference = split_correspondences(points)
    validate_point_sets(measured, reference, collinearity_tol=collinearity_tol)

    linear, tx, ty = solve_affine_parameters(measured, reference, strategy)
    scale_z, translate_z = fit_z_axis([p.z for p in measured], [p.z for p in reference])

    provisional = AffineTransform(
        linear=linear, tx=tx, ty=ty, scale_z=scale_z, translate_z=translate_z
    )
    accuracy = calculate_rmse(measured, reference, provisional.apply)
    transform = provisional.with_accuracy(accuracy)
    logger.info(
        "Affine fit (%s) from %d points: det=%.6g, rmse=%.4f",
        strategy.value, len(points), transform.determinant, accuracy,
    )
    logger.debug("Affine matrix:\n%s", transform.describe())
    return transform


def fit_map_calibration(
    points: Sequence[MapCalibrationPoint],
    strategy: AffineFitStrategy = AffineFitStrategy.NORMAL_EQUATIONS,
    *,
    collinearity_tol: Optional[float] = None,
) -> AffineTransform:
    """Fit a floor-map -> real-world transform from map calibration points."""
    return fit_affine(
        [p.to_correspondence() for p in points],
        strategy,
        collinearity_tol=collinearity_tol,
    )


def invert_affine(transform: AffineTransform) -> AffineTransform:
    """
    Analytic inverse; the accuracy of the forward transform is carried over.

    Raises:
        SingularMatrixError: abs(det) <= singular tolerance.
    """
    det = transform.determinant
    if abs(det) <= TOLERANCES["singular"]:
        raise SingularMatrixError()

    inv_det = 1.0 / det
    a = transform.d * inv_det
    b = -transform.b * inv_det
    c = -transform.c * inv_det
    d = transform.a * inv_det
    tx = (transform.c * transform.ty - transform.d * transform.tx) * inv_det
    ty = (transform.b * transform.tx - transform.a * transform.ty) * inv_det

    scale_z = 1.0 / transform.scale_z if transform.scale_z != 0 else 1.0
    translate_z = -transform.translate_z * scale_z

    return AffineTransform.from_parameters(
        a, b, c, d, tx, ty,
        scale_z=scale_z,
        translate_z=translate_z,
        accuracy=transform.accuracy,
    )


def map_to_real_world(point: Point3D, transform: AffineTransform) -> Point3D:
    return transform.apply(point)


def map_to_real_world_all(points: Sequence[Point3D], transform: AffineTransform) -> list[Point3D]:
    return transform.apply_all(points)


def real_world_to_map(point: Point3D, transform: AffineTransform) -> Point3D:
    return invert_affine(transform).apply(point)


class MapToRealWorldTransformer:
    """
    Holds the calibration of one floor map and converts points both ways.
    """

    def __init__(self, strategy: AffineFitStrategy = AffineFitStrategy.NORMAL_EQUATIONS):
        self.strategy = strategy
        self._transform: Optional[AffineTransform] = None
        self._inverse: Optional[AffineTransform] = None

    @property
    def is_calibrated(self) -> bool:
        return self._transform is not None

    @property
    def transform(self) -> Optional[AffineTransform]:
        return self._transform

    def calibrate(self, points: Sequence[MapCalibrationPoint]) -> AffineTransform:
        """Fit from map points; replaces any previous calibration."""
        transform = fit_map_calibration(points, self.strategy)
        self._transform = transform
        self._inverse = invert_affine(transform)
        return transform

    def load(self, transform: AffineTransform) -> None:
        """Use a previously stored transform."""
        self._inverse = invert_affine(transform)
        self._transform = transform

    def reset(self) -> None:
        self._transform = None
        self._inverse = None

    def to_real_world(self, map_point: Point3D) -> Optional[Point3D]:
        if self._transform is None:
            return None
        return self._transform.apply(map_point)

    def to_map(self, real_world_point: Point3D) -> Optional[Point3D]:
        if self._inverse is None:
            return None
        return self._inverse.apply(real_world_point)
