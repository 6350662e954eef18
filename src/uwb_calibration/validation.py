"""
Sanity checks run on correspondence sets before any solve.

A collinear set makes the affine system rank-deficient and numerically
unstable instead of cleanly singular, so it is rejected up front.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from .config import COLLINEARITY, MIN_CORRESPONDENCES, TOLERANCES
from .errors import CollinearPointsError, InsufficientPointsError, InvalidInputError
from .models import CorrespondencePoint, Point3D, split_correspondences

logger = logging.getLogger(__name__)


def triangle_area(p1: Point3D, p2: Point3D, p3: Point3D) -> float:
    """Unsigned area of the XY triangle p1-p2-p3."""
    cross = (p2.x - p1.x) * (p3.y - p1.y) - (p3.x - p1.x) * (p2.y - p1.y)
    return abs(cross) / 2.0


def bounding_box_diagonal(points: Sequence[Point3D]) -> float:
    """Length of the XY bounding-box diagonal."""
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return math.hypot(max(xs) - min(xs), max(ys) - min(ys))


def collinearity_tolerance(
    points: Sequence[Point3D],
    *,
    relative_area: Optional[float] = None,
    min_area: Optional[float] = None,
) -> float:
    """
    Area tolerance for the collinearity test, scaled to the point spread.

    Returns max(min_area, relative_area * diagonal**2), with the defaults
    taken from ``config.COLLINEARITY``.
    """
    relative_area = COLLINEARITY["relative_area"] if relative_area is None else relative_area
    min_area = COLLINEARITY["min_area"] if min_area is None else min_area
    diagonal = bounding_box_diagonal(points)
    return max(min_area, relative_area * diagonal * diagonal)


def spanned_area(points: Sequence[Point3D]) -> float:
    """
    Largest triangle area spanned by the first point, the point farthest
    from it, and any other point. For three points this is the triangle area.
    """
    if len(points) < 3:
        return 0.0
    anchor = points[0]
    far_index = max(range(1, len(points)), key=lambda i: points[i].distance_to(anchor))
    far = points[far_index]
    return max(
        triangle_area(anchor, far, points[i])
        for i in range(1, len(points))
        if i != far_index
    )


def ensure_not_collinear(
    points: Sequence[Point3D],
    coordinate_type: str,
    tolerance: Optional[float] = None,
) -> None:
    if len(points) < 3:
        return
    tolerance = collinearity_tolerance(points) if tolerance is None else tolerance
    area = spanned_area(points)
    logger.debug("%s spanned area %.6g (tolerance %.6g)", coordinate_type, area, tolerance)
    if area < tolerance:
        raise CollinearPointsError(coordinate_type, area, tolerance)


def ensure_not_coincident(points: Sequence[Point3D], coordinate_type: str) -> None:
    first = points[0]
    if all(p.distance_to(first) < TOLERANCES["coincident_m"] for p in points):
        raise InvalidInputError(f"all {coordinate_type} points are at the same position")


def ensure_finite(points: Sequence[Point3D], coordinate_type: str) -> None:
    for index, point in enumerate(points):
        if not point.is_finite():
            raise InvalidInputError(
                f"{coordinate_type} point {index} has a non-finite coordinate: {point.to_tuple()}"
            )


def validate_point_sets(
    measured: Sequence[Point3D],
    reference: Sequence[Point3D],
    *,
    collinearity_tol: Optional[float] = None,
    check_reference_collinearity: bool = True,
) -> None:
    """
    Validate paired measured/reference point lists.

    Raises:
        InvalidInputError: on length mismatch, non-finite, coincident or
            collinear points (``CollinearPointsError`` for the latter).
        InsufficientPointsError: fewer than ``MIN_CORRESPONDENCES`` pairs.
    """
    if len(measured) != len(reference):
        raise InvalidInputError(
            f"measured and reference point counts differ ({len(measured)} != {len(reference)})"
        )
    if len(measured) < MIN_CORRESPONDENCES:
        raise InsufficientPointsError(required=MIN_CORRESPONDENCES, provided=len(measured))

    ensure_finite(measured, "measured")
    ensure_finite(reference, "reference")
    ensure_not_coincident(measured, "measured")
    ensure_not_coincident(reference, "reference")
    ensure_not_collinear(measured, "measured", collinearity_tol)
    if check_reference_collinearity:
        ensure_not_collinear(reference, "reference", collinearity_tol)


def validate_correspondences(
    points: Sequence[CorrespondencePoint],
    *,
    collinearity_tol: Optional[float] = None,
    check_reference_collinearity: bool = True,
) -> None:
    """Validate a correspondence list; see ``validate_point_sets``."""
    if len(points) < MIN_CORRESPONDENCES:
        raise InsufficientPointsError(required=MIN_CORRESPONDENCES, provided=len(points))
    measured, reference = split_correspondences(points)
    validate_point_sets(
        measured,
        reference,
        collinearity_tol=collinearity_tol,
        check_reference_collinearity=check_reference_collinearity,
    )
