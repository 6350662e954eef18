"""
Rotation / scale decomposition of the 2x2 linear part of an affine map.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from .linalg import svd_2x2
from .models import Matrix2x2

logger = logging.getLogger(__name__)

_REFLECT_SECOND_AXIS = np.diag([1.0, -1.0])


@dataclass(frozen=True)
class RotationExtraction:
    """Proper rotation and per-axis scale recovered from a linear map."""

    angle_radians: float
    scale_x: float
    scale_y: float
    rotation: Matrix2x2
    reflected: bool = False

    @property
    def angle_degrees(self) -> float:
        return math.degrees(self.angle_radians)

    @property
    def scale_factors(self) -> tuple[float, float]:
        return (self.scale_x, self.scale_y)


def extract_rotation(linear: Matrix2x2) -> RotationExtraction:
    """
    Decompose ``linear`` as A = U S V^T and take R = U V^T.

    If R is a reflection (det < 0) the second singular direction is flipped,
    R = U diag(1, -1) V^T, and the second scale factor changes sign. The
    returned rotation therefore always has det(R) = +1.
    """
    u, s, vt = svd_2x2(linear.to_array())
    rotation = u @ vt
    scale_x, scale_y = float(s[0]), float(s[1])

    reflected = bool(np.linalg.det(rotation) < 0)
    if reflected:
        rotation = u @ _REFLECT_SECOND_AXIS @ vt
        scale_y = -scale_y
        logger.debug("Linear part contains a reflection; flipped second singular value")

    angle = math.atan2(rotation[1, 0], rotation[0, 0])
    return RotationExtraction(
        angle_radians=angle,
        scale_x=scale_x,
        scale_y=scale_y,
        rotation=Matrix2x2.from_array(rotation),
        reflected=reflected,
    )
