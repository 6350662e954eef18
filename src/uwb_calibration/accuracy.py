"""
Round-trip accuracy of a fitted transform.
"""

from __future__ import annotations

import math
from typing import Callable, Sequence

from .models import Point3D


def calculate_rmse(
    measured: Sequence[Point3D],
    reference: Sequence[Point3D],
    forward: Callable[[Point3D], Point3D],
) -> float:
    """
    Root-mean-square Euclidean error of ``forward(measured[i])`` against
    ``reference[i]``. Returns 0.0 for empty or mismatched input.
    """
    if not measured or len(measured) != len(reference):
        return 0.0
    total = 0.0
    for source, target in zip(measured, reference):
        error = forward(source).distance_to(target)
        total += error * error
    return math.sqrt(total / len(measured))
