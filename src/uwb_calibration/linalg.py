"""
Small dense linear-algebra helpers shared by the affine solvers.

Parameter order used throughout: (a11, a12, a21, a22, tx, ty), i.e.
    x' = a11*u + a12*v + tx
    y' = a21*u + a22*v + ty
"""

from __future__ import annotations

import logging
import math
from typing import Sequence, Tuple

import numpy as np

from .config import TOLERANCES
from .errors import CalculationFailedError, SingularMatrixError
from .models import Point3D

logger = logging.getLogger(__name__)

AFFINE_PARAMETER_COUNT = 6


def build_affine_design(
    source: Sequence[Point3D],
    target: Sequence[Point3D],
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the 2n x 6 design matrix and the 2n right-hand side.

        [ u v 0 0 1 0 ]   [a11]   [x]
        [ 0 0 u v 0 1 ] * [a12] = [y]
                          [a21]
                          [a22]
                          [tx ]
                          [ty ]
    """
    n = len(source)
    design = np.zeros((2 * n, AFFINE_PARAMETER_COUNT))
    rhs = np.zeros(2 * n)
    for i, (p, q) in enumerate(zip(source, target)):
        design[2 * i] = (p.x, p.y, 0.0, 0.0, 1.0, 0.0)
        design[2 * i + 1] = (0.0, 0.0, p.x, p.y, 0.0, 1.0)
        rhs[2 * i] = q.x
        rhs[2 * i + 1] = q.y
    return design, rhs


def gauss_jordan_solve(matrix: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    """
    Solve a square system by Gauss-Jordan elimination with partial pivoting.

    Raises:
        SingularMatrixError: a pivot magnitude falls below the singular tolerance.
        CalculationFailedError: the system is not square or sizes disagree.
    """
    n = matrix.shape[0]
    if matrix.shape != (n, n) or rhs.shape[0] != n:
        raise CalculationFailedError(
            f"matrix dimensions do not match ({matrix.shape} vs {rhs.shape})"
        )

    augmented = np.array(matrix, dtype=float)
    result = np.array(rhs, dtype=float)

    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(augmented[col:, col])))
        if pivot_row != col:
            augmented[[col, pivot_row]] = augmented[[pivot_row, col]]
            result[[col, pivot_row]] = result[[pivot_row, col]]

        pivot = augmented[col, col]
        if not math.isfinite(pivot) or abs(pivot) < TOLERANCES["singular"]:
            raise SingularMatrixError(
                f"Matrix is singular (pivot {pivot:.3g} in column {col}); "
                "check the reference point layout"
            )

        augmented[col] /= pivot
        result[col] /= pivot

        for row in range(n):
            if row == col:
                continue
            factor = augmented[row, col]
            if factor != 0.0:
                augmented[row] -= factor * augmented[col]
                result[row] -= factor * result[col]

    return result


def solve_normal_equations(design: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    """Least squares via A^T A x = A^T b and Gauss-Jordan elimination."""
    rows, cols = design.shape
    if rows < cols:
        raise CalculationFailedError(f"underdetermined system ({rows} rows, {cols} unknowns)")
    ata = design.T @ design
    atb = design.T @ rhs
    return gauss_jordan_solve(ata, atb)


def solve_direct_least_squares(design: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    """Least squares on the design matrix itself (SVD based), no normal equations."""
    rows, cols = design.shape
    if rows < cols:
        raise CalculationFailedError(f"underdetermined system ({rows} rows, {cols} unknowns)")
    try:
        solution, _, rank, singular_values = np.linalg.lstsq(design, rhs, rcond=None)
    except np.linalg.LinAlgError as exc:
        raise CalculationFailedError(f"least-squares routine did not converge: {exc}") from exc
    logger.debug("lstsq rank=%d singular values=%s", rank, singular_values)
    if rank < cols:
        raise SingularMatrixError(
            f"Matrix is rank deficient (rank {rank} < {cols}); points may be collinear"
        )
    return solution


def svd_2x2(matrix: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return (U, S, Vt) of a 2x2 matrix with singular values descending."""
    try:
        return np.linalg.svd(matrix)
    except np.linalg.LinAlgError as exc:
        raise CalculationFailedError(f"SVD did not converge: {exc}") from exc
