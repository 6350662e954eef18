"""
Exceptions raised by the calibration engine.

Every failure is recoverable: callers abort the current calibration attempt
and surface ``str(error)`` to the operator.
"""

from __future__ import annotations

from typing import Optional


class CalibrationError(Exception):
    """Base class for all calibration engine errors."""


class InsufficientPointsError(CalibrationError):
    """Fewer correspondences than the solver needs."""

    def __init__(self, required: int, provided: int):
        self.required = required
        self.provided = provided
        super().__init__(
            f"Not enough calibration points: required {required}, provided {provided}"
        )


class SingularMatrixError(CalibrationError):
    """A fitted or supplied matrix is not invertible within tolerance."""

    def __init__(self, message: str = "Matrix is singular; check the reference point layout"):
        super().__init__(message)


class InvalidInputError(CalibrationError, ValueError):
    """Degenerate, mismatched or non-finite input."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid input: {reason}")


class CollinearPointsError(InvalidInputError):
    """Correspondence points lie on a single line."""

    def __init__(self, coordinate_type: str, area: float, tolerance: float):
        self.coordinate_type = coordinate_type
        self.area = area
        self.tolerance = tolerance
        super().__init__(
            f"{coordinate_type} points are collinear "
            f"(spanned area {area:.6g} < tolerance {tolerance:.6g}); "
            "place the tags at distinct, non-aligned positions"
        )


class CalculationFailedError(CalibrationError):
    """Internal solver failure."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Calculation failed: {reason}")


class ConfigFileError(CalibrationError, ValueError):
    """A calibration CSV file is empty, has a bad header or a bad value."""

    def __init__(self, reason: str, line: Optional[int] = None):
        self.reason = reason
        self.line = line
        if line is None:
            super().__init__(f"Invalid calibration file: {reason}")
        else:
            super().__init__(f"Invalid calibration file (line {line}): {reason}")
