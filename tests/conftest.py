"""
Pytest configuration and shared fixtures.
"""

import math

import pytest

from uwb_calibration.models import (
    CorrespondencePoint,
    ObservationPoint,
    Point3D,
    SignalQuality,
)


# === Correspondence Fixtures ===

@pytest.fixture
def translation_correspondences():
    """Unit triangle shifted by (2, 3)."""
    return [
        CorrespondencePoint(Point3D(0.0, 0.0), Point3D(2.0, 3.0)),
        CorrespondencePoint(Point3D(1.0, 0.0), Point3D(3.0, 3.0)),
        CorrespondencePoint(Point3D(0.0, 1.0), Point3D(2.0, 4.0)),
    ]


@pytest.fixture
def similarity_correspondences():
    """Five points under a 30 degree rotation, scale 2 and shift (10, -4)."""
    angle = math.radians(30.0)
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    measured = [
        Point3D(0.0, 0.0),
        Point3D(4.0, 0.0),
        Point3D(4.0, 3.0),
        Point3D(0.0, 3.0),
        Point3D(1.5, 1.0),
    ]
    points = []
    for p in measured:
        reference = Point3D(
            2.0 * (cos_a * p.x - sin_a * p.y) + 10.0,
            2.0 * (sin_a * p.x + cos_a * p.y) - 4.0,
        )
        points.append(CorrespondencePoint(p, reference))
    return points


@pytest.fixture
def noisy_correspondences():
    """Six points near a shear-free map with a few millimetres of noise."""
    measured = [
        Point3D(0.0, 0.0),
        Point3D(10.0, 0.0),
        Point3D(10.0, 8.0),
        Point3D(0.0, 8.0),
        Point3D(5.0, 4.0),
        Point3D(2.0, 6.0),
    ]
    noise = [(0.003, -0.002), (-0.004, 0.001), (0.002, 0.004),
             (-0.001, -0.003), (0.0, 0.002), (0.003, 0.0)]
    points = []
    for p, (nx, ny) in zip(measured, noise):
        reference = Point3D(1.2 * p.x - 0.3 * p.y + 4.0 + nx, 0.3 * p.x + 1.2 * p.y + 1.0 + ny)
        points.append(CorrespondencePoint(p, reference))
    return points


# === Observation Fixtures ===

@pytest.fixture
def make_observation():
    """Factory for observations with sensible defaults."""

    def _make(x=0.0, y=0.0, z=0.0, *, strength=0.9, los=True, confidence=0.9,
              error=0.1, distance=5.0, rssi=-60.0, antenna_id="antenna-1",
              session_id="session-1", timestamp=0.0):
        return ObservationPoint(
            antenna_id=antenna_id,
            position=Point3D(x, y, z),
            quality=SignalQuality(
                strength=strength,
                is_line_of_sight=los,
                confidence_level=confidence,
                error_estimate=error,
            ),
            distance=distance,
            rssi=rssi,
            session_id=session_id,
            timestamp=timestamp,
        )

    return _make


@pytest.fixture
def observation_series(make_observation):
    """Ten observations walking along X, one per second."""
    return [
        make_observation(float(i), 2.0 * i, distance=float(i), rssi=-50.0 - i, timestamp=float(i))
        for i in range(10)
    ]
