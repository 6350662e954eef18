"""
Unit tests for antenna placement calibration.
"""

import math

import pytest

from uwb_calibration.affine import AffineFitStrategy
from uwb_calibration.antenna_calibration import (
    AntennaAffineCalibration,
    average_point,
    estimate_antenna_config,
)
from uwb_calibration.errors import (
    CollinearPointsError,
    InsufficientPointsError,
    InvalidInputError,
    SingularMatrixError,
)
from uwb_calibration.models import Matrix2x2, Point3D


@pytest.fixture
def simple_tags():
    """Antenna at (3, 3) with no rotation, two readings per tag."""
    true_positions = {
        "tag1": Point3D(5.0, 5.0),
        "tag2": Point3D(7.0, 5.0),
        "tag3": Point3D(6.0, 7.0),
    }
    measured = {
        "tag1": [Point3D(2.0, 2.0), Point3D(2.01, 1.99)],
        "tag2": [Point3D(4.0, 2.0), Point3D(3.99, 2.01)],
        "tag3": [Point3D(3.0, 4.0), Point3D(3.01, 3.99)],
    }
    return measured, true_positions


@pytest.fixture
def mirrored_tags():
    """Antenna near (2, 2) observing tags through a mirrored local frame."""
    true_positions = {
        "tag1": Point3D(1.0, 0.0),
        "tag2": Point3D(0.0, 1.0),
        "tag3": Point3D(1.0, 1.0),
    }
    measured = {
        "tag1": [Point3D(-0.7, 1.4), Point3D(-0.72, 1.42), Point3D(-0.68, 1.38)],
        "tag2": [Point3D(-1.4, 0.7), Point3D(-1.42, 0.72), Point3D(-1.38, 0.68)],
        "tag3": [Point3D(-0.7, 0.7), Point3D(-0.72, 0.72), Point3D(-0.68, 0.68)],
    }
    return measured, true_positions


class TestEstimateAffineTransform:
    """Test the low-level affine fit."""

    @pytest.mark.parametrize("strategy", list(AffineFitStrategy))
    def test_translation(self, strategy):
        calibration = AntennaAffineCalibration()
        source = [Point3D(0.0, 0.0), Point3D(1.0, 0.0), Point3D(0.0, 1.0)]
        target = [Point3D(2.0, 3.0), Point3D(3.0, 3.0), Point3D(2.0, 4.0)]
        transform = calibration.estimate_affine_transform(source, target, strategy)
        assert abs(transform.determinant) > 1e-10
        assert transform.tx == pytest.approx(2.0, abs=0.01)
        assert transform.ty == pytest.approx(3.0, abs=0.01)
        assert transform.linear.a11 == pytest.approx(1.0, abs=0.01)
        assert transform.linear.a22 == pytest.approx(1.0, abs=0.01)

    def test_z_is_ignored(self):
        calibration = AntennaAffineCalibration()
        source = [Point3D(0.0, 0.0, 4.0), Point3D(1.0, 0.0, -2.0), Point3D(0.0, 1.0, 9.0)]
        target = [Point3D(2.0, 3.0), Point3D(3.0, 3.0), Point3D(2.0, 4.0)]
        transform = calibration.estimate_affine_transform(source, target)
        assert transform.accuracy == pytest.approx(0.0, abs=1e-9)

    def test_insufficient_points(self):
        calibration = AntennaAffineCalibration()
        with pytest.raises(InsufficientPointsError) as exc_info:
            calibration.estimate_affine_transform(
                [Point3D(0.0, 0.0), Point3D(1.0, 0.0)],
                [Point3D(2.0, 3.0), Point3D(3.0, 3.0)],
            )
        assert exc_info.value.required == 3
        assert exc_info.value.provided == 2

    def test_mismatched_counts(self):
        calibration = AntennaAffineCalibration()
        with pytest.raises(InvalidInputError):
            calibration.estimate_affine_transform(
                [Point3D(0.0, 0.0), Point3D(1.0, 0.0), Point3D(0.0, 1.0)],
                [Point3D(2.0, 3.0), Point3D(3.0, 3.0)],
            )

    def test_collinear_is_singular(self):
        calibration = AntennaAffineCalibration()
        line = [Point3D(0.0, 0.0), Point3D(1.0, 1.0), Point3D(2.0, 2.0)]
        with pytest.raises(SingularMatrixError):
            calibration.estimate_affine_transform(line, line)


class TestExtractRotationAngle:
    """Test heading extraction."""

    def test_forty_five_degrees(self):
        calibration = AntennaAffineCalibration()
        result = calibration.extract_rotation_angle(Matrix2x2.rotation(math.pi / 4))
        assert result.angle_degrees == pytest.approx(45.0, abs=1.0)
        assert result.scale_x == pytest.approx(1.0, abs=0.01)
        assert result.scale_y == pytest.approx(1.0, abs=0.01)
        assert result.rotation.determinant == pytest.approx(1.0, abs=0.01)


class TestEstimateAntennaConfig:
    """Test the full antenna workflow."""

    def test_simple_placement(self, simple_tags):
        measured, true_positions = simple_tags
        config = AntennaAffineCalibration().estimate_antenna_config(measured, true_positions)
        assert config.x == pytest.approx(3.0, abs=0.5)
        assert config.y == pytest.approx(3.0, abs=0.5)
        assert abs(config.angle_degrees) < 10.0
        assert config.rmse < 0.1
        assert config.scale_x == pytest.approx(1.0, abs=0.2)
        assert config.scale_y == pytest.approx(1.0, abs=0.2)
        assert config.tag_count == 3

    def test_mirrored_frame(self, mirrored_tags):
        measured, true_positions = mirrored_tags
        config = estimate_antenna_config(measured, true_positions)
        assert math.isfinite(config.x)
        assert math.isfinite(config.y)
        assert math.isfinite(config.angle_degrees)
        assert config.rmse >= 0.0
        assert config.x == pytest.approx(2.0, abs=1.0)
        assert config.y == pytest.approx(2.0, abs=1.0)

    def test_strategies_agree(self, simple_tags):
        measured, true_positions = simple_tags
        normal = estimate_antenna_config(measured, true_positions, AffineFitStrategy.NORMAL_EQUATIONS)
        direct = estimate_antenna_config(measured, true_positions, AffineFitStrategy.DIRECT_LEAST_SQUARES)
        assert normal.x == pytest.approx(direct.x, abs=1e-9)
        assert normal.angle_degrees == pytest.approx(direct.angle_degrees, abs=1e-9)

    def test_no_common_tags(self):
        measured = {"tag1": [Point3D(1.0, 1.0)], "tag2": [Point3D(2.0, 2.0)]}
        true_positions = {"tag3": Point3D(3.0, 3.0), "tag4": Point3D(4.0, 4.0)}
        with pytest.raises(InsufficientPointsError):
            estimate_antenna_config(measured, true_positions)

    def test_tag_without_observations_is_skipped(self, simple_tags):
        measured, true_positions = simple_tags
        measured = dict(measured, tag3=[])
        with pytest.raises(InsufficientPointsError) as exc_info:
            estimate_antenna_config(measured, true_positions)
        assert exc_info.value.provided == 2

    def test_collinear_tags(self):
        measured = {
            "a": [Point3D(0.0, 0.0)],
            "b": [Point3D(1.0, 1.0)],
            "c": [Point3D(2.0, 2.0)],
        }
        true_positions = {"a": Point3D(0.0, 0.0), "b": Point3D(1.0, 0.0), "c": Point3D(0.0, 1.0)}
        with pytest.raises(CollinearPointsError):
            estimate_antenna_config(measured, true_positions)

    def test_averaging(self):
        points = [Point3D(1.0, 1.0, 5.0), Point3D(1.1, 0.9, 2.0), Point3D(0.9, 1.1, 0.0)]
        mean = average_point(points)
        assert mean.x == pytest.approx(1.0)
        assert mean.y == pytest.approx(1.0)
        assert mean.z == 0.0

    def test_payload(self, simple_tags):
        measured, true_positions = simple_tags
        config = estimate_antenna_config(measured, true_positions)
        payload = config.to_payload()
        assert payload["x"] == config.x
        assert payload["tag_count"] == 3
        assert config.to_tuple() == (config.x, config.y, config.angle_degrees)


class TestCorrespondenceInfo:
    """Test the per-tag observation summary."""

    def test_summary(self, simple_tags):
        measured, true_positions = simple_tags
        measured = dict(measured, extra=[])
        info = AntennaAffineCalibration().get_correspondence_info(measured, true_positions)
        assert info["num_tags"] == 4
        assert info["common_tags"] == ["tag1", "tag2", "tag3"]
        assert info["tags"]["tag1"]["count"] == 2
        assert info["tags"]["tag1"]["mean"][0] == pytest.approx(2.005)
        assert info["tags"]["tag1"]["spread_m"] > 0.0
        assert info["tags"]["extra"]["count"] == 0
        assert not info["tags"]["extra"]["has_true_position"]


class TestNonFiniteInput:
    """Test that NaN or infinite coordinates are rejected before solving."""

    @pytest.mark.parametrize("strategy", list(AffineFitStrategy))
    def test_nan_source_point(self, strategy):
        calibration = AntennaAffineCalibration()
        source = [Point3D(2.0, 2.0), Point3D(math.nan, 2.0), Point3D(3.0, 4.0)]
        target = [Point3D(5.0, 5.0), Point3D(7.0, 5.0), Point3D(6.0, 7.0)]
        with pytest.raises(InvalidInputError):
            calibration.estimate_affine_transform(source, target, strategy)

    @pytest.mark.parametrize("strategy", list(AffineFitStrategy))
    def test_infinite_target_point(self, strategy):
        calibration = AntennaAffineCalibration()
        source = [Point3D(2.0, 2.0), Point3D(4.0, 2.0), Point3D(3.0, 4.0)]
        target = [Point3D(5.0, 5.0), Point3D(7.0, math.inf), Point3D(6.0, 7.0)]
        with pytest.raises(InvalidInputError):
            calibration.estimate_affine_transform(source, target, strategy)

    @pytest.mark.parametrize("strategy", list(AffineFitStrategy))
    def test_nan_observation(self, simple_tags, strategy):
        measured, true_positions = simple_tags
        measured = dict(measured, tag2=[Point3D(math.nan, 2.0)])
        with pytest.raises(InvalidInputError):
            estimate_antenna_config(measured, true_positions, strategy)

    def test_nan_true_position(self, simple_tags):
        measured, true_positions = simple_tags
        true_positions = dict(true_positions, tag3=Point3D(6.0, math.nan))
        with pytest.raises(InvalidInputError):
            estimate_antenna_config(measured, true_positions)
