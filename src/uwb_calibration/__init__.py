"""
UWB calibration package.

Fits map/antenna-local coordinates onto real-world coordinates from tag
correspondences and conditions raw UWB observation streams.
"""

from .affine import (
    AffineFitStrategy,
    AffineTransform,
    MapToRealWorldTransformer,
    fit_affine,
    fit_map_calibration,
    invert_affine,
    map_to_real_world,
    real_world_to_map,
)
from .antenna_calibration import AntennaAffineCalibration, AntennaConfig, estimate_antenna_config
from .errors import (
    CalculationFailedError,
    CalibrationError,
    CollinearPointsError,
    ConfigFileError,
    InsufficientPointsError,
    InvalidInputError,
    SingularMatrixError,
)
from .models import (
    CorrespondencePoint,
    MapCalibrationPoint,
    Matrix2x2,
    ObservationPoint,
    Point3D,
    SignalQuality,
)
from .procrustes import CalibrationTransform, estimate_calibration
from .quality import DataQualityMonitor
from .preprocessing import ProcessingConfig, SensorDataProcessor

__all__ = [
    "config",
    "models",
    "errors",
    "validation",
    "linalg",
    "accuracy",
    "rotation",
    "affine",
    "procrustes",
    "antenna_calibration",
    "quality",
    "preprocessing",
    "csv_config",
    "logging_config",
    "AffineFitStrategy",
    "AffineTransform",
    "AntennaAffineCalibration",
    "AntennaConfig",
    "CalculationFailedError",
    "CalibrationError",
    "CalibrationTransform",
    "CollinearPointsError",
    "ConfigFileError",
    "CorrespondencePoint",
    "DataQualityMonitor",
    "InsufficientPointsError",
    "InvalidInputError",
    "MapCalibrationPoint",
    "MapToRealWorldTransformer",
    "Matrix2x2",
    "ObservationPoint",
    "Point3D",
    "ProcessingConfig",
    "SensorDataProcessor",
    "SignalQuality",
    "SingularMatrixError",
    "estimate_antenna_config",
    "estimate_calibration",
    "fit_affine",
    "fit_map_calibration",
    "invert_affine",
    "map_to_real_world",
    "real_world_to_map",
]
