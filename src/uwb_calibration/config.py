"""
Global configuration for the UWB calibration engine.
"""

from __future__ import annotations

# Fewest correspondences that determine a 2D affine map (6 unknowns).
MIN_CORRESPONDENCES = 3

# Numerical tolerances shared by the solvers.
TOLERANCES = {
    "singular": 1e-10,  # Pivot / determinant magnitude treated as zero
    "coincident_m": 1e-10,  # Distance under which two points are the same
    "z_variance": 1e-10,  # Denominator of the 1D Z regression
    "scale_variance": 1e-12,  # Sum of squares under which an axis has no information
    "rotation_determinant": 1e-9,  # Allowed deviation of det(R) from +1
}

# Collinearity test for correspondence sets. The tolerance on the spanned
# triangle area scales with the squared bounding-box diagonal, so the same
# setting works for metres and for normalised map coordinates.
COLLINEARITY = {
    "relative_area": 1e-4,
    "min_area": 1e-10,
}

# Single observation and batch quality thresholds.
QUALITY = {
    "min_strength": 0.5,
    "min_confidence": 0.6,
    "min_rssi_dbm": -75.0,
    "max_error_estimate_m": 3.0,
    "min_line_of_sight_ratio": 0.5,
}

# Observation preprocessing defaults.
PREPROCESSING = {
    "first_trim": 20,
    "end_trim": 20,
    "moving_average_window_size": 10,
    "filter_nlos": False,
}

# File names looked up by the calibration CSV loaders.
CSV_FILES = {
    "tag_config": "TAG_CONFIG.csv",
    "antenna_config": "INITIAL_ANTENNA_CONFIG.csv",
}

# Fallback tag positions when TAG_CONFIG.csv is missing. Positions in metres.
DEFAULT_TAG_CONFIG = [
    {"name": "Tag 1", "position": (14.090, 18.134, 0.0)},
    {"name": "Tag 2", "position": (15.260, 18.090, 0.0)},
    {"name": "Tag 3", "position": (14.592, 16.592, 0.0)},
]

# Fallback antenna placement when INITIAL_ANTENNA_CONFIG.csv is missing.
DEFAULT_ANTENNA_CONFIG = [
    {"name": "Antenna 1", "position": (14.500, 8.000, 0.0), "rotation_deg": 90.0},
]
