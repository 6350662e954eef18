"""
Loaders for the calibration CSV files.

TAG_CONFIG.csv:
    NAME,POSITION_X,POSITION_Y
    Tag 1,14.090,18.134

INITIAL_ANTENNA_CONFIG.csv (ANGLE or ROTATION column, degrees):
    NAME,POSITION_X,POSITION_Y,ANGLE
    Antenna 1,14.500,8.000,90.0
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple, Union

import pandas as pd

from .config import CSV_FILES, DEFAULT_ANTENNA_CONFIG, DEFAULT_TAG_CONFIG
from .errors import ConfigFileError
from .models import Point3D

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class AntennaPlacement:
    """Initial antenna position and rotation in degrees."""

    position: Point3D
    rotation: float


def _read_table(path: PathLike) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Calibration file not found: {path.name}")
    try:
        frame = pd.read_csv(path, dtype=str, skipinitialspace=True, keep_default_na=False)
    except pd.errors.EmptyDataError as exc:
        raise ConfigFileError("file is empty") from exc
    except pd.errors.ParserError as exc:
        raise ConfigFileError(f"malformed CSV: {exc}") from exc
    frame.columns = [str(c).strip().upper() for c in frame.columns]
    if frame.empty:
        raise ConfigFileError("file has a header but no data rows")
    return frame


def _check_position_header(columns: list[str], min_columns: int) -> None:
    if len(columns) < min_columns:
        raise ConfigFileError(f"expected at least {min_columns} columns, found {len(columns)}")
    if columns[0] != "NAME":
        raise ConfigFileError("first column must be NAME")
    if "POSITION_X" not in columns[1]:
        raise ConfigFileError("second column must be POSITION_X")
    if "POSITION_Y" not in columns[2]:
        raise ConfigFileError("third column must be POSITION_Y")


def _parse_float(raw: str, column: str, line: int) -> float:
    # Short rows come back from pandas as NaN
    if pd.isna(raw) or not str(raw).strip():
        raise ConfigFileError(f"missing {column} value", line=line)
    text = str(raw).strip()
    try:
        value = float(text)
    except ValueError as exc:
        raise ConfigFileError(f"invalid {column} value: {text!r}", line=line) from exc
    if not math.isfinite(value):
        raise ConfigFileError(f"invalid {column} value: {text!r}", line=line)
    return value


def _parse_name(raw: str, line: int) -> str:
    if pd.isna(raw) or not str(raw).strip():
        raise ConfigFileError("missing NAME value", line=line)
    return str(raw).strip()


def _rows(frame: pd.DataFrame):
    # Data starts on file line 2, after the header.
    for index, row in enumerate(frame.itertuples(index=False, name=None)):
        yield index + 2, row


def load_tag_config(path: PathLike) -> Dict[str, Point3D]:
    """Read known tag positions keyed by tag name."""
    frame = _read_table(path)
    columns = list(frame.columns)
    _check_position_header(columns, 3)

    tags: Dict[str, Point3D] = {}
    for line, row in _rows(frame):
        name = _parse_name(row[0], line)
        x = _parse_float(row[1], "POSITION_X", line)
        y = _parse_float(row[2], "POSITION_Y", line)
        tags[name] = Point3D(x, y, 0.0)

    logger.info("Loaded %d tags from %s", len(tags), Path(path).name)
    return tags


def load_initial_antenna_config(path: PathLike) -> Dict[str, AntennaPlacement]:
    """Read initial antenna placements keyed by antenna name."""
    frame = _read_table(path)
    columns = list(frame.columns)
    _check_position_header(columns, 4)

    angle_columns = [i for i, c in enumerate(columns) if c in ("ANGLE", "ROTATION")]
    if not angle_columns:
        raise ConfigFileError("no ANGLE or ROTATION column")
    angle_index = angle_columns[0]

    antennas: Dict[str, AntennaPlacement] = {}
    for line, row in _rows(frame):
        name = _parse_name(row[0], line)
        x = _parse_float(row[1], "POSITION_X", line)
        y = _parse_float(row[2], "POSITION_Y", line)
        rotation = _parse_float(row[angle_index], columns[angle_index], line)
        antennas[name] = AntennaPlacement(position=Point3D(x, y, 0.0), rotation=rotation)

    logger.info("Loaded %d antennas from %s", len(antennas), Path(path).name)
    return antennas


def default_tag_config() -> Dict[str, Point3D]:
    return {item["name"]: Point3D.from_sequence(item["position"]) for item in DEFAULT_TAG_CONFIG}


def default_antenna_config() -> Dict[str, AntennaPlacement]:
    return {
        item["name"]: AntennaPlacement(
            position=Point3D.from_sequence(item["position"]),
            rotation=item["rotation_deg"],
        )
        for item in DEFAULT_ANTENNA_CONFIG
    }


def load_calibration_configs(
    directory: PathLike,
) -> Tuple[Dict[str, Point3D], Dict[str, AntennaPlacement]]:
    """
    Read TAG_CONFIG.csv and INITIAL_ANTENNA_CONFIG.csv from a directory.

    A missing file falls back to the defaults in ``config``; a present but
    malformed file raises ``ConfigFileError``.
    """
    directory = Path(directory)
    tag_path = directory / CSV_FILES["tag_config"]
    antenna_path = directory / CSV_FILES["antenna_config"]

    if tag_path.exists():
        tags = load_tag_config(tag_path)
    else:
        logger.warning("%s not found in %s; using default tags", tag_path.name, directory)
        tags = default_tag_config()

    if antenna_path.exists():
        antennas = load_initial_antenna_config(antenna_path)
    else:
        logger.warning("%s not found in %s; using default antennas", antenna_path.name, directory)
        antennas = default_antenna_config()

    return tags, antennas
