"""
Preprocessing of raw observation streams: trimming, NLoS filtering and a
trailing moving average.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence

from .config import PREPROCESSING
from .errors import InvalidInputError
from .models import ObservationPoint, Point3D, SignalQuality

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessingConfig:
    first_trim: int = PREPROCESSING["first_trim"]
    end_trim: int = PREPROCESSING["end_trim"]
    moving_average_window_size: int = PREPROCESSING["moving_average_window_size"]
    filter_nlos: bool = PREPROCESSING["filter_nlos"]

    def __post_init__(self) -> None:
        if self.first_trim < 0 or self.end_trim < 0:
            raise InvalidInputError("trim counts must not be negative")
        if self.moving_average_window_size < 1:
            raise InvalidInputError("moving average window size must be at least 1")


@dataclass(frozen=True)
class ProcessingStatistics:
    original_count: int
    processed_count: int
    trimmed_count: int
    original_std_dev: float
    processed_std_dev: float

    @property
    def trim_rate(self) -> float:
        if self.original_count <= 0:
            return 0.0
        return self.trimmed_count / self.original_count

    @property
    def std_dev_improvement(self) -> float:
        if self.original_std_dev <= 0:
            return 0.0
        return (self.original_std_dev - self.processed_std_dev) / self.original_std_dev


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _window_bounds(index: int, window_size: int) -> slice:
    return slice(max(0, index - window_size + 1), index + 1)


class SensorDataProcessor:
    """Trim -> optional NLoS drop -> moving average."""

    def __init__(self, config: ProcessingConfig | None = None):
        self.config = config or ProcessingConfig()

    def process_observations(self, observations: Sequence[ObservationPoint]) -> List[ObservationPoint]:
        trimmed = self.trim(observations)
        filtered = self.filter_nlos(trimmed) if self.config.filter_nlos else trimmed
        smoothed = self.apply_moving_average(filtered)
        logger.debug(
            "Processed %d observations: %d after trim, %d after NLoS filter",
            len(observations), len(trimmed), len(filtered),
        )
        return smoothed

    def trim(self, observations: Sequence[ObservationPoint]) -> List[ObservationPoint]:
        """Drop head/tail samples; short sequences pass through unchanged."""
        total = len(observations)
        if total <= self.config.first_trim + self.config.end_trim:
            return list(observations)
        return list(observations[self.config.first_trim:total - self.config.end_trim])

    @staticmethod
    def filter_nlos(observations: Sequence[ObservationPoint]) -> List[ObservationPoint]:
        return [o for o in observations if o.quality.is_line_of_sight]

    def apply_moving_average(self, observations: Sequence[ObservationPoint]) -> List[ObservationPoint]:
        """
        Trailing average over [max(0, i - w + 1), i] for position, distance,
        RSSI and quality values. Line of sight is a strict majority vote.
        Identity, timestamp, antenna and session come from sample i.
        """
        window_size = self.config.moving_average_window_size
        if len(observations) < window_size:
            return list(observations)

        result: List[ObservationPoint] = []
        for i, current in enumerate(observations):
            window = observations[_window_bounds(i, window_size)]
            los_count = sum(1 for o in window if o.quality.is_line_of_sight)
            result.append(
                ObservationPoint(
                    id=current.id,
                    antenna_id=current.antenna_id,
                    position=Point3D(
                        _mean([o.position.x for o in window]),
                        _mean([o.position.y for o in window]),
                        _mean([o.position.z for o in window]),
                    ),
                    timestamp=current.timestamp,
                    quality=SignalQuality(
                        strength=_mean([o.quality.strength for o in window]),
                        is_line_of_sight=los_count > len(window) // 2,
                        confidence_level=_mean([o.quality.confidence_level for o in window]),
                        error_estimate=_mean([o.quality.error_estimate for o in window]),
                    ),
                    distance=_mean([o.distance for o in window]),
                    rssi=_mean([o.rssi for o in window]),
                    session_id=current.session_id,
                )
            )
        return result

    def apply_moving_average_to_points(self, points: Sequence[Point3D]) -> List[Point3D]:
        window_size = self.config.moving_average_window_size
        if len(points) < window_size:
            return list(points)

        result: List[Point3D] = []
        for i in range(len(points)):
            window = points[_window_bounds(i, window_size)]
            result.append(
                Point3D(
                    _mean([p.x for p in window]),
                    _mean([p.y for p in window]),
                    _mean([p.z for p in window]),
                )
            )
        return result

    def calculate_statistics(
        self,
        original: Sequence[ObservationPoint],
        processed: Sequence[ObservationPoint],
    ) -> ProcessingStatistics:
        return ProcessingStatistics(
            original_count=len(original),
            processed_count=len(processed),
            trimmed_count=len(original) - len(processed),
            original_std_dev=position_std_dev(original),
            processed_std_dev=position_std_dev(processed),
        )


def position_std_dev(observations: Sequence[ObservationPoint]) -> float:
    """Sample standard deviation of the XY position about its mean."""
    if len(observations) < 2:
        return 0.0
    mean_x = _mean([o.position.x for o in observations])
    mean_y = _mean([o.position.y for o in observations])
    variance = sum(
        (o.position.x - mean_x) ** 2 + (o.position.y - mean_y) ** 2 for o in observations
    ) / (len(observations) - 1)
    return math.sqrt(variance)
