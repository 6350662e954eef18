"""
Signal quality evaluation for UWB observations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .config import QUALITY
from .models import ObservationPoint

logger = logging.getLogger(__name__)

ISSUE_LOW_STRENGTH = "Signal strength is low"
ISSUE_LOW_RSSI = "RSSI is low"
ISSUE_LOW_CONFIDENCE = "Confidence level is low"
ISSUE_HIGH_ERROR = "Error estimate is high"

RECOMMENDATIONS = {
    ISSUE_LOW_STRENGTH: [
        "Reduce the distance between antenna and tag",
        "Remove obstructions between antenna and tag",
    ],
    ISSUE_LOW_RSSI: ["Adjust the antenna orientation"],
    ISSUE_LOW_CONFIDENCE: ["Stabilise the measurement environment"],
}

NLOS_RECOMMENDATION = "Remove obstructions or adjust the antenna position"
LOS_RECOMMENDATION = "Measurement environment is good"


@dataclass(frozen=True)
class QualityEvaluation:
    is_acceptable: bool
    quality_score: float
    issues: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class NLoSDetectionResult:
    is_nlos_detected: bool
    line_of_sight_percentage: float
    average_signal_strength: float
    recommendation: str


class DataQualityMonitor:
    """
    Scores observations against fixed thresholds.

    Low strength or low confidence make an observation unacceptable; low RSSI
    and a large error estimate are reported as issues only.
    """

    def __init__(self, thresholds: Optional[dict] = None):
        self.thresholds = dict(QUALITY)
        if thresholds:
            self.thresholds.update(thresholds)

    def evaluate(self, observation: ObservationPoint) -> QualityEvaluation:
        quality = observation.quality
        issues: List[str] = []
        is_acceptable = True

        if quality.strength < self.thresholds["min_strength"]:
            issues.append(ISSUE_LOW_STRENGTH)
            is_acceptable = False

        if observation.rssi < self.thresholds["min_rssi_dbm"]:
            issues.append(ISSUE_LOW_RSSI)

        if quality.confidence_level < self.thresholds["min_confidence"]:
            issues.append(ISSUE_LOW_CONFIDENCE)
            is_acceptable = False

        if quality.error_estimate > self.thresholds["max_error_estimate_m"]:
            issues.append(ISSUE_HIGH_ERROR)

        if issues:
            logger.debug("Observation %s: %s", observation.id, ", ".join(issues))

        return QualityEvaluation(
            is_acceptable=is_acceptable,
            quality_score=quality.strength,
            issues=issues,
            recommendations=generate_recommendations(issues),
        )

    def detect_nlos(self, observations: Sequence[ObservationPoint]) -> NLoSDetectionResult:
        """Declare a non-line-of-sight condition when LoS samples are a minority."""
        if observations:
            los_count = sum(1 for o in observations if o.quality.is_line_of_sight)
            los_ratio = los_count / len(observations)
            average_strength = sum(o.quality.strength for o in observations) / len(observations)
        else:
            los_ratio = 0.0
            average_strength = 0.0

        is_nlos = los_ratio < self.thresholds["min_line_of_sight_ratio"]
        if is_nlos:
            logger.warning(
                "Non-line-of-sight condition: %.1f%% LoS over %d samples",
                los_ratio * 100.0, len(observations),
            )
        return NLoSDetectionResult(
            is_nlos_detected=is_nlos,
            line_of_sight_percentage=los_ratio * 100.0,
            average_signal_strength=average_strength,
            recommendation=NLOS_RECOMMENDATION if is_nlos else LOS_RECOMMENDATION,
        )


def generate_recommendations(issues: Sequence[str]) -> List[str]:
    recommendations: List[str] = []
    for issue in issues:
        recommendations.extend(RECOMMENDATIONS.get(issue, []))
    return recommendations
