"""Detection of documents whose page boxes do not match what viewers show.

Two signals: an explicit non-zero /Rotate on any page, and a heuristic
score for scanned documents whose rotation metadata is 0 but whose
content orientation was mangled by scanning software.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..schemas.config import ScanDetectionConfig
from ..schemas.geometry import DocumentGeometry, Orientation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanAssessment:
    """Outcome of anomaly detection.

    Attributes:
        confidence: Additive heuristic score (not capped at 1.0)
        indicators: Human-readable reasons that contributed to the score
        is_scanned: confidence >= threshold
        rotated_pages: Pages (1-based) with non-zero declared rotation
    """
    confidence: float
    indicators: List[str] = field(default_factory=list)
    is_scanned: bool = False
    rotated_pages: List[int] = field(default_factory=list)

    @property
    def needs_flattening(self) -> bool:
        return bool(self.rotated_pages) or self.is_scanned


def _matches(text: Optional[str], keywords: Sequence[str]) -> bool:
    if not text:
        return False
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def score_scan_indicators(
    metadata: Dict[str, str],
    orientations: Sequence[Orientation],
    config: Optional[ScanDetectionConfig] = None,
) -> ScanAssessment:
    """Score how likely a document came from scanning software.

    Args:
        metadata: Document info fields (creator, producer, title, subject)
        orientations: Displayed orientation of every page, in page order
        config: Weights, threshold and keywords

    Returns:
        ScanAssessment without rotated_pages

    Examples:
        >>> score_scan_indicators({"creator": "CamScanner"}, [Orientation.PORTRAIT]).is_scanned
        True
    """
    config = config if config is not None else ScanDetectionConfig()

    confidence = 0.0
    indicators: List[str] = []

    weighted_fields = (
        ("creator", config.creator_weight),
        ("producer", config.producer_weight),
        ("title", config.title_weight),
        ("subject", config.subject_weight),
    )
    for name, weight in weighted_fields:
        value = metadata.get(name)
        if _matches(value, config.keywords):
            indicators.append(f"{name.capitalize()}: {value}")
            confidence += weight

    landscape = sum(1 for o in orientations if o == Orientation.LANDSCAPE)
    portrait = len(orientations) - landscape
    if len(orientations) > 1 and landscape and portrait:
        indicators.append(f"Mixed orientations: {portrait} portrait, {landscape} landscape")
        confidence += config.mixed_orientation_weight

    return ScanAssessment(
        confidence=round(confidence, 6),
        indicators=indicators,
        is_scanned=confidence >= config.threshold,
    )


class ScanAnomalyDetector:
    """Decides whether a document must be flattened before placing signatures."""

    def __init__(self, config: Optional[ScanDetectionConfig] = None) -> None:
        self.config = config if config is not None else ScanDetectionConfig()

    def assess(self, document: DocumentGeometry) -> ScanAssessment:
        """Full assessment: rotation signal plus scan heuristic."""
        rotated = [n for n, g in sorted(document.pages.items()) if g.rotation != 0]
        scored = score_scan_indicators(document.metadata, document.orientations, self.config)

        assessment = ScanAssessment(
            confidence=scored.confidence,
            indicators=scored.indicators,
            is_scanned=scored.is_scanned,
            rotated_pages=rotated,
        )

        if rotated:
            logger.info(f"Rotated pages detected: {rotated}")
        if assessment.is_scanned:
            logger.info(
                f"Scanned document detected (confidence={assessment.confidence:.2f}): "
                f"{assessment.indicators}"
            )
        return assessment

    def needs_flattening(self, document: DocumentGeometry) -> bool:
        """Return True if any page is rotated or the document looks scanned.

        Never raises: a failing heuristic is logged and treated as no anomaly.
        """
        if any(g.rotation != 0 for g in document.pages.values()):
            return True

        try:
            return self.assess(document).is_scanned
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning(f"Scan detection failed, assuming no anomaly: {exc}")
            return False
