"""Anchor detection quality scoring.

Scores how completely a template's anchors were found so callers can
gate downstream use, e.g. prompting a re-capture for low scores.
"""

from dataclasses import asdict, dataclass, field

from src.extraction.anchors import Anchor
from src.extraction.template import DocumentTemplate, as_template
from src.utils.logger import get_logger

logger = get_logger(__name__)

ANCHOR_QUALITY_THRESHOLD = 0.6


@dataclass
class QualityReport:
    """Share of required anchors that were detected."""

    quality: float = 0.0
    detected: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    is_valid: bool = False

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


class QualityValidator:
    """Compares detected anchors against a template's anchor set.

    Args:
        threshold: Minimum detected share for a report to be valid.
    """

    def __init__(self, threshold: float = ANCHOR_QUALITY_THRESHOLD) -> None:
        self.threshold = threshold

    def validate(
        self,
        anchors: dict[str, Anchor],
        template: DocumentTemplate | dict | None,
    ) -> QualityReport:
        """Score anchor detection completeness.

        Args:
            anchors: Detected anchors keyed by anchor name.
            template: Template defining the required anchors.

        Returns:
            Report listing detected and missing anchors in template order.
        """
        template = as_template(template)
        if template is None or not template.anchors:
            logger.warning("Template or anchors configuration missing")
            return QualityReport()

        required = list(template.anchors)
        detected = [key for key in required if key in anchors]
        missing = [key for key in required if key not in anchors]
        quality = len(detected) / len(required)

        report = QualityReport(
            quality=quality,
            detected=detected,
            missing=missing,
            is_valid=quality >= self.threshold,
        )

        logger.info("Anchor detection quality: %.1f%%", quality * 100)
        if missing:
            logger.info("Missing anchors: %s", ", ".join(missing))
        return report
