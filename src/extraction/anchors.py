"""Keyword anchor detection for template-based field location.

Runs a single OCR pass over a downscaled copy of the document and
matches template keywords against the recognized words, falling back to
whole lines for multi-word markers. Only marker positions matter at this
stage, so the reduced resolution trades detail for throughput.
"""

import re
from dataclasses import dataclass, field

import numpy as np
from rapidfuzz.distance import Levenshtein

from src.ocr.tesseract_engine import BoundingBox, OCRResult, OCRToken
from src.ocr.worker_pool import OCRWorkerPool
from src.preprocessing.pipeline import downscale
from src.utils.config import AnchorConfig
from src.utils.logger import get_logger

from .template import DocumentTemplate, as_template

logger = get_logger(__name__)

DEFAULT_SCALE_FACTOR = 0.5
WORD_MIN_CONFIDENCE = 60.0
LINE_MIN_CONFIDENCE = 50.0
WORD_MATCH_THRESHOLD = 0.8
LINE_MATCH_THRESHOLD = 0.7

_NON_WORD = re.compile(r"\W", re.ASCII)


@dataclass
class AnchorPosition:
    """Anchor rectangle as origin and size."""

    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0


@dataclass
class Anchor:
    """A template keyword located in OCR output.

    Coordinates are in the space of the image that was recognized, i.e.
    the downscaled image during detection.
    """

    text: str
    keyword: str
    bbox: BoundingBox
    confidence: float
    position: AnchorPosition = field(default_factory=AnchorPosition)


def normalize_text(text: str) -> str:
    """Lowercase and drop every character outside ``[A-Za-z0-9_]``."""
    return _NON_WORD.sub("", text.lower())


def fuzzy_match(a: str, b: str, threshold: float = WORD_MATCH_THRESHOLD) -> bool:
    """Compare two strings by normalized Levenshtein similarity.

    Similarity is ``1 - distance / max(len(a), len(b))`` over the
    normalized strings. A string that normalizes to nothing matches
    nothing.

    Args:
        a: First string.
        b: Second string.
        threshold: Minimum similarity, between 0 and 1.

    Returns:
        True if the similarity reaches the threshold.
    """
    if not a or not b:
        return False

    s1 = normalize_text(a)
    s2 = normalize_text(b)
    if not s1 or not s2:
        return False
    if s1 == s2:
        return True

    distance = Levenshtein.distance(s1, s2)
    similarity = 1 - distance / max(len(s1), len(s2))
    return similarity >= threshold


def _token_text(token: OCRToken, min_confidence: float) -> str | None:
    """Return the trimmed text of a usable token, or ``None``."""
    confidence = getattr(token, "confidence", None)
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        return None
    if confidence < min_confidence:
        return None
    text = (getattr(token, "text", None) or "").strip()
    return text or None


def _make_anchor(token: OCRToken, text: str, keyword: str) -> Anchor:
    bbox = token.bbox or BoundingBox()
    return Anchor(
        text=text,
        keyword=keyword,
        bbox=bbox,
        confidence=token.confidence,
        position=AnchorPosition(
            x=bbox.x0 or 0,
            y=bbox.y0 or 0,
            width=(bbox.x1 or 0) - (bbox.x0 or 0),
            height=(bbox.y1 or 0) - (bbox.y0 or 0),
        ),
    )


def _match_words(
    words: list[OCRToken], keywords: list[str], config: AnchorConfig
) -> tuple[OCRToken, str, str] | None:
    for word in words:
        text = _token_text(word, config.word_min_confidence)
        if text is None:
            continue
        for keyword in keywords:
            if (
                keyword in text
                or text in keyword
                or fuzzy_match(text, keyword, config.word_match_threshold)
            ):
                return word, text, keyword
    return None


def _match_lines(
    lines: list[OCRToken], keywords: list[str], config: AnchorConfig
) -> tuple[OCRToken, str, str] | None:
    for line in lines:
        text = _token_text(line, config.line_min_confidence)
        if text is None:
            continue
        for keyword in keywords:
            if keyword in text or fuzzy_match(text, keyword, config.line_match_threshold):
                return line, text, keyword
    return None


def parse_anchors(
    ocr_result: OCRResult | None,
    template: DocumentTemplate | dict | None,
    config: AnchorConfig | None = None,
) -> dict[str, Anchor]:
    """Locate every template anchor in an OCR result.

    Words are scanned first, in reading order, and the first match wins.
    Anchors not found among words are searched in whole lines with a
    lower confidence floor and a looser fuzzy threshold.

    Args:
        ocr_result: Recognition output with ``words`` and ``lines``.
        template: Template whose anchors to look for.
        config: Confidence floors and fuzzy thresholds.

    Returns:
        Detected anchors keyed by anchor name; possibly empty.
    """
    config = config or AnchorConfig()
    anchors: dict[str, Anchor] = {}

    if ocr_result is None:
        logger.warning("OCR result is missing")
        return anchors

    template = as_template(template)
    if template is None or not template.anchors:
        logger.warning("Template or anchors configuration missing")
        return anchors

    words = getattr(ocr_result, "words", None)
    lines = getattr(ocr_result, "lines", None)
    words = [] if words is None else words
    lines = [] if lines is None else lines

    if not isinstance(words, list):
        logger.warning("OCR words is not a list: %s", type(words).__name__)
        return anchors
    if not isinstance(lines, list):
        logger.warning("OCR lines is not a list: %s", type(lines).__name__)
        return anchors

    logger.debug("Parsing anchors from %d words and %d lines", len(words), len(lines))
    if not words and not lines:
        logger.warning("No words or lines found in OCR output")
        return anchors

    for anchor_key, spec in template.anchors.items():
        keywords = [k for k in spec.keywords if k]
        if not keywords:
            logger.warning("Anchor '%s' has no keywords", anchor_key)
            continue

        match = _match_words(words, keywords, config)
        source = "word"
        if match is None:
            match = _match_lines(lines, keywords, config)
            source = "line"
        if match is None:
            continue

        token, text, keyword = match
        anchors[anchor_key] = _make_anchor(token, text, keyword)
        logger.debug(
            "Found anchor '%s' in %s '%s' (keyword '%s')",
            anchor_key,
            source,
            text,
            keyword,
        )

    return anchors


class AnchorDetector:
    """Finds template anchors with one pooled OCR pass per image.

    Args:
        pool: Worker pool supplying OCR engines.
        config: Downscale factor, confidence floors and fuzzy thresholds.
    """

    def __init__(self, pool: OCRWorkerPool, config: AnchorConfig | None = None) -> None:
        self.pool = pool
        self.config = config or AnchorConfig()

    @property
    def scale_factor(self) -> float:
        return self.config.scale_factor

    def detect(
        self, image: np.ndarray, template: DocumentTemplate | dict | None
    ) -> dict[str, Anchor]:
        """Detect anchors in a full-resolution image.

        The returned positions are in downscaled coordinates; divide by
        :attr:`scale_factor` to map them back.

        Args:
            image: Full-resolution image.
            template: Template whose anchors to look for.

        Returns:
            Detected anchors keyed by anchor name; possibly empty.

        Raises:
            ImageLoadError: If the image cannot be downscaled.
            WorkerAcquisitionError: If no OCR worker can be obtained.
        """
        template = as_template(template)
        if template is None or not template.anchors:
            logger.warning("Template or anchors configuration missing")
            return {}

        small = downscale(image, self.config.scale_factor)

        with self.pool.worker() as handle:
            logger.info("Running anchor OCR with worker %s", handle.id)
            ocr_result = handle.engine.recognize(small)

        anchors = parse_anchors(ocr_result, template, self.config)
        logger.info(
            "Detected %d/%d anchors: %s",
            len(anchors),
            len(template.anchors),
            ", ".join(anchors) or "none",
        )
        return anchors
