"""Tesseract OCR engine wrapper with word and line extraction.

Provides whole-image recognition returning word and line tokens with
pixel bounding boxes and 0-100 confidence scores, plus a factory that
picks the first installed language combination.
"""

from dataclasses import dataclass, field

import numpy as np
import pytesseract
from PIL import Image

from src.utils.config import OCRConfig
from src.utils.exceptions import WorkerAcquisitionError
from src.utils.logger import get_logger

logger = get_logger(__name__)

FALLBACK_LANGUAGES: list[list[str]] = [["fra", "eng"], ["eng"]]


@dataclass
class BoundingBox:
    """Axis-aligned box given by its corner coordinates."""

    x0: int = 0
    y0: int = 0
    x1: int = 0
    y1: int = 0

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0


@dataclass
class OCRToken:
    """A recognized word or line with confidence on a 0-100 scale."""

    text: str
    confidence: float
    bbox: BoundingBox | None = None


@dataclass
class OCRResult:
    """Whole-image recognition output."""

    text: str = ""
    words: list[OCRToken] = field(default_factory=list)
    lines: list[OCRToken] = field(default_factory=list)
    language: str = "eng"
    confidence: float = 0.0


def _union_bbox(tokens: list[OCRToken]) -> BoundingBox:
    boxes = [t.bbox for t in tokens if t.bbox is not None]
    if not boxes:
        return BoundingBox()
    return BoundingBox(
        x0=min(b.x0 for b in boxes),
        y0=min(b.y0 for b in boxes),
        x1=max(b.x1 for b in boxes),
        y1=max(b.y1 for b in boxes),
    )


def group_lines(
    words: list[OCRToken], keys: list[tuple[int, int, int]]
) -> list[OCRToken]:
    """Merge words sharing a Tesseract (block, paragraph, line) key.

    Args:
        words: Word tokens in reading order.
        keys: Line key for each word, aligned with ``words``.

    Returns:
        One token per line with joined text, the enclosing box, and the
        mean word confidence.
    """
    groups: dict[tuple[int, int, int], list[OCRToken]] = {}
    for word, key in zip(words, keys):
        groups.setdefault(key, []).append(word)

    lines: list[OCRToken] = []
    for line_words in groups.values():
        lines.append(
            OCRToken(
                text=" ".join(w.text for w in line_words),
                confidence=sum(w.confidence for w in line_words) / len(line_words),
                bbox=_union_bbox(line_words),
            )
        )
    return lines


class TesseractEngine:
    """Wrapper around Tesseract OCR for whole-document recognition.

    Args:
        languages: Tesseract language codes to load together.
        psm: Tesseract page segmentation mode.
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
    """

    def __init__(
        self,
        languages: list[str] | None = None,
        psm: int = 3,
        tesseract_cmd: str | None = None,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.languages = list(languages or ["eng"])
        self.psm = psm

    @property
    def lang(self) -> str:
        return "+".join(self.languages)

    def recognize(self, image: np.ndarray) -> OCRResult:
        """Recognize all text in an image.

        Args:
            image: Input image as a numpy array.

        Returns:
            OCRResult with word tokens, line tokens and mean confidence.
        """
        pil_image = Image.fromarray(image)
        data = pytesseract.image_to_data(
            pil_image,
            lang=self.lang,
            config=f"--psm {self.psm}",
            output_type=pytesseract.Output.DICT,
        )

        words: list[OCRToken] = []
        keys: list[tuple[int, int, int]] = []
        for i in range(len(data["text"])):
            conf = float(data["conf"][i])
            word_text = str(data["text"][i]).strip()
            if conf < 0 or not word_text:
                continue

            left, top = int(data["left"][i]), int(data["top"][i])
            words.append(
                OCRToken(
                    text=word_text,
                    confidence=conf,
                    bbox=BoundingBox(
                        x0=left,
                        y0=top,
                        x1=left + int(data["width"][i]),
                        y1=top + int(data["height"][i]),
                    ),
                )
            )
            keys.append(
                (
                    int(data["block_num"][i]),
                    int(data["par_num"][i]),
                    int(data["line_num"][i]),
                )
            )

        lines = group_lines(words, keys)
        avg_conf = sum(w.confidence for w in words) / len(words) if words else 0.0

        logger.info(
            "OCR recognized %d words in %d lines (mean confidence %.1f)",
            len(words),
            len(lines),
            avg_conf,
        )
        return OCRResult(
            text="\n".join(line.text for line in lines),
            words=words,
            lines=lines,
            language=self.lang,
            confidence=avg_conf,
        )


def _language_strategies(requested: list[str]) -> list[list[str]]:
    strategies: list[list[str]] = []
    for candidate in [requested, *FALLBACK_LANGUAGES]:
        if candidate and candidate not in strategies:
            strategies.append(list(candidate))
    return strategies


def create_tesseract_engine(config: OCRConfig | None = None) -> TesseractEngine:
    """Create a Tesseract engine using the first installed language set.

    Tries the configured languages first, then French + English, then
    English alone.

    Args:
        config: OCR configuration.

    Returns:
        Ready-to-use engine.

    Raises:
        WorkerAcquisitionError: If Tesseract is missing or none of the
            language combinations is installed.
    """
    config = config or OCRConfig()
    if config.tesseract_cmd:
        pytesseract.pytesseract.tesseract_cmd = config.tesseract_cmd

    try:
        version = pytesseract.get_tesseract_version()
        installed = set(pytesseract.get_languages(config=""))
    except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError) as exc:
        raise WorkerAcquisitionError(f"Tesseract is not available: {exc}") from exc

    for languages in _language_strategies(config.languages):
        missing = [lang for lang in languages if lang not in installed]
        if missing:
            logger.warning(
                "Tesseract languages %s not installed, trying fallback",
                "+".join(missing),
            )
            continue
        logger.info(
            "Created Tesseract %s engine with languages %s",
            version,
            "+".join(languages),
        )
        return TesseractEngine(
            languages=languages,
            psm=config.psm,
            tesseract_cmd=config.tesseract_cmd,
        )

    raise WorkerAcquisitionError(
        f"No installed Tesseract language set among {_language_strategies(config.languages)}"
    )
