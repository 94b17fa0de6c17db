"""Shared test fixtures for the ID document scanner test suite."""

from pathlib import Path

import numpy as np
import pytest

from src.extraction.template import DocumentTemplate
from src.ocr.tesseract_engine import BoundingBox, OCRResult, OCRToken


class FakeEngine:
    """OCR engine returning a canned result and recording its inputs."""

    def __init__(self, result: OCRResult | None = None) -> None:
        self.result = result or OCRResult()
        self.images: list[np.ndarray] = []
        self.closed = False

    def recognize(self, image: np.ndarray) -> OCRResult:
        self.images.append(image)
        return self.result

    def close(self) -> None:
        self.closed = True


def make_token(
    text: str, confidence: float = 90.0, x0: int = 0, y0: int = 0, x1: int = 0, y1: int = 0
) -> OCRToken:
    """Create an OCR token with a bounding box."""
    return OCRToken(text=text, confidence=confidence, bbox=BoundingBox(x0, y0, x1, y1))


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic RGB test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    return image


@pytest.fixture
def license_template() -> DocumentTemplate:
    """Single-anchor license template with one field below the anchor."""
    return DocumentTemplate.model_validate(
        {
            "name": "license",
            "anchors": {"lic": {"keywords": ["LICENSE NO"]}},
            "fields": {
                "licNum": {
                    "anchor_refs": ["lic"],
                    "roi_offset": {"x": 0, "y": 30, "width": 200, "height": 40},
                }
            },
        }
    )


@pytest.fixture
def license_ocr_result() -> OCRResult:
    """OCR output where 'LICENSE NO' is printed as two words."""
    words = [
        make_token("LICENSE", 90, 10, 10, 80, 30),
        make_token("NO", 88, 85, 10, 110, 30),
    ]
    lines = [make_token("LICENSE NO", 89, 10, 10, 110, 30)]
    return OCRResult(text="LICENSE NO", words=words, lines=lines)


@pytest.fixture
def fake_engine_cls() -> type[FakeEngine]:
    return FakeEngine


@pytest.fixture
def token_factory():
    return make_token


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
