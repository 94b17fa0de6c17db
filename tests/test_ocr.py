"""Tests for the Tesseract engine wrapper (mocked)."""

from unittest.mock import MagicMock, patch

import numpy as np
import pytesseract
import pytest

from src.ocr.tesseract_engine import (
    BoundingBox,
    OCRResult,
    OCRToken,
    TesseractEngine,
    create_tesseract_engine,
    group_lines,
)
from src.utils.config import OCRConfig
from src.utils.exceptions import WorkerAcquisitionError


def _mock_tesseract_data() -> dict:
    """Create mock pytesseract output data with two lines."""
    return {
        "text": ["", "PERMIS", "DE", "", "CONDUIRE", "Nom", " "],
        "conf": ["-1", "95", 88, -1, "72.5", 64, 10],
        "left": [0, 10, 80, 0, 120, 10, 60],
        "top": [0, 10, 12, 0, 11, 50, 50],
        "width": [0, 60, 30, 0, 90, 40, 5],
        "height": [0, 20, 18, 0, 20, 20, 20],
        "block_num": [1, 1, 1, 1, 1, 2, 2],
        "par_num": [0, 1, 1, 1, 1, 1, 1],
        "line_num": [0, 1, 1, 1, 1, 1, 1],
        "word_num": [0, 1, 2, 0, 3, 1, 2],
    }


def _mock_module(mock_pytesseract: MagicMock) -> None:
    mock_pytesseract.Output.DICT = "dict"
    mock_pytesseract.TesseractNotFoundError = pytesseract.TesseractNotFoundError
    mock_pytesseract.TesseractError = pytesseract.TesseractError


class TestBoundingBox:
    """Tests for the BoundingBox data class."""

    def test_size(self) -> None:
        bbox = BoundingBox(x0=10, y0=20, x1=110, y1=70)
        assert bbox.width == 100
        assert bbox.height == 50

    def test_defaults_to_zero(self) -> None:
        assert BoundingBox() == BoundingBox(0, 0, 0, 0)


class TestGroupLines:
    """Tests for merging words into line tokens."""

    def test_groups_by_key(self) -> None:
        words = [
            OCRToken("LICENSE", 90, BoundingBox(10, 10, 80, 30)),
            OCRToken("NO", 80, BoundingBox(85, 12, 110, 32)),
            OCRToken("Name", 70, BoundingBox(10, 50, 60, 70)),
        ]
        lines = group_lines(words, [(1, 1, 1), (1, 1, 1), (2, 1, 1)])

        assert [line.text for line in lines] == ["LICENSE NO", "Name"]
        assert lines[0].confidence == 85
        assert lines[0].bbox == BoundingBox(10, 10, 110, 32)

    def test_empty(self) -> None:
        assert group_lines([], []) == []


class TestTesseractEngine:
    """Tests for the TesseractEngine class (mocked)."""

    @patch("src.ocr.tesseract_engine.pytesseract")
    def test_recognize_words_and_lines(self, mock_pytesseract: MagicMock) -> None:
        _mock_module(mock_pytesseract)
        mock_pytesseract.image_to_data.return_value = _mock_tesseract_data()

        engine = TesseractEngine(languages=["fra", "eng"], psm=6)
        result = engine.recognize(np.zeros((100, 200), dtype=np.uint8))

        assert isinstance(result, OCRResult)
        assert [w.text for w in result.words] == ["PERMIS", "DE", "CONDUIRE", "Nom"]
        assert result.words[0].confidence == 95.0
        assert result.words[0].bbox == BoundingBox(10, 10, 70, 30)
        assert [line.text for line in result.lines] == ["PERMIS DE CONDUIRE", "Nom"]
        assert result.language == "fra+eng"
        assert result.text == "PERMIS DE CONDUIRE\nNom"

        kwargs = mock_pytesseract.image_to_data.call_args.kwargs
        assert kwargs["lang"] == "fra+eng"
        assert kwargs["config"] == "--psm 6"

    @patch("src.ocr.tesseract_engine.pytesseract")
    def test_recognize_empty_image(self, mock_pytesseract: MagicMock) -> None:
        _mock_module(mock_pytesseract)
        mock_pytesseract.image_to_data.return_value = {
            key: [] for key in _mock_tesseract_data()
        }

        result = TesseractEngine().recognize(np.zeros((10, 10), dtype=np.uint8))

        assert result.words == []
        assert result.lines == []
        assert result.confidence == 0.0


class TestCreateTesseractEngine:
    """Tests for language fallback when creating engines."""

    @patch("src.ocr.tesseract_engine.pytesseract")
    def test_uses_requested_languages(self, mock_pytesseract: MagicMock) -> None:
        _mock_module(mock_pytesseract)
        mock_pytesseract.get_languages.return_value = ["ara", "fra", "eng"]

        engine = create_tesseract_engine(OCRConfig(languages=["ara", "fra"], psm=4))

        assert engine.languages == ["ara", "fra"]
        assert engine.psm == 4

    @patch("src.ocr.tesseract_engine.pytesseract")
    def test_falls_back_to_english(self, mock_pytesseract: MagicMock) -> None:
        _mock_module(mock_pytesseract)
        mock_pytesseract.get_languages.return_value = ["eng", "osd"]

        engine = create_tesseract_engine(OCRConfig(languages=["ara"]))

        assert engine.languages == ["eng"]

    @patch("src.ocr.tesseract_engine.pytesseract")
    def test_no_language_available_raises(self, mock_pytesseract: MagicMock) -> None:
        _mock_module(mock_pytesseract)
        mock_pytesseract.get_languages.return_value = ["osd"]

        with pytest.raises(WorkerAcquisitionError):
            create_tesseract_engine(OCRConfig())

    @patch("src.ocr.tesseract_engine.pytesseract")
    def test_missing_binary_raises(self, mock_pytesseract: MagicMock) -> None:
        _mock_module(mock_pytesseract)
        mock_pytesseract.get_tesseract_version.side_effect = (
            pytesseract.TesseractNotFoundError()
        )

        with pytest.raises(WorkerAcquisitionError, match="not available"):
            create_tesseract_engine(OCRConfig())
