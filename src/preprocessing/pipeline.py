"""Configurable image preprocessing pipeline for ID document OCR.

Orchestrates grayscale conversion, contrast, brightness and denoise
steps, and provides the downscaling helper used for fast anchor search.
"""

import math

import cv2
import numpy as np

from src.utils.config import PreprocessingConfig
from src.utils.exceptions import ImageLoadError
from src.utils.logger import get_logger

from .adjust import adjust_brightness, enhance_contrast, to_grayscale
from .denoise import reduce_noise

logger = get_logger(__name__)


def downscale(image: np.ndarray, scale_factor: float = 0.5) -> np.ndarray:
    """Shrink an image by a uniform factor with area resampling.

    Args:
        image: Input image.
        scale_factor: Target size relative to the input, in (0, 1].

    Returns:
        Image of size ``floor(w * scale) x floor(h * scale)`` (at least 1px).

    Raises:
        ImageLoadError: If the image has no pixels.
        ValueError: If the scale factor is out of range.
    """
    if image is None or image.size == 0:
        raise ImageLoadError("Cannot downscale an empty image")
    if not 0 < scale_factor <= 1:
        raise ValueError(f"Scale factor must be in (0, 1], got {scale_factor}")

    height, width = image.shape[:2]
    new_width = max(1, math.floor(width * scale_factor))
    new_height = max(1, math.floor(height * scale_factor))
    if (new_width, new_height) == (width, height):
        return image.copy()

    result = cv2.resize(image, (new_width, new_height), interpolation=cv2.INTER_AREA)
    logger.debug(
        "Downscaled %dx%d -> %dx%d", width, height, new_width, new_height
    )
    return result


class PreprocessingPipeline:
    """Tone normalization pipeline applied before OCR.

    Steps run in a fixed order: grayscale, contrast, brightness, denoise.
    Each step is toggled by the configuration.

    Args:
        config: Preprocessing configuration controlling which steps to apply.
    """

    def __init__(self, config: PreprocessingConfig | None = None) -> None:
        self.config = config or PreprocessingConfig()

    def process(self, image: np.ndarray) -> np.ndarray:
        """Run the enabled preprocessing steps on an image.

        Args:
            image: Input image (grayscale, RGB or RGBA).

        Returns:
            New processed image; the input is not modified.
        """
        result = image.copy()
        steps: list[str] = []

        if self.config.grayscale:
            result = to_grayscale(result)
            steps.append("grayscale")

        if self.config.enhance_contrast:
            result = enhance_contrast(result, self.config.contrast)
            steps.append("contrast")

        if self.config.adjust_brightness:
            result = adjust_brightness(result, self.config.brightness)
            steps.append("brightness")

        if self.config.reduce_noise:
            result = reduce_noise(result)
            steps.append("denoise")

        logger.info("Preprocessing complete: %s", ", ".join(steps) or "no steps")
        return result
