"""Image quality metrics for captured documents."""

from dataclasses import dataclass

import numpy as np

from src.utils.logger import get_logger

from .adjust import luma

logger = get_logger(__name__)


@dataclass
class ImageQualityMetrics:
    """Brightness, contrast and size measurements for an image."""

    width: int
    height: int
    brightness: int
    contrast: int
    resolution: int
    aspect_ratio: float


def assess_image_quality(image: np.ndarray) -> ImageQualityMetrics:
    """Measure brightness and contrast from per-pixel luma.

    Brightness is the mean luma and contrast its population standard
    deviation, both rounded to whole values.

    Args:
        image: Grayscale, RGB, or RGBA image.

    Returns:
        Quality metrics for the image.

    Raises:
        ValueError: If the image has no pixels.
    """
    height, width = image.shape[:2]
    if width == 0 or height == 0:
        raise ValueError("Cannot assess an empty image")

    values = luma(image)
    metrics = ImageQualityMetrics(
        width=width,
        height=height,
        brightness=round(float(values.mean())),
        contrast=round(float(values.std())),
        resolution=width * height,
        aspect_ratio=width / height,
    )
    logger.debug(
        "Image quality: %dx%d brightness=%d contrast=%d",
        width,
        height,
        metrics.brightness,
        metrics.contrast,
    )
    return metrics
