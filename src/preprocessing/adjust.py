"""Pixel-level tone adjustments for document photos.

Provides luma grayscale conversion, contrast stretching, and brightness
offset. Only the color channels are touched; an alpha channel passes
through unchanged.
"""

import numpy as np

from src.utils.logger import get_logger

logger = get_logger(__name__)

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])


def _split_alpha(image: np.ndarray) -> tuple[np.ndarray, np.ndarray | None]:
    """Separate color channels from an optional alpha channel."""
    if image.ndim == 3 and image.shape[2] == 4:
        return image[..., :3], image[..., 3:]
    return image, None


def _merge_alpha(color: np.ndarray, alpha: np.ndarray | None) -> np.ndarray:
    if alpha is None:
        return color
    return np.concatenate([color, alpha], axis=2)


def luma(image: np.ndarray) -> np.ndarray:
    """Compute per-pixel luma as a float array of shape (H, W).

    Args:
        image: Grayscale, RGB, or RGBA image.

    Returns:
        Unrounded luma values.
    """
    color, _ = _split_alpha(image)
    if color.ndim == 2:
        return color.astype(np.float64)
    if color.shape[2] == 1:
        return color[..., 0].astype(np.float64)
    return color[..., :3].astype(np.float64) @ LUMA_WEIGHTS


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Replace each color channel with the pixel's rounded luma.

    Args:
        image: Grayscale, RGB, or RGBA image.

    Returns:
        Image with the same shape where R, G and B are equal.
    """
    if image.ndim == 2:
        return image.copy()

    color, alpha = _split_alpha(image)
    gray = np.floor(luma(image) + 0.5).clip(0, 255).astype(np.uint8)
    stacked = np.repeat(gray[..., np.newaxis], color.shape[2], axis=2)
    return _merge_alpha(stacked, alpha)


def contrast_factor(contrast: float) -> float:
    """Compute the contrast stretch factor for a contrast setting.

    Args:
        contrast: Contrast setting, scaled by 255 inside the formula.

    Returns:
        Multiplier applied around the mid-gray value 128.

    Raises:
        ValueError: If the setting makes the formula's denominator zero.
    """
    denominator = 255 * (259 - contrast * 255)
    if denominator == 0:
        raise ValueError(f"Contrast {contrast} yields an undefined factor")
    return (259 * (contrast * 255 + 255)) / denominator


def enhance_contrast(image: np.ndarray, contrast: float = 1.3) -> np.ndarray:
    """Stretch pixel values around mid-gray.

    Args:
        image: Input image.
        contrast: Contrast setting passed to :func:`contrast_factor`.

    Returns:
        Contrast-adjusted image.
    """
    factor = contrast_factor(contrast)
    color, alpha = _split_alpha(image)
    stretched = factor * (color.astype(np.float64) - 128) + 128
    result = np.rint(stretched.clip(0, 255)).astype(np.uint8)
    logger.debug("Applied contrast %.2f (factor=%.3f)", contrast, factor)
    return _merge_alpha(result, alpha)


def adjust_brightness(image: np.ndarray, brightness: int = 15) -> np.ndarray:
    """Add a constant offset to every color channel.

    Args:
        image: Input image.
        brightness: Offset in the range -255 to 255.

    Returns:
        Brightness-adjusted image.
    """
    color, alpha = _split_alpha(image)
    shifted = (color.astype(np.int16) + brightness).clip(0, 255).astype(np.uint8)
    return _merge_alpha(shifted, alpha)
