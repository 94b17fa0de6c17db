"""Image decoding and encoding helpers.

Every stage of the pipeline works on numpy arrays in Pillow channel
order (grayscale, RGB or RGBA). Decoding failures surface as
``ImageLoadError`` since no stage can produce a partial result without
pixels.
"""

import io
from pathlib import Path

import numpy as np
from PIL import Image, ImageOps

from src.utils.exceptions import ImageLoadError
from src.utils.logger import get_logger

logger = get_logger(__name__)

ImageSource = np.ndarray | Path | str | bytes

_NATIVE_MODES = ("L", "RGB", "RGBA")


def load_image(source: ImageSource) -> np.ndarray:
    """Decode an image from an array, a file path, or raw bytes.

    EXIF orientation is applied so phone photos come out upright.

    Args:
        source: Image array, path to an image file, or encoded bytes.

    Returns:
        Image as a ``uint8`` array of shape (H, W), (H, W, 3) or (H, W, 4).

    Raises:
        ImageLoadError: If the source cannot be decoded or is empty.
    """
    if isinstance(source, np.ndarray):
        if source.size == 0:
            raise ImageLoadError("Image array is empty")
        return source

    try:
        if isinstance(source, bytes):
            img = Image.open(io.BytesIO(source))
        else:
            img = Image.open(Path(source))
        img.load()
        img = ImageOps.exif_transpose(img)
    except (OSError, ValueError) as exc:
        raise ImageLoadError(f"Failed to load image: {exc}") from exc

    if img.mode not in _NATIVE_MODES:
        has_alpha = "A" in img.mode or "transparency" in img.info
        img = img.convert("RGBA" if has_alpha else "RGB")

    image = np.array(img)
    if image.size == 0:
        raise ImageLoadError("Decoded image has no pixels")

    logger.debug("Loaded image %dx%d (%s)", image.shape[1], image.shape[0], img.mode)
    return image


def encode_image(image: np.ndarray, fmt: str = "JPEG", quality: int = 90) -> bytes:
    """Encode an image array to bytes.

    Args:
        image: Image array to encode.
        fmt: Pillow format name.
        quality: Encoder quality for lossy formats.

    Returns:
        Encoded image bytes.
    """
    img = Image.fromarray(image)
    if fmt.upper() in ("JPEG", "JPG") and img.mode == "RGBA":
        img = img.convert("RGB")
    buf = io.BytesIO()
    img.save(buf, format=fmt, quality=quality)
    return buf.getvalue()
