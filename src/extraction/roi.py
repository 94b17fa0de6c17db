"""Region-of-interest derivation and cropping.

Turns detected anchors plus a template's per-field offsets into pixel
rectangles in full-resolution image space, and cuts those rectangles out
of the source image for targeted OCR or manual review.
"""

import math
from dataclasses import asdict, dataclass
from pathlib import Path

import numpy as np

from src.preprocessing.loader import ImageSource, encode_image, load_image
from src.utils.logger import get_logger

from .anchors import DEFAULT_SCALE_FACTOR, Anchor
from .template import DocumentTemplate, as_template

logger = get_logger(__name__)


@dataclass
class Region:
    """Integer pixel rectangle."""

    x: int
    y: int
    width: int
    height: int


@dataclass
class ROI:
    """Field rectangle in full-resolution pixels, within image bounds."""

    x: int
    y: int
    width: int
    height: int
    anchor: str
    anchor_position: Region

    @property
    def area(self) -> int:
        return self.width * self.height

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


def _round(value: float) -> int:
    """Round half up, the way pixel coordinates are snapped."""
    return math.floor(value + 0.5)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def generate_rois(
    anchors: dict[str, Anchor],
    template: DocumentTemplate | dict | None,
    image_width: int,
    image_height: int,
    scale_factor: float = DEFAULT_SCALE_FACTOR,
) -> dict[str, ROI]:
    """Compute a clamped pixel rectangle for each anchored field.

    Anchor positions are mapped back to full resolution by dividing by
    ``scale_factor``; the field offset is then applied from the anchor's
    top-left corner and the result is clipped to the image.

    Args:
        anchors: Detected anchors, in downscaled coordinates.
        template: Template providing field offsets.
        image_width: Full-resolution image width.
        image_height: Full-resolution image height.
        scale_factor: Factor the anchors were detected at.

    Returns:
        ROIs keyed by field name. Fields whose primary anchor was not
        detected are omitted.

    Raises:
        ValueError: If ``scale_factor`` is not positive.
    """
    if scale_factor <= 0:
        raise ValueError(f"Scale factor must be positive, got {scale_factor}")

    rois: dict[str, ROI] = {}
    template = as_template(template)
    if template is None or not template.fields:
        logger.warning("Template or fields missing for ROI generation")
        return rois

    for field_key, spec in template.fields.items():
        if not spec.anchor_refs:
            continue

        anchor_key = spec.anchor_refs[0]
        anchor = anchors.get(anchor_key)
        if anchor is None:
            logger.warning("Anchor '%s' not found for field '%s'", anchor_key, field_key)
            continue

        position = anchor.position
        anchor_region = Region(
            x=_round((position.x or 0) / scale_factor),
            y=_round((position.y or 0) / scale_factor),
            width=_round((position.width or 0) / scale_factor),
            height=_round((position.height or 0) / scale_factor),
        )

        offset = spec.roi_offset
        x = _clamp(_round(anchor_region.x + offset.x), 0, image_width)
        y = _clamp(_round(anchor_region.y + offset.y), 0, image_height)
        width = _clamp(_round(offset.width), 0, image_width - x)
        height = _clamp(_round(offset.height), 0, image_height - y)

        rois[field_key] = ROI(
            x=x,
            y=y,
            width=width,
            height=height,
            anchor=anchor_key,
            anchor_position=anchor_region,
        )
        logger.debug("ROI for '%s': %d,%d %dx%d", field_key, x, y, width, height)

    return rois


class ROICropper:
    """Cuts field regions out of a source image."""

    def crop(self, image: ImageSource, roi: ROI) -> np.ndarray:
        """Extract exactly ``roi.width x roi.height`` pixels starting at ``(x, y)``.

        Parts of the rectangle outside the source stay black.

        Args:
            image: Source image array, path, or encoded bytes.
            roi: Region to extract.

        Returns:
            Sub-image with the same channel layout as the source.

        Raises:
            ImageLoadError: If the source cannot be decoded.
            ValueError: If the ROI has no area.
        """
        if roi.width <= 0 or roi.height <= 0:
            raise ValueError(f"ROI {roi.x},{roi.y} {roi.width}x{roi.height} has no area")

        source = load_image(image)
        src_h, src_w = source.shape[:2]
        out = np.zeros((roi.height, roi.width, *source.shape[2:]), dtype=source.dtype)

        x0, y0 = max(roi.x, 0), max(roi.y, 0)
        x1 = min(roi.x + roi.width, src_w)
        y1 = min(roi.y + roi.height, src_h)
        if x1 > x0 and y1 > y0:
            out[y0 - roi.y : y1 - roi.y, x0 - roi.x : x1 - roi.x] = source[y0:y1, x0:x1]
        return out

    def crop_all(self, image: ImageSource, rois: dict[str, ROI]) -> dict[str, np.ndarray]:
        """Crop every ROI with an area, decoding the source only once.

        Args:
            image: Source image array, path, or encoded bytes.
            rois: ROIs keyed by field name.

        Returns:
            Sub-images keyed by field name.
        """
        source = load_image(image)
        crops: dict[str, np.ndarray] = {}
        for field_key, roi in rois.items():
            if roi.area == 0:
                logger.warning("Skipping empty ROI for field '%s'", field_key)
                continue
            crops[field_key] = self.crop(source, roi)
        logger.info("Cropped %d of %d ROIs", len(crops), len(rois))
        return crops

    def save(
        self, crops: dict[str, np.ndarray], output_dir: Path, prefix: str = "document"
    ) -> list[Path]:
        """Write crops as JPEG files named ``roi_<prefix>_<field>.jpg``.

        Args:
            crops: Sub-images keyed by field name.
            output_dir: Directory to write into, created if needed.
            prefix: Name of the source document.

        Returns:
            Paths of the written files.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        paths: list[Path] = []
        for field_key, crop in crops.items():
            path = output_dir / f"roi_{prefix}_{field_key}.jpg"
            path.write_bytes(encode_image(crop, fmt="JPEG", quality=90))
            paths.append(path)
        logger.info("Saved %d crops to %s", len(paths), output_dir)
        return paths
