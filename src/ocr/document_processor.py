"""Unified ID document scanning pipeline.

Combines image loading, quality assessment, preprocessing, anchor
detection, ROI generation, cropping and quality validation into a single
processing interface.
"""

import functools
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from src.extraction.anchors import Anchor, AnchorDetector
from src.extraction.roi import ROI, ROICropper, generate_rois
from src.extraction.template import DocumentTemplate, TemplateRegistry, as_template
from src.preprocessing.loader import ImageSource, load_image
from src.preprocessing.pipeline import PreprocessingPipeline
from src.preprocessing.quality import ImageQualityMetrics, assess_image_quality
from src.utils.config import AppConfig
from src.utils.logger import get_logger
from src.validation.quality import QualityReport, QualityValidator

from .tesseract_engine import create_tesseract_engine
from .worker_pool import OCRWorkerPool

logger = get_logger(__name__)


@dataclass
class DocumentResult:
    """Anchors, field regions and crops for one scanned document."""

    source_file: str
    template_name: str | None
    image_width: int
    image_height: int
    image_quality: ImageQualityMetrics
    anchors: dict[str, Anchor] = field(default_factory=dict)
    rois: dict[str, ROI] = field(default_factory=dict)
    quality: QualityReport = field(default_factory=QualityReport)
    crops: dict[str, np.ndarray] = field(default_factory=dict)


class DocumentProcessor:
    """End-to-end anchor-based scanning pipeline.

    Args:
        config: Application configuration object.
        pool: OCR worker pool. When omitted, a Tesseract pool sized by
            ``config.ocr.pool_size`` is created and owned by the processor.
        templates: Template registry used to resolve template names.
    """

    def __init__(
        self,
        config: AppConfig,
        pool: OCRWorkerPool | None = None,
        templates: TemplateRegistry | None = None,
    ) -> None:
        self.config = config
        self._owns_pool = pool is None
        if pool is None:
            pool = OCRWorkerPool(
                functools.partial(create_tesseract_engine, config.ocr),
                size=config.ocr.pool_size,
                acquire_timeout=config.ocr.acquire_timeout,
            )
        self.pool = pool
        if templates is None:
            templates = TemplateRegistry(Path(config.validation.templates_path))
        self.templates = templates
        self.preprocessing = PreprocessingPipeline(config.preprocessing)
        self.anchor_detector = AnchorDetector(pool, config.anchors)
        self.cropper = ROICropper()
        self.validator = QualityValidator(config.validation.quality_threshold)

    def resolve_template(
        self, template: DocumentTemplate | dict | str | None
    ) -> DocumentTemplate | None:
        """Turn a template name or raw mapping into a template."""
        if isinstance(template, str):
            return self.templates.get(template)
        return as_template(template)

    def process(
        self,
        source: ImageSource,
        template: DocumentTemplate | dict | str | None,
        filename: str = "document",
    ) -> DocumentResult:
        """Scan one document image.

        Args:
            source: Image array, path, or encoded bytes.
            template: Template, raw template mapping, or registry name.
            filename: Display name for the source document.

        Returns:
            Detection results. Missing anchors or an unknown template
            yield empty anchors and ROIs with an invalid quality report.
            Crops are cut from the decoded source image.

        Raises:
            ImageLoadError: If the image cannot be decoded.
            WorkerAcquisitionError: If no OCR worker can be obtained.
        """
        logger.info("Processing document: %s", filename)
        source_image = load_image(source)
        height, width = source_image.shape[:2]
        image_quality = assess_image_quality(source_image)

        resolved = self.resolve_template(template)
        image = source_image
        if self.config.preprocessing.enabled:
            image = self.preprocessing.process(source_image)

        anchors = self.anchor_detector.detect(image, resolved)
        rois = generate_rois(
            anchors,
            resolved,
            width,
            height,
            self.anchor_detector.scale_factor,
        )
        quality = self.validator.validate(anchors, resolved)
        crops = self.cropper.crop_all(source_image, rois) if rois else {}

        logger.info(
            "Processed %s: %d anchors, %d ROIs, quality %.2f",
            filename,
            len(anchors),
            len(rois),
            quality.quality,
        )
        return DocumentResult(
            source_file=filename,
            template_name=resolved.name if resolved else None,
            image_width=width,
            image_height=height,
            image_quality=image_quality,
            anchors=anchors,
            rois=rois,
            quality=quality,
            crops=crops,
        )

    def close(self) -> None:
        """Close the worker pool if this processor created it."""
        if self._owns_pool:
            self.pool.close()
