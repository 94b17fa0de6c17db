"""Configuration management for the ID document scanning system.

Loads and validates YAML configuration with sensible defaults
for preprocessing, OCR, anchor detection, and validation settings.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class PreprocessingConfig(BaseModel):
    """Configuration for image preprocessing before anchor detection."""

    enabled: bool = True
    grayscale: bool = True
    enhance_contrast: bool = True
    adjust_brightness: bool = True
    reduce_noise: bool = False
    contrast: float = 1.3
    brightness: int = 15


class OCRConfig(BaseModel):
    """Configuration for the Tesseract engine and its worker pool."""

    tesseract_cmd: str | None = None
    languages: list[str] = Field(default_factory=lambda: ["eng"])
    psm: int = 3
    pool_size: int = Field(default=1, ge=1)
    acquire_timeout: float | None = None


class AnchorConfig(BaseModel):
    """Thresholds used when locating template anchors in OCR output."""

    scale_factor: float = Field(default=0.5, gt=0.0, le=1.0)
    word_min_confidence: float = 60.0
    line_min_confidence: float = 50.0
    word_match_threshold: float = 0.8
    line_match_threshold: float = 0.7


class ValidationConfig(BaseModel):
    """Configuration for anchor quality validation and templates."""

    quality_threshold: float = 0.6
    templates_path: str = "configs/templates.yaml"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    anchors: AnchorConfig = Field(default_factory=AnchorConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
