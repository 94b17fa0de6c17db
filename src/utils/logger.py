"""Logging setup for the scanning pipeline.

Every pipeline stage (loader, preprocessing, anchor detection, ROI
generation, worker pool) logs through a module logger obtained with
``get_logger(__name__)``; records propagate to the single root handler
installed by the CLI or API entry point. Records go to stderr so the
``scan`` command's JSON on stdout stays machine-readable.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that emit per-chunk or per-part DEBUG noise.
NOISY_LOGGERS = ("PIL", "multipart", "python_multipart")


def setup_logging(level: str = "INFO") -> None:
    """Install the pipeline's stderr handler on the root logger.

    Calling it again is a no-op once a handler exists, so the API and
    CLI entry points can both call it. Loggers in ``NOISY_LOGGERS`` stay
    at INFO or above even when the pipeline runs at DEBUG.

    Args:
        level: Level name from ``AppConfig.log_level``. Unknown names
            fall back to INFO.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    root = logging.getLogger()

    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(numeric_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.INFO))


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a pipeline module.

    Args:
        name: Usually ``__name__``, e.g. ``src.ocr.worker_pool``.
    """
    return logging.getLogger(name)
