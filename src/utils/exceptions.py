"""Exception types for the ID document scanning system.

Only failures with no meaningful partial result are raised. Missing
anchors, unresolved template references and similar soft problems are
reported through empty results and quality scores instead.
"""


class DocumentScanError(Exception):
    """Base class for all scanning errors."""


class ConfigError(DocumentScanError):
    """A template or configuration entry is missing or malformed.

    Raised while parsing templates and caught by the registry, which logs
    it and skips the entry.
    """


class ImageLoadError(DocumentScanError):
    """An image could not be decoded for downscaling or cropping."""


class WorkerAcquisitionError(DocumentScanError):
    """An OCR worker could not be created or obtained from the pool."""
